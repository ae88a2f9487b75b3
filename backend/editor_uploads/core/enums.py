from __future__ import annotations

from enum import StrEnum


class UploadProfile(StrEnum):
    IMAGE = "IMAGE"
    SCRAWL = "SCRAWL"
    CATCHER = "CATCHER"
    VIDEO = "VIDEO"
    FILE = "FILE"


class UploadErrorKind(StrEnum):
    EMPTY_UPLOAD = "EMPTY_UPLOAD"
    SIZE_EXCEEDED = "SIZE_EXCEEDED"
    TYPE_NOT_ALLOWED = "TYPE_NOT_ALLOWED"
    FILE_STATE_ERROR = "FILE_STATE_ERROR"
    DIRECTORY_CREATE_FAILED = "DIRECTORY_CREATE_FAILED"
    NOT_WRITABLE = "NOT_WRITABLE"
    WRITE_FAILED = "WRITE_FAILED"
    BASE64_DECODE_FAILED = "BASE64_DECODE_FAILED"
    INVALID_URL = "INVALID_URL"
    NOT_HTTP = "NOT_HTTP"
    INVALID_IP = "INVALID_IP"
    DEAD_LINK = "DEAD_LINK"
    WRONG_CONTENT_TYPE = "WRONG_CONTENT_TYPE"
    REMOTE_READ_FAILED = "REMOTE_READ_FAILED"
