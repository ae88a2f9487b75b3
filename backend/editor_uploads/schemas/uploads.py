from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from editor_uploads.core.enums import UploadErrorKind


SUCCESS_STATE = "SUCCESS"


def normalize_extension(raw: str) -> str:
    ext = raw.strip().lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return ext


class UploadConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    path_format: str = Field(..., min_length=1)
    max_size: int = Field(..., ge=0, description="Inclusive limit in bytes")
    allowed_extensions: frozenset[str] = Field(default_factory=frozenset)
    original_name: str | None = None

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def _normalize_allowed_extensions(cls, v: object) -> object:
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(ext for ext in (normalize_extension(str(x)) for x in v) if ext)
        return v

    def allows(self, ext: str) -> bool:
        return ext.lower() in self.allowed_extensions


class UploadResult(BaseModel):
    """
    Outcome of one upload, shaped like the editor's JSON response.

    `state` is "SUCCESS" or the display message of the failure; callers that need to branch should use `kind`.
    """

    state: str = SUCCESS_STATE
    kind: UploadErrorKind | None = None
    url: str | None = Field(None, description="Template-derived path relative to the storage root")
    title: str | None = None
    original: str | None = None
    type: str | None = None
    size: int | None = None
    source: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is None


class UploadedFileOut(BaseModel):
    url: str
    mtime: int


class UploadListOut(BaseModel):
    state: str = SUCCESS_STATE
    items: list[UploadedFileOut] = Field(default_factory=list, serialization_alias="list")
    start: int = 0
    total: int = 0
