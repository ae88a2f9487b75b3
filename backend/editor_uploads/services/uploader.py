from __future__ import annotations

import asyncio
import base64
import binascii
import ipaddress
import logging
import re
import shutil
import socket
import time
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO

import httpx

from editor_uploads.core.config import Settings, get_settings
from editor_uploads.core.enums import UploadErrorKind, UploadProfile
from editor_uploads.schemas.uploads import UploadConfig, UploadResult
from editor_uploads.services.upload_paths import file_extension, render_path_format


logger = logging.getLogger(__name__)

UPLOAD_ERROR_MESSAGES: dict[UploadErrorKind, str] = {
    UploadErrorKind.EMPTY_UPLOAD: "Uploaded file is empty",
    UploadErrorKind.SIZE_EXCEEDED: "File size exceeds the site limit",
    UploadErrorKind.TYPE_NOT_ALLOWED: "File type is not allowed",
    UploadErrorKind.FILE_STATE_ERROR: "File system error",
    UploadErrorKind.DIRECTORY_CREATE_FAILED: "Failed to create directory",
    UploadErrorKind.NOT_WRITABLE: "Directory is not writable",
    UploadErrorKind.WRITE_FAILED: "Failed to write file content",
    UploadErrorKind.BASE64_DECODE_FAILED: "Failed to decode base64 image",
    UploadErrorKind.INVALID_URL: "Invalid URL",
    UploadErrorKind.NOT_HTTP: "Link is not an http link",
    UploadErrorKind.INVALID_IP: "Link points to a forbidden IP address",
    UploadErrorKind.DEAD_LINK: "Link is not available",
    UploadErrorKind.WRONG_CONTENT_TYPE: "Link content type is not an image",
    UploadErrorKind.REMOTE_READ_FAILED: "Failed to read remote content",
}

_DATA_URL_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,", re.IGNORECASE)
_COPY_CHUNK_SIZE = 64 * 1024


class UploadError(ValueError):
    def __init__(self, kind: UploadErrorKind) -> None:
        super().__init__(UPLOAD_ERROR_MESSAGES[kind])
        self.kind = kind

    def to_result(self, **fields: Any) -> UploadResult:
        return UploadResult(state=str(self), kind=self.kind, **fields)


def _ensure_parent_dir(path: Path) -> None:
    parent = path.parent
    try:
        parent.stat()
    except FileNotFoundError:
        exists = False
    except OSError as e:
        raise UploadError(UploadErrorKind.FILE_STATE_ERROR) from e
    else:
        exists = True

    if not exists:
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise UploadError(UploadErrorKind.DIRECTORY_CREATE_FAILED) from e


def _write_stream(path: Path, content: BinaryIO) -> int:
    try:
        dst = path.open("wb")
    except OSError as e:
        raise UploadError(UploadErrorKind.NOT_WRITABLE) from e
    try:
        with dst:
            shutil.copyfileobj(content, dst, _COPY_CHUNK_SIZE)
            written = dst.tell()
    except OSError as e:
        path.unlink(missing_ok=True)
        raise UploadError(UploadErrorKind.WRITE_FAILED) from e

    # The declared size is not trusted: a stream that yields nothing is still an empty upload.
    if written == 0:
        path.unlink(missing_ok=True)
        raise UploadError(UploadErrorKind.EMPTY_UPLOAD)
    return written


def _write_bytes(path: Path, data: bytes) -> int:
    try:
        dst = path.open("wb")
    except OSError as e:
        raise UploadError(UploadErrorKind.NOT_WRITABLE) from e
    try:
        with dst:
            dst.write(data)
    except OSError as e:
        path.unlink(missing_ok=True)
        raise UploadError(UploadErrorKind.WRITE_FAILED) from e
    return len(data)


def _is_forbidden_ip(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


async def _ensure_public_host(host: str) -> None:
    try:
        addresses = [ipaddress.ip_address(host)]
    except ValueError:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as e:
            raise UploadError(UploadErrorKind.DEAD_LINK) from e
        # IPv6 link-local results may carry a "%scope" suffix.
        addresses = [ipaddress.ip_address(str(info[4][0]).split("%", 1)[0]) for info in infos]

    if any(_is_forbidden_ip(ip) for ip in addresses):
        raise UploadError(UploadErrorKind.INVALID_IP)


async def _guard_request_host(request: httpx.Request) -> None:
    await _ensure_public_host(request.url.host)


class Uploader:
    """
    Validates and stores editor uploads under a path rendered from `config.path_format`.

    Each entry point runs the same gates (size, extension) and then the shared write step; the first
    failing gate raises `UploadError` with its kind. Paths are not reserved before writing, so two
    uploads rendering the same path overwrite each other (last write wins).
    """

    def __init__(
        self,
        config: UploadConfig,
        *,
        root_dir: Path | None = None,
        url_prefix: str = "",
        remote_timeout_seconds: float = 5.0,
        block_private_hosts: bool = False,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self.config = config
        self.root_dir = root_dir
        self.url_prefix = url_prefix.rstrip("/")
        self.remote_timeout_seconds = remote_timeout_seconds
        self.block_private_hosts = block_private_hosts
        self._clock = clock

    def _check_size(self, size: int) -> None:
        if size > self.config.max_size:
            raise UploadError(UploadErrorKind.SIZE_EXCEEDED)

    def _check_type(self, ext: str) -> None:
        if not self.config.allows(ext):
            raise UploadError(UploadErrorKind.TYPE_NOT_ALLOWED)

    def _destination(self, rel_path: str) -> Path:
        if self.root_dir is None:
            return Path(rel_path)
        return self.root_dir / rel_path.lstrip("/")

    def _public_url(self, rel_path: str) -> str:
        if not self.url_prefix:
            return rel_path
        return f"{self.url_prefix}/{rel_path.lstrip('/')}"

    async def _persist(
        self,
        original_name: str,
        write: Callable[[Path], int],
        *,
        source: str | None = None,
    ) -> UploadResult:
        rel_path = render_path_format(self.config.path_format, original_name, now_ns=self._clock())
        abs_path = self._destination(rel_path)

        await asyncio.to_thread(_ensure_parent_dir, abs_path)
        size = await asyncio.to_thread(write, abs_path)

        logger.info("Stored upload", extra={"upload_path": str(abs_path), "upload_size": size})
        return UploadResult(
            url=self._public_url(rel_path),
            title=abs_path.name,
            original=original_name,
            type=file_extension(original_name),
            size=size,
            source=source,
        )

    async def upload_stream(self, content: BinaryIO | None, size: int, original_name: str) -> UploadResult:
        if content is None or size <= 0:
            raise UploadError(UploadErrorKind.EMPTY_UPLOAD)
        self._check_size(size)
        self._check_type(file_extension(original_name))

        return await self._persist(original_name, lambda path: _write_stream(path, content))

    async def upload_base64(self, file_name: str, data: str) -> UploadResult:
        payload = "".join(_DATA_URL_PREFIX.sub("", data.strip(), count=1).split())
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UploadError(UploadErrorKind.BASE64_DECODE_FAILED) from e

        if not raw:
            raise UploadError(UploadErrorKind.EMPTY_UPLOAD)
        self._check_size(len(raw))
        self._check_type(file_extension(file_name))

        return await self._persist(file_name, lambda path: _write_bytes(path, raw))

    async def save_remote(self, remote_url: str) -> UploadResult:
        try:
            url = httpx.URL(remote_url.strip())
        except httpx.InvalidURL as e:
            raise UploadError(UploadErrorKind.INVALID_URL) from e

        if url.scheme.lower() not in {"http", "https"}:
            raise UploadError(UploadErrorKind.NOT_HTTP)
        if not url.host:
            raise UploadError(UploadErrorKind.INVALID_URL)

        original_name = PurePosixPath(url.path).name
        self._check_type(file_extension(original_name))

        if self.block_private_hosts:
            await _ensure_public_host(url.host)

        body = await self._fetch_image(url)
        self._check_size(len(body))

        return await self._persist(original_name, lambda path: _write_bytes(path, body), source=remote_url)

    async def _fetch_image(self, url: httpx.URL) -> bytes:
        # HEAD first: reachability and content type are confirmed before committing to the download.
        timeout = httpx.Timeout(timeout=self.remote_timeout_seconds)
        event_hooks: dict[str, list[Callable[..., Any]]] = {}
        if self.block_private_hosts:
            # Runs for every hop, redirects included.
            event_hooks["request"] = [_guard_request_host]

        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, event_hooks=event_hooks) as client:
            try:
                # httpx timeouts apply per phase; the deadline bounds the whole request.
                async with asyncio.timeout(self.remote_timeout_seconds):
                    head = await client.head(url)
            except (httpx.HTTPError, TimeoutError) as e:
                logger.warning("Remote image HEAD failed", extra={"remote_url": str(url), "error": repr(e)})
                raise UploadError(UploadErrorKind.DEAD_LINK) from e
            if head.status_code != 200:
                logger.warning("Remote image HEAD returned %s", head.status_code, extra={"remote_url": str(url)})
                raise UploadError(UploadErrorKind.DEAD_LINK)

            content_type = head.headers.get("content-type", "")
            if "image" not in content_type.lower():
                raise UploadError(UploadErrorKind.WRONG_CONTENT_TYPE)

            declared_length = head.headers.get("content-length", "").strip()
            if declared_length.isdigit():
                self._check_size(int(declared_length))

            try:
                async with asyncio.timeout(self.remote_timeout_seconds):
                    async with client.stream("GET", url) as response:
                        if response.status_code != 200:
                            logger.warning(
                                "Remote image GET returned %s", response.status_code, extra={"remote_url": str(url)}
                            )
                            raise UploadError(UploadErrorKind.DEAD_LINK)
                        try:
                            return await response.aread()
                        except httpx.HTTPError as e:
                            raise UploadError(UploadErrorKind.REMOTE_READ_FAILED) from e
            except (httpx.HTTPError, TimeoutError) as e:
                logger.warning("Remote image GET failed", extra={"remote_url": str(url), "error": repr(e)})
                raise UploadError(UploadErrorKind.DEAD_LINK) from e

    async def save_remote_many(self, remote_urls: list[str]) -> list[UploadResult]:
        results: list[UploadResult] = []
        for remote_url in remote_urls:
            try:
                results.append(await self.save_remote(remote_url))
            except UploadError as e:
                results.append(e.to_result(source=remote_url))
        return results


def build_uploader(
    profile: UploadProfile,
    *,
    settings: Settings | None = None,
    original_name: str | None = None,
) -> Uploader:
    settings = settings or get_settings()
    return Uploader(
        settings.upload_config(profile, original_name=original_name),
        root_dir=settings.upload_storage_dir,
        url_prefix=settings.upload_url_prefix,
        remote_timeout_seconds=settings.upload_remote_timeout_seconds,
        block_private_hosts=settings.upload_block_private_hosts,
    )
