from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

from editor_uploads.core.config import get_settings
from editor_uploads.schemas.uploads import UploadedFileOut, UploadListOut, normalize_extension


def _collect(base_dir: Path, allowed: frozenset[str]) -> list[tuple[int, str]]:
    if not base_dir.is_dir():
        return []

    found: list[tuple[int, str]] = []
    for path in base_dir.rglob("*"):
        if not path.is_file() or path.suffix.lower() not in allowed:
            continue
        found.append((int(path.stat().st_mtime), path.relative_to(base_dir).as_posix()))
    # Newest first; path as tie-breaker keeps pages stable.
    found.sort(key=lambda row: (-row[0], row[1]))
    return found


async def list_uploaded_files(
    base_dir: Path,
    allowed_extensions: Iterable[str],
    *,
    start: int = 0,
    size: int | None = None,
    url_prefix: str = "",
) -> UploadListOut:
    """
    Page through stored uploads below `base_dir` (the editor's "list images / list files" action).

    URLs are relative to `base_dir`, prefixed with `url_prefix` when given. `size` defaults to
    UPLOAD_LIST_PAGE_SIZE.
    """
    allowed = frozenset(normalize_extension(ext) for ext in allowed_extensions if ext.strip())
    start = max(start, 0)
    if size is None:
        size = get_settings().upload_list_page_size
    size = max(size, 1)

    rows = await asyncio.to_thread(_collect, base_dir, allowed)
    prefix = url_prefix.rstrip("/")
    page = [
        UploadedFileOut(url=f"{prefix}/{rel}" if prefix else rel, mtime=mtime)
        for mtime, rel in rows[start : start + size]
    ]
    return UploadListOut(items=page, start=start, total=len(rows))
