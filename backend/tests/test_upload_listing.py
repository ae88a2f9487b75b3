from __future__ import annotations

import os
from pathlib import Path

import pytest

from editor_uploads.core.config import get_settings
from editor_uploads.services.upload_listing import list_uploaded_files


def _touch(path: Path, mtime: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")
    os.utime(path, (mtime, mtime))


@pytest.mark.asyncio
async def test_list_uploaded_files_newest_first_and_filtered(tmp_path: Path) -> None:
    _touch(tmp_path / "20240101" / "old.png", 1_000)
    _touch(tmp_path / "20240102" / "new.JPG", 3_000)
    _touch(tmp_path / "20240102" / "mid.gif", 2_000)
    _touch(tmp_path / "20240102" / "notes.txt", 4_000)

    out = await list_uploaded_files(tmp_path, ["png", ".jpg", ".gif"], url_prefix="/static/uploads/")

    assert out.state == "SUCCESS"
    assert out.total == 3
    assert [f.url for f in out.items] == [
        "/static/uploads/20240102/new.JPG",
        "/static/uploads/20240102/mid.gif",
        "/static/uploads/20240101/old.png",
    ]
    assert [f.mtime for f in out.items] == [3_000, 2_000, 1_000]
    assert "list" in out.model_dump(by_alias=True)


@pytest.mark.asyncio
async def test_list_uploaded_files_pages(tmp_path: Path) -> None:
    for i in range(5):
        _touch(tmp_path / f"{i}.png", 1_000 + i)

    page = await list_uploaded_files(tmp_path, [".png"], start=1, size=2)

    assert page.start == 1
    assert page.total == 5
    assert [f.url for f in page.items] == ["3.png", "2.png"]


@pytest.mark.asyncio
async def test_list_uploaded_files_clamps_bounds_and_handles_missing_dir(tmp_path: Path) -> None:
    out = await list_uploaded_files(tmp_path / "missing", [".png"], start=-5, size=0)

    assert out.start == 0
    assert out.total == 0
    assert out.items == []


@pytest.mark.asyncio
async def test_list_uploaded_files_default_page_size_from_settings(storage_dir: Path, monkeypatch) -> None:
    monkeypatch.setenv("UPLOAD_LIST_PAGE_SIZE", "2")
    get_settings.cache_clear()
    for i in range(4):
        _touch(storage_dir / f"{i}.png", 1_000 + i)

    page = await list_uploaded_files(storage_dir, [".png"])

    assert page.total == 4
    assert [f.url for f in page.items] == ["3.png", "2.png"]
