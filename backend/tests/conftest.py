from __future__ import annotations

import sys
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from editor_uploads.core.config import get_settings  # noqa: E402
from editor_uploads.schemas.uploads import UploadConfig  # noqa: E402
from editor_uploads.services.uploader import Uploader  # noqa: E402


# 2024-03-05 07:08:09 local time, with a non-zero sub-second part.
FIXED_NOW_NS = int(datetime(2024, 3, 5, 7, 8, 9).timestamp()) * 1_000_000_000 + 123_456_789


@pytest.fixture
def storage_dir(tmp_path, monkeypatch) -> Iterator[Path]:
    storage = tmp_path / "storage"
    storage.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("UPLOAD_STORAGE_DIR", str(storage))
    monkeypatch.setenv("UPLOAD_URL_PREFIX", "/static/")
    get_settings.cache_clear()

    yield storage

    get_settings.cache_clear()


@pytest.fixture
def image_config() -> UploadConfig:
    return UploadConfig(
        path_format="uploads/image/{yyyy}{mm}{dd}/{hh}{ii}{ss}",
        max_size=16,
        allowed_extensions=[".png", ".jpg", ".gif"],
    )


@pytest.fixture
def uploader(image_config: UploadConfig, tmp_path: Path) -> Uploader:
    return Uploader(image_config, root_dir=tmp_path / "root", clock=lambda: FIXED_NOW_NS)


@pytest.fixture
def fixed_now_ns() -> int:
    return FIXED_NOW_NS
