from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from editor_uploads.core.enums import UploadProfile
from editor_uploads.schemas.uploads import UploadConfig


IMAGE_EXTENSIONS = ".png,.jpg,.jpeg,.gif,.bmp,.webp"
VIDEO_EXTENSIONS = ".flv,.swf,.mkv,.avi,.rm,.rmvb,.mpeg,.mpg,.ogg,.ogv,.mov,.wmv,.mp4,.webm,.mp3,.wav,.mid"
FILE_EXTENSIONS = ",".join(
    (
        IMAGE_EXTENSIONS,
        VIDEO_EXTENSIONS,
        ".rar,.zip,.tar,.gz,.7z,.bz2,.cab,.iso",
        ".doc,.docx,.xls,.xlsx,.ppt,.pptx,.pdf,.txt,.md,.xml",
    )
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    upload_storage_dir: Path = Field(Path("/data"), alias="UPLOAD_STORAGE_DIR")
    upload_url_prefix: str = Field("", alias="UPLOAD_URL_PREFIX")
    upload_remote_timeout_seconds: float = Field(5.0, alias="UPLOAD_REMOTE_TIMEOUT_SECONDS")
    # Opt-in guard against fetching remote images from private/loopback addresses.
    upload_block_private_hosts: bool = Field(False, alias="UPLOAD_BLOCK_PRIVATE_HOSTS")
    upload_list_page_size: int = Field(20, alias="UPLOAD_LIST_PAGE_SIZE")

    # --- Profiles (one per editor action) ---
    image_path_format: str = Field("uploads/image/{yyyy}{mm}{dd}/{time}{rand:6}", alias="IMAGE_PATH_FORMAT")
    image_max_size: int = Field(2_048_000, alias="IMAGE_MAX_SIZE")
    image_allowed_extensions: str = Field(IMAGE_EXTENSIONS, alias="IMAGE_ALLOWED_EXTENSIONS")

    scrawl_path_format: str = Field("uploads/image/{yyyy}{mm}{dd}/{time}{rand:6}", alias="SCRAWL_PATH_FORMAT")
    scrawl_max_size: int = Field(2_048_000, alias="SCRAWL_MAX_SIZE")
    scrawl_allowed_extensions: str = Field(".png", alias="SCRAWL_ALLOWED_EXTENSIONS")

    catcher_path_format: str = Field("uploads/image/{yyyy}{mm}{dd}/{time}{rand:6}", alias="CATCHER_PATH_FORMAT")
    catcher_max_size: int = Field(2_048_000, alias="CATCHER_MAX_SIZE")
    catcher_allowed_extensions: str = Field(IMAGE_EXTENSIONS, alias="CATCHER_ALLOWED_EXTENSIONS")

    video_path_format: str = Field("uploads/video/{yyyy}{mm}{dd}/{time}{rand:6}", alias="VIDEO_PATH_FORMAT")
    video_max_size: int = Field(102_400_000, alias="VIDEO_MAX_SIZE")
    video_allowed_extensions: str = Field(VIDEO_EXTENSIONS, alias="VIDEO_ALLOWED_EXTENSIONS")

    file_path_format: str = Field("uploads/file/{yyyy}{mm}{dd}/{time}{rand:6}", alias="FILE_PATH_FORMAT")
    file_max_size: int = Field(51_200_000, alias="FILE_MAX_SIZE")
    file_allowed_extensions: str = Field(FILE_EXTENSIONS, alias="FILE_ALLOWED_EXTENSIONS")

    @field_validator("upload_url_prefix", mode="before")
    @classmethod
    def _normalize_url_prefix(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @field_validator(
        "image_path_format",
        "scrawl_path_format",
        "catcher_path_format",
        "video_path_format",
        "file_path_format",
        mode="before",
    )
    @classmethod
    def _normalize_path_format(cls, v: object) -> object:
        if isinstance(v, str):
            path_format = v.strip()
            if not path_format:
                raise ValueError("Path format must not be empty")
            return path_format
        return v

    @field_validator("upload_remote_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("UPLOAD_REMOTE_TIMEOUT_SECONDS must be positive")
        return v

    def upload_config(self, profile: UploadProfile, *, original_name: str | None = None) -> UploadConfig:
        prefix = profile.value.lower()
        return UploadConfig(
            path_format=getattr(self, f"{prefix}_path_format"),
            max_size=getattr(self, f"{prefix}_max_size"),
            allowed_extensions=getattr(self, f"{prefix}_allowed_extensions"),
            original_name=original_name,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
