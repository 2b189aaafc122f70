"""Application configuration via pydantic-settings."""

import os
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Serving
    STATIC_MOUNT_PATH: str = "/"
    STATIC_FALLBACK_TO_ROOT: bool = False
    STATIC_INDEX_FILE: str = "index.html"

    # Pre-built artifacts the host app loads at startup (SQLite bundle wins)
    STATIC_BUNDLE: Optional[str] = None
    STATIC_MODULE: Optional[str] = None

    # Code generation
    GENERATED_FILENAME: str = "generated_resources.py"
    GENERATED_FN: str = "generate"

    # External build step
    NPM_EXECUTABLE: str = "npm"
    BUILD_TIMEOUT: Optional[float] = None

    LOG_LEVEL: str = "INFO"

    @property
    def mount_path(self) -> str:
        """Mount prefix without a trailing slash ("" for the root)."""
        stripped = self.STATIC_MOUNT_PATH.strip("/")
        return f"/{stripped}" if stripped else ""


def _build_settings() -> Settings:
    """Build settings, fixing relative artifact paths to be absolute."""
    s = Settings()
    if s.STATIC_BUNDLE and not os.path.isabs(s.STATIC_BUNDLE):
        s.STATIC_BUNDLE = os.path.abspath(s.STATIC_BUNDLE)
    if s.STATIC_MODULE and not os.path.isabs(s.STATIC_MODULE):
        s.STATIC_MODULE = os.path.abspath(s.STATIC_MODULE)
    return s


settings = _build_settings()
