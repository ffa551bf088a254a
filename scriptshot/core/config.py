import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "ScriptShot"
    LOG_LEVEL: str = "INFO"

    # Base directory for files.* and stored scripts (<root>/scripts)
    SCRIPTS_STORAGE_ROOT: Path = Path.home() / ".scriptshot"
    DEFAULT_SCRIPT_NAME: str = "rotate_screenshot.py"
    TRIGGER_DEBOUNCE_MS: int = 800

    # Script execution
    SCRIPT_EXEC_TIMEOUT: int | None = None
    SCRIPT_EXTRA_MODULES: str = ""

    # img.rotate and friends: overwrite the source, or write a sibling copy
    IMG_ROTATE_IN_PLACE: bool = True
    IMG_OUTPUT_DIR: Path | None = None

    # share.image target; unset means sharing is unavailable
    SHARE_WEBHOOK_URL: str | None = None
    SHARE_TIMEOUT: float = 30.0

    @field_validator("LOG_LEVEL")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


settings = Settings()  # type: ignore


def configure_logging(level: str | None = None) -> None:
    """Basic logging setup for embedding hosts that have none of their own."""
    logging.basicConfig(
        level=level or settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
