"""
Value objects passed between the host and scripts.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ImageInfo(BaseModel):
    """Dimensions and metadata of an image on disk, as returned by img.load."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    size: int = Field(ge=0)
    mime: str | None = None


class ScriptRunResult(BaseModel):
    """Outcome of one script invocation inside the host error boundary."""

    script_name: str
    success: bool = True
    error: str | None = None
    log_lines: list[str] = Field(default_factory=list)
    result: Any = None
