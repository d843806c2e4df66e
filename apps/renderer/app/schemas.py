from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from apps.renderer.app.config import settings

DEFAULT_COLOR = "#5B3A1D"
DEFAULT_TITLE = "BAKE RECIPES"
DEFAULT_SUBTITLE = "Brown minimalist bakery template"


class PinRequest(BaseModel):
    """
    Body of POST /render. Every field is optional; a missing (or null)
    field falls back to the template default. Unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    main_image: str = Field(default_factory=lambda: settings.default_main_image)
    color: str = DEFAULT_COLOR
    title: str = DEFAULT_TITLE
    subtitle: str = DEFAULT_SUBTITLE
    # only PNG is ever produced; kept so clients can send it
    format: str = "png"

    @classmethod
    def from_payload(cls, payload: Optional[dict[str, Any]]) -> "PinRequest":
        data = {k: v for k, v in (payload or {}).items() if v is not None}
        return cls.model_validate(data)

    def log_params(self) -> dict[str, str]:
        img = self.main_image
        if img.startswith("data:"):
            img = f"{img.split(',', 1)[0]},<{len(img)} chars>"
        elif len(img) > 120:
            img = img[:117] + "..."
        return {
            "main_image": img,
            "color": self.color,
            "title": self.title,
            "subtitle": self.subtitle,
            "format": self.format,
        }


class HealthResponse(BaseModel):
    status: str
    env: str
    version: str
    fonts_cached: list[str]
