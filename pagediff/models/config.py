"""Configuration models for the page comparison service."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from pagediff.models.comparison import Viewport

# Named viewports offered by the comparison UI.
DEVICE_PRESETS: dict[str, Viewport] = {
    "desktop": Viewport(width=1920, height=1080),
    "laptop": Viewport(width=1280, height=720),
    "ipad": Viewport(width=768, height=1024),
    "iphone-14": Viewport(width=390, height=844),
    "iphone-se": Viewport(width=375, height=667),
    "android": Viewport(width=360, height=640),
}


class BrowserConfig(BaseModel):
    headless: bool = True
    user_agent: Optional[str] = None
    locale: str = "en-US"
    timezone_id: str = "UTC"
    device_scale_factor: float = Field(default=1.0, gt=0)
    launch_args: list[str] = Field(default_factory=list)


class RenderConfig(BaseModel):
    """Timing knobs for loading and settling a page before capture."""

    navigation_timeout_ms: int = Field(default=30000, gt=0)
    settle_delay_ms: int = Field(default=1000, ge=0)

    # Lazy-load scroll pass
    scroll_step_px: int = Field(default=100, gt=0)
    scroll_interval_ms: int = Field(default=100, ge=0)
    max_scroll_ms: int = Field(default=30000, gt=0)
    max_scroll_steps: int = Field(default=2000, gt=0)
    post_scroll_delay_ms: int = Field(default=1500, ge=0)

    image_timeout_ms: int = Field(default=5000, gt=0)
    top_settle_delay_ms: int = Field(default=500, ge=0)
    screenshot_timeout_ms: int = Field(default=60000, gt=0)


class DiffConfig(BaseModel):
    threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    include_anti_aliased: bool = False
    alpha: float = Field(default=0.1, ge=0.0, le=1.0)
    diff_color: tuple[int, int, int] = (255, 0, 0)
    aa_color: tuple[int, int, int] = (255, 255, 0)


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 5001
    request_timeout_seconds: float = Field(default=300.0, gt=0)


class CompareConfig(BaseModel):
    # Artifacts
    artifacts_dir: str = "./screenshots"
    public_prefix: str = "/screenshots"

    default_viewport: Viewport = Field(default_factory=Viewport)

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def load(cls, path: str | Path) -> "CompareConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
