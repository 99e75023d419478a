"""Configuration management."""

import os
from pathlib import Path
from typing import Dict, Optional, Tuple
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Frame rate shared by every scene of a project
FPS = 30

# Length used when a project has no renderable scenes (5s @ 30fps)
FALLBACK_FRAMES = 150

# Scene length when upstream never recorded a narration duration
DEFAULT_SCENE_SECONDS = 5.0

RESOLUTIONS: Dict[str, Tuple[int, int]] = {
    "16:9": (1920, 1080),
    "9:16": (1080, 1920),
    "1:1": (1080, 1080),
}


class Config(BaseModel):
    """Application configuration."""

    # Paths
    workspace: Path = Field(
        default_factory=lambda: Path(os.getenv("SCENEREEL_WORKSPACE", ".")),
        description="Workspace directory"
    )
    asset_cache_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("SCENEREEL_ASSET_CACHE", ".scenereel/assets")
        ),
        description="Directory for downloaded media and narration files"
    )
    font_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.environ["SCENEREEL_FONT_DIR"])
            if os.getenv("SCENEREEL_FONT_DIR") else None
        ),
        description="Directory searched first for caption TrueType fonts"
    )

    # Network
    request_timeout: float = Field(
        default_factory=lambda: float(os.getenv("SCENEREEL_REQUEST_TIMEOUT", "60")),
        description="Timeout in seconds for asset downloads"
    )

    class Config:
        """Pydantic config."""
        frozen = False

    def resolve_cache_dir(self) -> Path:
        """Return the asset cache directory, anchored at the workspace."""
        if self.asset_cache_dir.is_absolute():
            return self.asset_cache_dir
        return self.workspace / self.asset_cache_dir


# Global config instance
config = Config()
