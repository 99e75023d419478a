"""Manifest data model."""

from typing import List
from pathlib import Path
from pydantic import BaseModel, Field
import yaml

from .scene import Scene, SceneStatus
from .settings import ProjectSettings


class Manifest(BaseModel):
    """Render manifest: project settings plus its scene list."""

    project_name: str = Field(..., description="Project name")
    settings: ProjectSettings = Field(
        default_factory=ProjectSettings, description="Project style settings"
    )
    scenes: List[Scene] = Field(default_factory=list, description="List of scenes")

    class Config:
        """Pydantic config."""
        frozen = False

    @classmethod
    def from_yaml(cls, path: Path) -> "Manifest":
        """Load manifest from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save manifest to YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(
                self.model_dump(mode="json", by_alias=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def ready_scenes(self) -> List[Scene]:
        """Scenes whose generation finished, in playback order."""
        ready = [scene for scene in self.scenes if scene.status == SceneStatus.READY]
        return sorted(ready, key=lambda scene: scene.order_index)
