"""
Viewer core configuration.

Supports YAML-based configuration with dotted overrides.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union
import yaml


@dataclass
class MeshConfig:
    """Configuration for loading and preparing meshes."""
    target_extent: float = 2.0  # longest bounding-box axis after normalization
    compute_normals: bool = True

    def to_dict(self) -> dict:
        return {
            "target_extent": self.target_extent,
            "compute_normals": self.compute_normals,
        }


@dataclass
class CurvatureConfig:
    """Configuration for the curvature estimator."""
    mode: str = "none"  # none, gaussian, mean, max
    epsilon: float = 1e-4
    gaussian_area: str = "mixed"  # mixed, barycentric

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "epsilon": self.epsilon,
            "gaussian_area": self.gaussian_area,
        }


@dataclass
class PathConfig:
    """Configuration for the shortest-path solver."""
    strategy: str = "dijkstra"  # dijkstra, astar

    def to_dict(self) -> dict:
        return {"strategy": self.strategy}


@dataclass
class UVConfig:
    """Configuration for parameterization analysis."""
    area_epsilon: float = 1e-12
    distortion_color_cap: float = 4.0

    def to_dict(self) -> dict:
        return {
            "area_epsilon": self.area_epsilon,
            "distortion_color_cap": self.distortion_color_cap,
        }


@dataclass
class ViewerConfig:
    """Full configuration for a mesh session."""
    name: str = "default"
    mesh: MeshConfig = field(default_factory=MeshConfig)
    curvature: CurvatureConfig = field(default_factory=CurvatureConfig)
    path: PathConfig = field(default_factory=PathConfig)
    uv: UVConfig = field(default_factory=UVConfig)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "mesh": self.mesh.to_dict(),
            "curvature": self.curvature.to_dict(),
            "path": self.path.to_dict(),
            "uv": self.uv.to_dict(),
        }

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def load(cls, path: Union[str, Path]) -> ViewerConfig:
        """Load configuration from YAML file."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> ViewerConfig:
        """Create config from dictionary."""
        return cls(
            name=data.get("name", "default"),
            mesh=MeshConfig(**data.get("mesh", {})),
            curvature=CurvatureConfig(**data.get("curvature", {})),
            path=PathConfig(**data.get("path", {})),
            uv=UVConfig(**data.get("uv", {})),
        )

    def with_overrides(self, **kwargs) -> ViewerConfig:
        """Create new config with overrides; nested keys use dots, e.g. "path.strategy"."""
        data = self.to_dict()

        for key, value in kwargs.items():
            if "." in key:
                parts = key.split(".")
                d = data
                for part in parts[:-1]:
                    d = d[part]
                d[parts[-1]] = value
            else:
                data[key] = value

        return ViewerConfig.from_dict(data)


def create_default_config() -> ViewerConfig:
    """Create a default configuration."""
    return ViewerConfig()
