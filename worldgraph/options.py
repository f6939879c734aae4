"""Loader configuration data models for the worldgraph service."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

DEFAULT_EXTENSION = ".json"
DEFAULT_TILE_SIZE = 32
DEFAULT_PIXELS_PER_METRE = 32.0


@dataclass(slots=True)
class LoaderOptions:
    """Configuration for locating map files and scaling their geometry.

    The structure is safe to serialize to and from JSON using the
    :meth:`to_json_dict` / :meth:`from_json_dict` helpers, which is how the
    CLI reads ``--config`` files.
    """

    root_dir: Path = field(default_factory=lambda: Path("worlds"))
    """Directory containing the outdoor (root) map."""

    buildings_dir: Path = field(default_factory=lambda: Path("worlds") / "buildings")
    """Directory containing building interior maps."""

    extension: str = DEFAULT_EXTENSION
    """Fixed file extension appended to map names."""

    tile_size: int = DEFAULT_TILE_SIZE
    """Pixel size of a single tile (the tileset resolution)."""

    pixels_per_metre: float = DEFAULT_PIXELS_PER_METRE
    """Divisor converting pixel-space rectangles into physics units."""

    border_thickness: Optional[float] = None
    """Thickness of the map border rectangles; defaults to one tile."""

    border_padding: Optional[float] = None
    """Gap between the map edge and its border; defaults to a quarter tile."""

    extras: Dict[str, Any] = field(default_factory=dict)
    """Arbitrary additional flags kept for forward compatibility."""

    def __post_init__(self) -> None:
        self.root_dir = Path(self.root_dir)
        self.buildings_dir = Path(self.buildings_dir)
        if self.tile_size <= 0:
            raise ValueError(f"tile_size must be positive; got {self.tile_size}")
        if self.pixels_per_metre <= 0:
            raise ValueError(f"pixels_per_metre must be positive; got {self.pixels_per_metre}")
        if self.extension and not self.extension.startswith("."):
            self.extension = "." + self.extension

    @property
    def effective_border_thickness(self) -> float:
        if self.border_thickness is not None:
            return float(self.border_thickness)
        return float(self.tile_size)

    @property
    def effective_border_padding(self) -> float:
        if self.border_padding is not None:
            return float(self.border_padding)
        return self.tile_size / 4

    def map_path(self, name: str, is_building: bool) -> Path:
        """Return the file path for the map called ``name``."""

        root = self.buildings_dir if is_building else self.root_dir
        return root / f"{name}{self.extension}"

    def to_json_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable dictionary representation."""

        return {
            "root_dir": str(self.root_dir),
            "buildings_dir": str(self.buildings_dir),
            "extension": self.extension,
            "tile_size": self.tile_size,
            "pixels_per_metre": self.pixels_per_metre,
            "border_thickness": self.border_thickness,
            "border_padding": self.border_padding,
            "extras": dict(self.extras),
        }

    @classmethod
    def from_json_dict(cls, payload: Dict[str, Any], *, base_dir: Optional[Path] = None) -> "LoaderOptions":
        """Build options from a mapping, resolving relative dirs against ``base_dir``.

        Unknown keys are kept under ``extras`` rather than rejected.
        """

        if not isinstance(payload, dict):
            raise ValueError(f"options must be a JSON object; got {type(payload).__name__}")

        known = {
            "root_dir",
            "buildings_dir",
            "extension",
            "tile_size",
            "pixels_per_metre",
            "border_thickness",
            "border_padding",
            "extras",
        }
        kwargs: Dict[str, Any] = {}
        for key in ("root_dir", "buildings_dir"):
            if key in payload:
                path = Path(payload[key])
                if base_dir is not None and not path.is_absolute():
                    path = base_dir / path
                kwargs[key] = path
        if "extension" in payload:
            kwargs["extension"] = str(payload["extension"])
        for key in ("tile_size",):
            if key in payload:
                value = payload[key]
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"{key} must be an integer; got {value!r}")
                kwargs[key] = value
        for key in ("pixels_per_metre", "border_thickness", "border_padding"):
            if key in payload and payload[key] is not None:
                value = payload[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValueError(f"{key} must be a number; got {value!r}")
                kwargs[key] = float(value)

        extras = dict(payload.get("extras") or {})
        extras.update({k: v for k, v in payload.items() if k not in known})
        kwargs["extras"] = extras
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "LoaderOptions":
        """Read options from a JSON file; relative dirs resolve next to it."""

        config_path = Path(path)
        try:
            text = config_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValueError(f"Failed to read config file {str(config_path)!r}: {exc}") from exc
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in config file {str(config_path)!r}: {exc}") from exc
        return cls.from_json_dict(payload, base_dir=config_path.parent)
