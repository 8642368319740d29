"""Tunable constants for border cropping, from YAML files or environment.

Environment variables:
    CROPBORDERS_WHITE_THRESHOLD: Channel value above which a pixel is near-white (default: 170)
    CROPBORDERS_BLACK_THRESHOLD: Channel value below which a pixel is near-black (default: 5)
    CROPBORDERS_DOWNSCALE: Linear scale of the scan thumbnail, in (0, 1] (default: 0.4)
    CROPBORDERS_WORKERS: Threads used to scan row bands (default: 1)
"""

import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Mapping, Optional

import yaml

from .core.downsampler import DEFAULT_DOWNSCALE
from .core.models import CropBordersError, Thresholds

ENV_PREFIX = "CROPBORDERS_"


class CropConfigError(CropBordersError):
    """Raised when configuration values are missing or out of range."""
    pass


@dataclass(frozen=True)
class CropConfig:
    """Thresholds, scan scale and parallelism for a crop processor."""

    white_threshold: int = 0xAA
    black_threshold: int = 0x05
    downscale: float = DEFAULT_DOWNSCALE
    workers: int = 1

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        for name in ("white_threshold", "black_threshold"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 255:
                raise CropConfigError(f"{name} must be an integer in [0, 255], got {value!r}")
        if not isinstance(self.downscale, (int, float)) or not 0 < self.downscale <= 1:
            raise CropConfigError(f"downscale must be in (0, 1], got {self.downscale!r}")
        if not isinstance(self.workers, int) or self.workers < 1:
            raise CropConfigError(f"workers must be a positive integer, got {self.workers!r}")

    @property
    def thresholds(self) -> Thresholds:
        return Thresholds(white=self.white_threshold, black=self.black_threshold)

    def to_dict(self) -> dict:
        return asdict(self)

    def merge(self, **overrides) -> "CropConfig":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise CropConfigError(f"Unknown config key(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping) -> "CropConfig":
        return cls().merge(**dict(data))

    @classmethod
    def from_yaml(cls, config_path: str | Path, base: Optional["CropConfig"] = None) -> "CropConfig":
        """Load configuration from a YAML mapping; missing keys keep base values."""
        path = Path(config_path)
        if not path.exists():
            raise CropConfigError(f"Config file not found: {config_path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise CropConfigError(f"Invalid YAML in {config_path}: {e}")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise CropConfigError(f"Config file must contain a mapping: {config_path}")

        return (base or cls()).merge(**data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CropConfig":
        """Build configuration from CROPBORDERS_* environment variables."""
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            caster = float if f.name == "downscale" else int
            try:
                values[f.name] = caster(raw)
            except ValueError:
                raise CropConfigError(f"{ENV_PREFIX + f.name.upper()} is not a valid number: {raw!r}")
        return cls(**values)
