"""Load rating system definitions from TOML files."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from domain.config_base import BaseSystemConfig, load_system_config, load_system_configs
from domain.ratings.calculator import RatingParameters

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[3] / "configs" / "ratings"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "default.toml"


@dataclass(frozen=True)
class ReplaySettings:
    lock_timeout_seconds: float = 30.0
    timeout_seconds: float = 120.0
    batch_size: int = 5000


@dataclass(frozen=True)
class RatingSystemConfig(BaseSystemConfig):
    """Configuration for one rating system and its history replays."""

    parameters: RatingParameters
    replay: ReplaySettings = field(default_factory=ReplaySettings)

    def as_config_json(self) -> dict[str, Any]:
        return {
            "initial_rating": self.parameters.initial_rating,
            "k_factor": self.parameters.k_factor,
            "k_perf": self.parameters.k_perf,
            "scale": self.parameters.scale,
            "lock_timeout_seconds": self.replay.lock_timeout_seconds,
            "timeout_seconds": self.replay.timeout_seconds,
            "batch_size": self.replay.batch_size,
        }


def load_rating_system_configs(config_dir: Path = DEFAULT_CONFIG_DIR) -> list[RatingSystemConfig]:
    """Load and validate all rating system TOML config files in a directory."""
    return load_system_configs(
        config_dir,
        _parse_rating_system_config,
        duplicate_name_label="rating",
    )


def load_rating_system_config(file_path: Path = DEFAULT_CONFIG_FILE) -> RatingSystemConfig:
    """Load and validate one rating system TOML config file."""
    return load_system_config(file_path, _parse_rating_system_config)


def parameters_from_config_json(config_json: dict[str, Any], *, source: str) -> RatingParameters:
    """Rebuild parameters from a stored ``rating_systems.config_json`` payload."""
    parameters = _parse_parameters(config_json)
    _validate_parameters(source=source, parameters=parameters)
    return parameters


def _parse_parameters(rating_raw: dict[str, Any]) -> RatingParameters:
    defaults = RatingParameters()
    return RatingParameters(
        initial_rating=float(rating_raw.get("initial_rating", defaults.initial_rating)),
        k_factor=float(rating_raw.get("k_factor", defaults.k_factor)),
        k_perf=float(rating_raw.get("k_perf", defaults.k_perf)),
        scale=float(rating_raw.get("scale", defaults.scale)),
    )


def _parse_rating_system_config(raw: dict[str, Any], file_path: Path) -> RatingSystemConfig:
    system_raw = raw.get("system", {})
    rating_raw = raw.get("rating", {})
    replay_raw = raw.get("replay", {})

    name = str(system_raw.get("name", "")).strip()
    if not name:
        raise ValueError(f"{file_path}: [system].name is required")

    description_value = system_raw.get("description")
    description = None if description_value is None else str(description_value)

    parameters = _parse_parameters(rating_raw)
    _validate_parameters(source=str(file_path), parameters=parameters)

    replay_defaults = ReplaySettings()
    replay = ReplaySettings(
        lock_timeout_seconds=float(
            replay_raw.get("lock_timeout_seconds", replay_defaults.lock_timeout_seconds)
        ),
        timeout_seconds=float(replay_raw.get("timeout_seconds", replay_defaults.timeout_seconds)),
        batch_size=int(replay_raw.get("batch_size", replay_defaults.batch_size)),
    )
    _validate_replay_settings(file_path=file_path, replay=replay)

    return RatingSystemConfig(
        name=name,
        description=description,
        file_path=file_path,
        parameters=parameters,
        replay=replay,
    )


def _validate_parameters(*, source: str, parameters: RatingParameters) -> None:
    for field_name in ("initial_rating", "k_factor", "k_perf", "scale"):
        if not math.isfinite(getattr(parameters, field_name)):
            raise ValueError(f"{source}: [rating].{field_name} must be a finite number")
    if parameters.initial_rating <= 0.0:
        raise ValueError(f"{source}: [rating].initial_rating must be > 0")
    if parameters.k_factor <= 0.0:
        raise ValueError(f"{source}: [rating].k_factor must be > 0")
    if parameters.k_perf < 0.0:
        raise ValueError(f"{source}: [rating].k_perf must be >= 0")
    if parameters.scale <= 0.0:
        raise ValueError(f"{source}: [rating].scale must be > 0")


def _validate_replay_settings(*, file_path: Path, replay: ReplaySettings) -> None:
    for field_name in ("lock_timeout_seconds", "timeout_seconds"):
        if not math.isfinite(getattr(replay, field_name)):
            raise ValueError(f"{file_path}: [replay].{field_name} must be a finite number")
    if replay.lock_timeout_seconds <= 0.0:
        raise ValueError(f"{file_path}: [replay].lock_timeout_seconds must be > 0")
    if replay.timeout_seconds <= 0.0:
        raise ValueError(f"{file_path}: [replay].timeout_seconds must be > 0")
    if replay.batch_size <= 0:
        raise ValueError(f"{file_path}: [replay].batch_size must be > 0")
