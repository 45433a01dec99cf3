"""Persistence helpers for stored rating-system parameters."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.ratings.calculator import RatingParameters
from domain.ratings.config import RatingSystemConfig, parameters_from_config_json
from models import RatingSystem


def upsert_rating_system(
    session: Session,
    *,
    name: str,
    description: str | None,
    config_json: dict[str, Any],
) -> RatingSystem:
    """Create or update the system metadata row."""
    system = session.execute(
        select(RatingSystem).where(RatingSystem.name == name)
    ).scalar_one_or_none()
    if system is None:
        system = RatingSystem(
            name=name,
            description=description,
            config_json=config_json,
        )
        session.add(system)
    else:
        system.description = description
        system.config_json = config_json
        system.updated_at = datetime.now(UTC).replace(tzinfo=None)
    session.flush()
    return system


def store_system_config(session: Session, system_config: RatingSystemConfig) -> RatingSystem:
    return upsert_rating_system(
        session,
        name=system_config.name,
        description=system_config.description,
        config_json=system_config.as_config_json(),
    )


def fetch_stored_parameters(session: Session, name: str) -> RatingParameters | None:
    """Parameters saved under ``name``, or None when the system was never stored."""
    system = session.execute(
        select(RatingSystem).where(RatingSystem.name == name)
    ).scalar_one_or_none()
    if system is None:
        return None
    return parameters_from_config_json(dict(system.config_json), source=f"rating_systems[{name}]")
