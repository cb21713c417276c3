"""
Width table for line features.

Maps highway/waterway tag values to a physical width in metres. Tables are
plain values owned by the caller; overrides return a new table.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..constants import (
    DEFAULT_ROAD_WIDTHS,
    DEFAULT_WATERWAY_WIDTHS,
    ROAD_FALLBACK_KEY,
    WATERWAY_FALLBACK_KEY,
    ErrorMessages,
)

logger = logging.getLogger(__name__)


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def _validated(overrides: Mapping[str, float] | None) -> dict[str, float]:
    result: dict[str, float] = {}
    for key, width in (overrides or {}).items():
        width = float(width)
        if width <= 0:
            raise ValueError(ErrorMessages.INVALID_WIDTH.format(key, width))
        result[_normalize(key)] = width
    return result


@dataclass(frozen=True)
class WidthTable:
    """Road and waterway widths in metres, keyed by normalized tag value."""

    road: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_ROAD_WIDTHS))
    waterway: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WATERWAY_WIDTHS))

    def with_overrides(
        self,
        road: Mapping[str, float] | None = None,
        waterway: Mapping[str, float] | None = None,
    ) -> "WidthTable":
        """Return a new table with the given widths layered on top."""
        if not road and not waterway:
            return self
        return WidthTable(
            road={**self.road, **_validated(road)},
            waterway={**self.waterway, **_validated(waterway)},
        )

    def road_width(self, tags: Mapping[str, str]) -> float:
        """Width for a highway, 0.0 when the tags carry no highway."""
        kind = _normalize(tags.get("highway"))
        if not kind:
            return 0.0
        return self.road.get(kind, self.road[ROAD_FALLBACK_KEY])

    def waterway_width(self, tags: Mapping[str, str]) -> float:
        """Width for a waterway line, 0.0 when the tags carry no waterway."""
        kind = _normalize(tags.get("waterway"))
        if not kind:
            return 0.0
        return self.waterway.get(kind, self.waterway[WATERWAY_FALLBACK_KEY])

    def as_dict(self) -> dict[str, dict[str, float]]:
        return {"road": dict(self.road), "waterway": dict(self.waterway)}
