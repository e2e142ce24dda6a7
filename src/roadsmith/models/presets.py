"""
Road design presets used for homologation.

A preset bundles the four design limits a curve is scored against.
Slopes and width gradients are dimensionless ratios (rise over run),
radii are in meters and banking is in degrees.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from roadsmith.core.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoadDesignPreset:
    """
    Design limits for one class of road.

    Attributes:
        name: Display name, also the registry key
        max_slope: Maximum longitudinal slope (rise / run)
        min_radius: Minimum horizontal curve radius (meters)
        max_banking: Maximum bank angle (degrees)
        max_width_gradient: Maximum change in width per meter travelled
    """

    name: str
    max_slope: float
    min_radius: float
    max_banking: float
    max_width_gradient: float

    def __post_init__(self) -> None:
        """Validate preset limits."""
        if self.max_slope <= 0:
            raise ValueError(f"max_slope must be positive, got {self.max_slope}")
        if self.min_radius <= 0:
            raise ValueError(f"min_radius must be positive, got {self.min_radius}")
        if not 0 < self.max_banking < 90:
            raise ValueError(f"max_banking must be in (0, 90) degrees, got {self.max_banking}")
        if self.max_width_gradient <= 0:
            raise ValueError(
                f"max_width_gradient must be positive, got {self.max_width_gradient}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert preset to dictionary."""
        return {
            "name": self.name,
            "max_slope": self.max_slope,
            "min_radius": self.min_radius,
            "max_banking": self.max_banking,
            "max_width_gradient": self.max_width_gradient,
        }


DEFAULT_PRESETS: Dict[str, RoadDesignPreset] = {
    preset.name: preset
    for preset in (
        RoadDesignPreset("Highway", 0.05, 400.0, 8.0, 0.02),
        RoadDesignPreset("Rural Road", 0.08, 120.0, 6.0, 0.05),
        RoadDesignPreset("Urban Street", 0.10, 40.0, 4.0, 0.10),
        RoadDesignPreset("Mountain Pass", 0.12, 25.0, 7.0, 0.08),
        RoadDesignPreset("Forest Track", 0.18, 12.0, 5.0, 0.15),
        RoadDesignPreset("Race Track", 0.10, 30.0, 15.0, 0.05),
    )
}

DEFAULT_PRESET_NAME = "Rural Road"


def get_preset(
    name: str, presets: Optional[Dict[str, RoadDesignPreset]] = None
) -> RoadDesignPreset:
    """
    Look up a preset by name.

    Args:
        name: Preset name
        presets: Optional registry to search instead of DEFAULT_PRESETS

    Returns:
        The matching preset

    Raises:
        ValidationError: If no preset has this name
    """
    registry = presets or DEFAULT_PRESETS
    preset = registry.get(name)
    if preset is None:
        raise ValidationError(
            f"Unknown road design preset '{name}'",
            field="preset_name",
            details={"available": sorted(registry)},
        )
    return preset


def resolve_preset(
    name: Optional[str], presets: Optional[Dict[str, RoadDesignPreset]] = None
) -> RoadDesignPreset:
    """Like :func:`get_preset`, falling back to the default preset for unknown names."""
    registry = presets or DEFAULT_PRESETS
    if name in registry:
        return registry[name]
    logger.warning(f"Unknown preset '{name}', using '{DEFAULT_PRESET_NAME}'")
    return registry.get(DEFAULT_PRESET_NAME) or DEFAULT_PRESETS[DEFAULT_PRESET_NAME]
