"""
Data models and schemas.
"""

from .document import (
    CurveRecord,
    LayerRecord,
    LinkedGeometryRecord,
    SplineDocument,
    Vec3Model,
)
from .layer import Layer, RibbonBuffers, ScratchBuffer
from .linked import DEFAULT_LINK_KIND, LinkedGeometryManager, LinkKind
from .presets import (
    DEFAULT_PRESET_NAME,
    DEFAULT_PRESETS,
    RoadDesignPreset,
    get_preset,
    resolve_preset,
)
from .spline import (
    AnalysisMode,
    AnalysisState,
    ConformanceMode,
    Curve,
    Discretization,
    Node,
)

__all__ = [
    # Documents
    "CurveRecord",
    "LayerRecord",
    "LinkedGeometryRecord",
    "SplineDocument",
    "Vec3Model",
    # Layers
    "Layer",
    "RibbonBuffers",
    "ScratchBuffer",
    # Linked geometry
    "DEFAULT_LINK_KIND",
    "LinkedGeometryManager",
    "LinkKind",
    # Presets
    "DEFAULT_PRESET_NAME",
    "DEFAULT_PRESETS",
    "RoadDesignPreset",
    "get_preset",
    "resolve_preset",
    # Curves
    "AnalysisMode",
    "AnalysisState",
    "ConformanceMode",
    "Curve",
    "Discretization",
    "Node",
]
