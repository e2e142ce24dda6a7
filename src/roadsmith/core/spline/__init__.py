"""
Curve editing engine.

This module provides:
- Discretization of control nodes into dense ribbon samples
- Homologation analysis against road design presets, and a live optimizer
- Layer emission to linked geometry
- Structural edits (split, join, flip, simplify)
- An editing session that owns the curves and runs the per-frame update
- Conversion to and from saved documents
"""

from roadsmith.core.spline.arena import CurveArena, CurveHandle
from roadsmith.core.spline.discretizer import CurveDiscretizer, DiscretizerConfig
from roadsmith.core.spline.editing import (
    StructuralEditor,
    join_geometry,
    split_loop_geometry,
    split_open_geometry,
)
from roadsmith.core.spline.homologation import HomologationAnalyzer
from roadsmith.core.spline.layers import LayerEmitter
from roadsmith.core.spline.optimizer import HomologationOptimizer, OptimizerConfig
from roadsmith.core.spline.persistence import (
    build_document,
    deserialize_curve,
    load_document,
    serialize_curve,
)
from roadsmith.core.spline.session import RoadEditorSession

__all__ = [
    "CurveArena",
    "CurveHandle",
    "CurveDiscretizer",
    "DiscretizerConfig",
    "StructuralEditor",
    "join_geometry",
    "split_loop_geometry",
    "split_open_geometry",
    "HomologationAnalyzer",
    "LayerEmitter",
    "HomologationOptimizer",
    "OptimizerConfig",
    "build_document",
    "deserialize_curve",
    "load_document",
    "serialize_curve",
    "RoadEditorSession",
]
