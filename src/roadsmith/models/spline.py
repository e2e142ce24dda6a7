"""
Curve model.

A curve holds the authored control nodes (positions, widths, normals), the
derived discretization the engine rebuilds whenever the curve is dirty, the
homologation state and the ordered layer stack.
"""

import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

import numpy as np

from roadsmith.core.errors import GeometryError
from roadsmith.models.layer import Layer
from roadsmith.models.presets import DEFAULT_PRESET_NAME

DEFAULT_NODE_WIDTH = 10.0
DEFAULT_BANK_STRENGTH = 0.5
DEFAULT_AUTO_BANK_FALLOFF = 0.6


class AnalysisMode(IntEnum):
    """Metric scored by homologation analysis and targeted by the optimizer."""

    SLOPE = 0
    RADIUS = 1
    BANKING = 2
    WIDTH = 3


class ConformanceMode(str, Enum):
    """How discretized samples relate to the terrain."""

    FREE = "free"
    AUTO_BANKING = "auto_banking"
    CONFORM_TO_TERRAIN = "conform_to_terrain"


class Node(NamedTuple):
    """Read-only view of one control node."""

    position: np.ndarray
    width: float
    normal: np.ndarray


def _empty_vectors() -> np.ndarray:
    return np.zeros((0, 3))


def _empty_scalars() -> np.ndarray:
    return np.zeros(0)


@dataclass
class Discretization:
    """
    Dense samples derived from a curve's control nodes.

    Attributes:
        points: (m, 3) sample positions
        widths: (m,) sample widths
        tangents: (m, 3) unit tangents
        binormals: (m, 3) unit vectors pointing to the right of travel
        normals: (m, 3) unit up vectors, orthogonal to the tangent
        disc_map: (n,) sample index of each control node
    """

    points: np.ndarray = field(default_factory=_empty_vectors)
    widths: np.ndarray = field(default_factory=_empty_scalars)
    tangents: np.ndarray = field(default_factory=_empty_vectors)
    binormals: np.ndarray = field(default_factory=_empty_vectors)
    normals: np.ndarray = field(default_factory=_empty_vectors)
    disc_map: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=int))

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    def clear(self) -> None:
        """Drop all samples."""
        self.points = _empty_vectors()
        self.widths = _empty_scalars()
        self.tangents = _empty_vectors()
        self.binormals = _empty_vectors()
        self.normals = _empty_vectors()
        self.disc_map = np.zeros(0, dtype=int)


@dataclass
class AnalysisState:
    """
    Homologation scores for the active metric.

    Attributes:
        mode: Metric the scores belong to
        scores: (m,) normalised violation per sample, 0 = compliant, 1 = worst
        worst_index: Sample index of the worst violation, None when compliant
        worst_score: Score at ``worst_index`` (0 when compliant)
    """

    mode: AnalysisMode = AnalysisMode.SLOPE
    scores: np.ndarray = field(default_factory=_empty_scalars)
    worst_index: Optional[int] = None
    worst_score: float = 0.0

    def clear(self) -> None:
        self.scores = _empty_scalars()
        self.worst_index = None
        self.worst_score = 0.0

    @property
    def is_compliant(self) -> bool:
        return self.worst_score <= 0.0


@dataclass
class Curve:
    """
    Authored road curve.

    Attributes:
        name: Display name
        id: Unique identifier
        positions: (n, 3) control node positions
        widths: (n,) control node widths, never negative
        normals: (n, 3) unit control node up vectors
        is_enabled: Whether the curve participates in updates
        is_loop: Whether the last node connects back to the first
        is_conform_to_terrain: Snap samples to the terrain surface
        is_auto_banking: Bank samples into turns automatically
        bank_strength: Auto-banking strength
        auto_bank_falloff: Auto-banking attenuation exponent away from nodes
        dirty: Whether derived data must be rebuilt
        is_optimising: Whether live optimisation runs on this curve
        preset_name: Homologation preset name
        discretization: Derived samples
        analysis: Homologation state
        road_length: Polyline length of the control nodes
        layers: Ordered layer stack
    """

    name: str = "Curve"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    positions: np.ndarray = field(default_factory=_empty_vectors)
    widths: np.ndarray = field(default_factory=_empty_scalars)
    normals: np.ndarray = field(default_factory=_empty_vectors)
    is_enabled: bool = True
    is_loop: bool = False
    is_conform_to_terrain: bool = False
    is_auto_banking: bool = False
    bank_strength: float = DEFAULT_BANK_STRENGTH
    auto_bank_falloff: float = DEFAULT_AUTO_BANK_FALLOFF
    dirty: bool = False
    is_optimising: bool = False
    preset_name: str = DEFAULT_PRESET_NAME
    discretization: Discretization = field(default_factory=Discretization)
    analysis: AnalysisState = field(default_factory=AnalysisState)
    road_length: float = 0.0
    layers: List[Layer] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Coerce node arrays and validate their lengths."""
        self.positions = np.array(self.positions, dtype=float).reshape(-1, 3)
        self.widths = np.maximum(np.array(self.widths, dtype=float).reshape(-1), 0.0)
        self.normals = _unit_rows(np.array(self.normals, dtype=float).reshape(-1, 3))
        self._check_lengths()

    def _check_lengths(self) -> None:
        n = len(self.positions)
        if len(self.widths) != n or len(self.normals) != n:
            raise GeometryError(
                "Node arrays must have equal length",
                curve_id=self.id,
                details={
                    "positions": n,
                    "widths": len(self.widths),
                    "normals": len(self.normals),
                },
            )

    def __len__(self) -> int:
        return len(self.positions)

    @property
    def node_count(self) -> int:
        return len(self.positions)

    @property
    def conformance_mode(self) -> ConformanceMode:
        """Active discretization mode; terrain conformance wins over auto-banking."""
        if self.is_conform_to_terrain:
            return ConformanceMode.CONFORM_TO_TERRAIN
        if self.is_auto_banking:
            return ConformanceMode.AUTO_BANKING
        return ConformanceMode.FREE

    def node(self, index: int) -> Node:
        return Node(self.positions[index].copy(), float(self.widths[index]), self.normals[index].copy())

    def mark_dirty(self) -> None:
        self.dirty = True

    def set_nodes(
        self,
        positions: Sequence[Sequence[float]],
        widths: Optional[Sequence[float]] = None,
        normals: Optional[Sequence[Sequence[float]]] = None,
    ) -> None:
        """
        Replace all control nodes.

        Args:
            positions: (n, 3) node positions
            widths: Node widths, defaults to DEFAULT_NODE_WIDTH
            normals: Node normals, defaults to straight up
        """
        positions = np.array(positions, dtype=float).reshape(-1, 3)
        n = len(positions)
        if widths is None:
            widths = np.full(n, DEFAULT_NODE_WIDTH)
        if normals is None:
            normals = np.tile([0.0, 0.0, 1.0], (n, 1))
        self.positions = positions
        self.widths = np.maximum(np.array(widths, dtype=float).reshape(-1), 0.0)
        self.normals = _unit_rows(np.array(normals, dtype=float).reshape(-1, 3))
        self._check_lengths()
        self.dirty = True

    def add_node(
        self,
        position: Sequence[float],
        width: float = DEFAULT_NODE_WIDTH,
        normal: Sequence[float] = (0.0, 0.0, 1.0),
    ) -> int:
        """Append a node and return its index."""
        return self.insert_node(len(self.positions), position, width, normal)

    def insert_node(
        self,
        index: int,
        position: Sequence[float],
        width: float = DEFAULT_NODE_WIDTH,
        normal: Sequence[float] = (0.0, 0.0, 1.0),
    ) -> int:
        """Insert a node before ``index`` and return the index it landed at."""
        index = max(0, min(index, len(self.positions)))
        self.positions = np.insert(self.positions, index, np.asarray(position, dtype=float), axis=0)
        self.widths = np.insert(self.widths, index, max(float(width), 0.0))
        self.normals = np.insert(self.normals, index, _unit_rows(np.array([normal], dtype=float))[0], axis=0)
        self.dirty = True
        return index

    def remove_node(self, index: int) -> None:
        self.positions = np.delete(self.positions, index, axis=0)
        self.widths = np.delete(self.widths, index)
        self.normals = np.delete(self.normals, index, axis=0)
        self.dirty = True

    def set_node(
        self,
        index: int,
        position: Optional[Sequence[float]] = None,
        width: Optional[float] = None,
        normal: Optional[Sequence[float]] = None,
    ) -> None:
        """Edit one node in place; omitted fields are left untouched."""
        if position is not None:
            self.positions[index] = np.asarray(position, dtype=float)
        if width is not None:
            self.widths[index] = max(float(width), 0.0)
        if normal is not None:
            self.normals[index] = _unit_rows(np.array([normal], dtype=float))[0]
        self.dirty = True

    def clear_derived(self) -> None:
        """Drop discretization, analysis and cached length."""
        self.discretization.clear()
        self.analysis.clear()
        self.road_length = 0.0

    def snapshot(self) -> Dict[str, Any]:
        """
        Deep, self-contained copy of the authored state.

        Derived data and scratch buffers are excluded; a host history
        service stores these and hands them back to the session to undo.
        """
        return {
            "name": self.name,
            "id": self.id,
            "positions": self.positions.copy(),
            "widths": self.widths.copy(),
            "normals": self.normals.copy(),
            "is_enabled": self.is_enabled,
            "is_loop": self.is_loop,
            "is_conform_to_terrain": self.is_conform_to_terrain,
            "is_auto_banking": self.is_auto_banking,
            "bank_strength": self.bank_strength,
            "auto_bank_falloff": self.auto_bank_falloff,
            "is_optimising": self.is_optimising,
            "analysis_mode": int(self.analysis.mode),
            "preset_name": self.preset_name,
            "layers": [layer.to_dict() for layer in self.layers],
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "Curve":
        """Rebuild a dirty curve from :meth:`snapshot` output."""
        curve = cls(
            name=data["name"],
            id=data["id"],
            positions=copy.deepcopy(data["positions"]),
            widths=copy.deepcopy(data["widths"]),
            normals=copy.deepcopy(data["normals"]),
            is_enabled=data.get("is_enabled", True),
            is_loop=data.get("is_loop", False),
            is_conform_to_terrain=data.get("is_conform_to_terrain", False),
            is_auto_banking=data.get("is_auto_banking", False),
            bank_strength=data.get("bank_strength", DEFAULT_BANK_STRENGTH),
            auto_bank_falloff=data.get("auto_bank_falloff", DEFAULT_AUTO_BANK_FALLOFF),
            is_optimising=data.get("is_optimising", False),
            preset_name=data.get("preset_name", DEFAULT_PRESET_NAME),
            dirty=True,
            layers=[Layer.from_dict(layer) for layer in data.get("layers", [])],
        )
        curve.analysis.mode = AnalysisMode(data.get("analysis_mode", AnalysisMode.SLOPE))
        return curve


def _unit_rows(vectors: np.ndarray) -> np.ndarray:
    """Normalise each row, replacing degenerate rows with +Z."""
    if len(vectors) == 0:
        return vectors.reshape(0, 3)
    lengths = np.linalg.norm(vectors, axis=1)
    result = np.tile([0.0, 0.0, 1.0], (len(vectors), 1))
    valid = lengths > 1e-12
    result[valid] = vectors[valid] / lengths[valid, None]
    return result
