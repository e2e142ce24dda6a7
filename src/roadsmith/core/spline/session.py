"""
Editing session: the owning context for curves and the engines acting on them.

A host creates one session, edits curves through it and calls
:meth:`RoadEditorSession.update` once per frame. Every per-frame cost
(discretization, analysis, layer emission, live optimisation and road
search) is paid inside that call.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from roadsmith.core.config import settings
from roadsmith.core.errors import ConfigurationError, ValidationError
from roadsmith.core.geometry.vectors import polyline_length
from roadsmith.core.linking.memory import InMemoryLinkedGeometryManager
from roadsmith.core.linking.registry import LinkRegistry
from roadsmith.core.logging_config import curve_log_context
from roadsmith.core.roads.auto_road import AutoRoadGenerator, AutoRoadParams, PreviewPath
from roadsmith.core.spline.arena import CurveArena, CurveHandle
from roadsmith.core.spline.discretizer import CurveDiscretizer
from roadsmith.core.spline.editing import StructuralEditor
from roadsmith.core.spline.homologation import HomologationAnalyzer
from roadsmith.core.spline.layers import LayerEmitter
from roadsmith.core.spline.optimizer import HomologationOptimizer
from roadsmith.core.spline.persistence import remap_layer_links
from roadsmith.core.terrain.sampler import TerrainSampler
from roadsmith.models.linked import LinkKind
from roadsmith.models.presets import DEFAULT_PRESETS, RoadDesignPreset, get_preset
from roadsmith.models.spline import AnalysisMode, Curve
from roadsmith.utils.logging import log_performance

logger = logging.getLogger(__name__)


def default_registry() -> LinkRegistry:
    """Registry with an in-memory manager for every link kind."""
    return LinkRegistry(InMemoryLinkedGeometryManager(kind) for kind in LinkKind)


class RoadEditorSession:
    """
    Owns the curve arena and wires the engines together.

    Attributes:
        terrain: Height field, required for terrain conformance and auto roads
        registry: Linked-geometry managers by kind
        presets: Homologation presets by name
        arena: Curve storage
        discretizer: Curve discretizer
        analyzer: Homologation analyzer
        optimizer: Homologation optimizer
        emitter: Layer emitter
        editor: Structural editor
        auto_road: Auto road generator (None without terrain)
    """

    def __init__(
        self,
        terrain: Optional[TerrainSampler] = None,
        registry: Optional[LinkRegistry] = None,
        presets: Optional[Dict[str, RoadDesignPreset]] = None,
        random_seed: Optional[int] = None,
    ):
        """
        Initialize the session.

        Args:
            terrain: Height field
            registry: Linked-geometry managers (defaults to in-memory managers)
            presets: Homologation presets (defaults to DEFAULT_PRESETS)
            random_seed: Seed for the optimizer's node selection

        Raises:
            ConfigurationError: If settings.default_preset is not in ``presets``
        """
        self.terrain = terrain
        self.registry = registry if registry is not None else default_registry()
        self.presets = presets or DEFAULT_PRESETS
        if settings.default_preset not in self.presets:
            raise ConfigurationError(
                f"Default preset '{settings.default_preset}' is not among the session presets",
                config_key="default_preset",
                details={"available": sorted(self.presets)},
            )
        self.arena = CurveArena()
        self.discretizer = CurveDiscretizer(terrain)
        self.analyzer = HomologationAnalyzer(self.presets)
        self.optimizer = HomologationOptimizer(self.discretizer, self.analyzer, random_seed=random_seed)
        self.emitter = LayerEmitter(self.registry)
        self.editor = StructuralEditor(self.arena, self.emitter)
        self.auto_road = AutoRoadGenerator(terrain) if terrain is not None else None

    # Curves

    def add_curve(
        self,
        name: Optional[str] = None,
        positions: Optional[Sequence[Sequence[float]]] = None,
        widths: Optional[Sequence[float]] = None,
        normals: Optional[Sequence[Sequence[float]]] = None,
    ) -> CurveHandle:
        """Create a dirty curve, optionally with initial nodes, and return its handle."""
        curve = Curve(
            name=name or f"Curve {len(self.arena) + 1}",
            preset_name=settings.default_preset,
            dirty=True,
        )
        if positions is not None:
            curve.set_nodes(positions, widths, normals)
        return self.arena.insert(curve)

    def get(self, handle: CurveHandle) -> Optional[Curve]:
        return self.arena.get(handle)

    def remove_curve(self, handle: CurveHandle) -> bool:
        """Remove a curve along with its layers and their linked geometry."""
        curve = self.arena.get(handle)
        if curve is None:
            return False
        self.emitter.remove_all_layers(curve)
        self.arena.remove(handle)
        logger.debug(f"Removed curve '{curve.name}'")
        return True

    def remove_all_curves(self) -> None:
        for handle in self.arena.handles():
            self.remove_curve(handle)

    def set_preset(self, handle: CurveHandle, name: str) -> None:
        """
        Assign a homologation preset.

        Raises:
            ValidationError: If no preset has this name
        """
        get_preset(name, self.presets)
        curve = self._require(handle)
        curve.preset_name = name
        curve.mark_dirty()

    def set_analysis_mode(self, handle: CurveHandle, mode: AnalysisMode) -> None:
        curve = self._require(handle)
        curve.analysis.mode = AnalysisMode(mode)
        curve.mark_dirty()

    # Per-frame update

    @log_performance(threshold_ms=50.0)
    def update(self, analysis_enabled: bool = True, optimise_handle: Optional[CurveHandle] = None) -> int:
        """
        Run one frame of work.

        Dirty curves are discretized, analysed and fully re-emitted; clean
        curves only re-emit their dirty layers. The live optimiser then runs
        on ``optimise_handle`` if that curve has optimisation switched on,
        and a pending auto-road search advances by one frame budget.

        Args:
            analysis_enabled: Whether to score dirty curves
            optimise_handle: Curve to optimise this frame

        Returns:
            Number of curves rebuilt
        """
        rebuilt = 0
        for _, curve in self.arena.items():
            if not curve.is_enabled:
                continue
            if curve.dirty:
                self._rebuild(curve, analysis_enabled)
                rebuilt += 1
            else:
                self.emitter.update_dirty_layers(curve)

        target = self.arena.get(optimise_handle)
        if target is not None and target.is_optimising and len(target.discretization) > 2:
            self.optimizer.optimise(target)

        if self.auto_road is not None and self.auto_road.is_generating:
            self.auto_road.advance()

        return rebuilt

    def _rebuild(self, curve: Curve, analysis_enabled: bool) -> None:
        with curve_log_context(curve, "rebuild"):
            if len(curve) < 2:
                curve.clear_derived()
            else:
                self.discretizer.discretize(curve)
                if analysis_enabled:
                    self.analyzer.analyse(curve)
                else:
                    curve.analysis.clear()
                curve.road_length = polyline_length(curve.positions)
            self.emitter.update_all_layers(curve)
            curve.dirty = False
            logger.debug(f"Rebuilt '{curve.name}': {len(curve.discretization)} samples, {len(curve.layers)} layers")

    # Structural edits

    def split_curve(self, handle: CurveHandle, node_index: int) -> List[CurveHandle]:
        return self.editor.split(handle, node_index)

    def join_curves(
        self,
        first_handle: CurveHandle,
        first_index: int,
        second_handle: CurveHandle,
        second_index: int,
    ) -> bool:
        return self.editor.join(first_handle, first_index, second_handle, second_index)

    def flip_curve(self, handle: CurveHandle) -> bool:
        return self.editor.flip_direction(handle)

    def simplify_curve(self, handle: CurveHandle, tolerance: Optional[float] = None) -> bool:
        if tolerance is None:
            return self.editor.simplify(handle)
        return self.editor.simplify(handle, tolerance)

    # History hooks

    def snapshot_curve(self, handle: CurveHandle) -> Optional[Dict[str, Any]]:
        """Snapshot of one curve for a host history entry."""
        curve = self.arena.get(handle)
        return curve.snapshot() if curve is not None else None

    def restore_curve(self, snapshot: Dict[str, Any]) -> Optional[CurveHandle]:
        """
        Restore a curve snapshot into the live curve with the same id.

        The linked geometry the snapshot's layers refer to must still exist;
        use :meth:`capture_state` / :meth:`restore_state` around edits that
        create or destroy linked geometry.

        Returns:
            Handle of the restored curve, None if no live curve has that id
        """
        handle = self.arena.handle_for_id(snapshot["id"])
        if handle is None:
            logger.warning(f"Cannot restore snapshot, curve {snapshot['id']} no longer exists")
            return None

        curve = self.arena.get(handle)
        restored = Curve.from_snapshot(snapshot)
        curve.name = restored.name
        curve.is_enabled = restored.is_enabled
        curve.is_loop = restored.is_loop
        curve.positions = restored.positions
        curve.widths = restored.widths
        curve.normals = restored.normals
        curve.is_conform_to_terrain = restored.is_conform_to_terrain
        curve.is_auto_banking = restored.is_auto_banking
        curve.bank_strength = restored.bank_strength
        curve.auto_bank_falloff = restored.auto_bank_falloff
        curve.preset_name = restored.preset_name
        curve.is_optimising = restored.is_optimising
        curve.layers = restored.layers
        curve.clear_derived()
        curve.analysis.mode = restored.analysis.mode

        self.emitter.relink_all(curve)
        self.emitter.set_linked_dirty(curve)
        curve.mark_dirty()
        return handle

    def capture_state(self) -> Dict[str, Any]:
        """Snapshot every curve together with the linked geometry its layers drive."""
        linked = []
        for curve in self.arena.curves():
            for layer in curve.layers:
                if layer.linked_id is None:
                    continue
                manager = self.registry.get(layer.link_kind)
                blob = manager.serialize(layer.linked_id) if manager is not None else None
                if blob is not None:
                    linked.append({"kind": layer.link_kind, "id": layer.linked_id, "data": blob})
        return {
            "curves": [curve.snapshot() for curve in self.arena.curves()],
            "linked_geometry": linked,
        }

    def restore_state(self, state: Dict[str, Any]) -> List[CurveHandle]:
        """
        Replace every curve with the curves of a captured state.

        Linked geometry that still exists is reused; geometry destroyed
        since the capture is rebuilt from its saved blob under a new id.
        Geometry only the replaced curves referenced is destroyed.

        Returns:
            Handles of the restored curves
        """
        previous = set()
        for curve in self.arena.curves():
            self.emitter.unlink_all(curve)
            previous.update(
                (layer.link_kind, layer.linked_id) for layer in curve.layers if layer.linked_id is not None
            )

        id_map = {}
        for record in state.get("linked_geometry", []):
            kind = LinkKind(record["kind"])
            manager = self.registry.get(kind)
            if manager is None:
                continue
            if manager.serialize(record["id"]) is not None:
                id_map[(kind, record["id"])] = record["id"]
            else:
                id_map[(kind, record["id"])] = manager.restore(copy.deepcopy(record["data"]))

        for handle in self.arena.handles():
            self.arena.remove(handle)

        handles = []
        for snapshot in state.get("curves", []):
            curve = Curve.from_snapshot(snapshot)
            remap_layer_links(self, curve, id_map)
            self.emitter.set_linked_dirty(curve)
            handles.append(self.arena.insert(curve))

        still_used = {
            (layer.link_kind, layer.linked_id)
            for curve in self.arena.curves()
            for layer in curve.layers
            if layer.linked_id is not None
        }
        for kind, linked_id in previous - still_used:
            manager = self.registry.get(kind)
            if manager is not None:
                manager.remove_linked(linked_id)

        logger.debug(f"Restored state with {len(handles)} curves")
        return handles

    # Auto road

    def generate_auto_preview(
        self, handle: CurveHandle, params: Optional[AutoRoadParams] = None
    ) -> Optional[PreviewPath]:
        """Generate an auto-road preview through the curve's nodes, in one call."""
        curve = self._require(handle)
        if self.auto_road is None:
            logger.warning("Auto road generation requires a terrain")
            return None
        preset = self.presets.get(curve.preset_name) or get_preset(settings.default_preset, self.presets)
        return self.auto_road.generate_preview(curve, params or AutoRoadParams(), preset)

    def begin_auto_preview(self, handle: CurveHandle, params: Optional[AutoRoadParams] = None) -> bool:
        """Start a frame-budgeted preview; :meth:`update` advances it."""
        curve = self._require(handle)
        if self.auto_road is None:
            logger.warning("Auto road generation requires a terrain")
            return False
        preset = self.presets.get(curve.preset_name) or get_preset(settings.default_preset, self.presets)
        return self.auto_road.begin_preview(curve, params or AutoRoadParams(), preset)

    def commit_auto_road(
        self,
        handle: CurveHandle,
        banking_strength: Optional[float] = None,
        auto_bank_falloff: Optional[float] = None,
    ) -> bool:
        """Write the current preview onto the curve."""
        curve = self._require(handle)
        if self.auto_road is None:
            return False
        return self.auto_road.commit(curve, banking_strength, auto_bank_falloff)

    # Path import

    def import_grid_paths(
        self,
        paths: Sequence[Sequence[Tuple[int, int]]],
        widths: Optional[Sequence[Optional[Sequence[float]]]] = None,
        min_import_size: Optional[float] = None,
        name_prefix: str = "Imported Road",
    ) -> List[CurveHandle]:
        """
        Create curves from paths traced on the terrain grid.

        Every path is a sequence of ``(ix, iy)`` grid cells. Cells are lifted
        to world space on the terrain surface and each node takes the
        terrain normal under it. Paths whose XY bounding box is no larger
        than ``min_import_size`` along both axes are skipped.

        Args:
            paths: Traced cell sequences
            widths: Optional per-path node widths, parallel to ``paths``
            min_import_size: Size threshold, defaults to the configured value
            name_prefix: Prefix of the generated curve names

        Returns:
            Handles of the created curves, in path order
        """
        if self.terrain is None:
            logger.warning("Importing grid paths requires a terrain")
            return []
        if widths is not None and len(widths) != len(paths):
            raise ValidationError(
                f"Got {len(widths)} width lists for {len(paths)} paths", field="widths"
            )
        threshold = settings.min_import_size if min_import_size is None else min_import_size

        handles: List[CurveHandle] = []
        for i, cells in enumerate(paths):
            if len(cells) < 2:
                continue
            points = np.array([self.terrain.grid_to_world(cell) for cell in cells], dtype=float)
            extent = points[:, :2].max(axis=0) - points[:, :2].min(axis=0)
            if float(extent.max()) <= threshold:
                continue
            normals = np.array([self.terrain.get_normal_at(p) for p in points], dtype=float)
            path_widths = widths[i] if widths is not None else None
            handles.append(
                self.add_curve(
                    name=f"{name_prefix} {len(handles) + 1}",
                    positions=points,
                    widths=path_widths,
                    normals=normals,
                )
            )

        logger.info(
            f"Imported {len(handles)} of {len(paths)} grid paths, "
            f"{len(paths) - len(handles)} were too small to import"
        )
        return handles

    def _require(self, handle: CurveHandle) -> Curve:
        curve = self.arena.get(handle)
        if curve is None:
            raise ValidationError(f"Stale or unknown curve handle {handle}", field="handle")
        return curve
