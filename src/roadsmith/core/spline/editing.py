"""
Structural curve edits: split, join, reverse and simplify.

Invalid requests (stale handles, loops where an open curve is needed,
interior indices where an endpoint is needed) are logged and leave every
curve untouched.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from roadsmith.core.geometry.rdp import simplify_polyline
from roadsmith.core.logging_config import curve_log_context
from roadsmith.core.spline.arena import CurveArena, CurveHandle
from roadsmith.core.spline.layers import LayerEmitter
from roadsmith.models.layer import Layer
from roadsmith.models.spline import Curve
from roadsmith.utils.logging import log_with_context

logger = logging.getLogger(__name__)

NodeArrays = Tuple[np.ndarray, np.ndarray, np.ndarray]

# Squared distance under which the two junction nodes of a join are merged
JOIN_DUPLICATE_TOLERANCE_SQ = 1e-6

# RDP tolerance used when simplifying an authored curve
SIMPLIFY_TOLERANCE = 9.0


def split_open_geometry(
    positions: np.ndarray, widths: np.ndarray, normals: np.ndarray, index: int
) -> Tuple[NodeArrays, NodeArrays]:
    """
    Split open node arrays at an interior node.

    Both halves keep a copy of the split node, so the pieces still meet.
    """
    first = (positions[: index + 1].copy(), widths[: index + 1].copy(), normals[: index + 1].copy())
    second = (positions[index:].copy(), widths[index:].copy(), normals[index:].copy())
    return first, second


def split_loop_geometry(
    positions: np.ndarray, widths: np.ndarray, normals: np.ndarray, index: int
) -> NodeArrays:
    """
    Open a loop at ``index``.

    The arrays are rotated to start at the split node, and the split node is
    repeated at the end so the opened curve still covers the whole cycle.
    """
    order = np.concatenate([np.roll(np.arange(len(positions)), -index), [index]])
    return positions[order].copy(), widths[order].copy(), normals[order].copy()


def join_geometry(
    first: NodeArrays, first_index: int, second: NodeArrays, second_index: int
) -> Optional[NodeArrays]:
    """
    Concatenate two open node sequences at the given endpoints.

    Args:
        first: (positions, widths, normals) of the first curve
        first_index: Endpoint index on the first curve (0 or last)
        second: (positions, widths, normals) of the second curve
        second_index: Endpoint index on the second curve (0 or last)

    Returns:
        Joined arrays, or None if either index is not an endpoint
    """
    n1, n2 = len(first[0]), len(second[0])
    if n1 == 0 or n2 == 0:
        return None

    first_is_end = first_index == n1 - 1
    first_is_start = first_index == 0
    second_is_end = second_index == n2 - 1
    second_is_start = second_index == 0
    if not (first_is_end or first_is_start) or not (second_is_end or second_is_start):
        return None

    def reverse(arrays: NodeArrays) -> NodeArrays:
        return tuple(a[::-1] for a in arrays)  # type: ignore[return-value]

    if first_is_end and second_is_start:
        head, tail = first, second
    elif first_is_end and second_is_end:
        head, tail = first, reverse(second)
    elif second_is_end:
        head, tail = second, first
    else:
        head, tail = reverse(second), first

    gap = head[0][-1] - tail[0][0]
    if float(np.dot(gap, gap)) < JOIN_DUPLICATE_TOLERANCE_SQ:
        tail = tuple(a[1:] for a in tail)  # type: ignore[assignment]

    return (
        np.concatenate([head[0], tail[0]], axis=0),
        np.concatenate([head[1], tail[1]]),
        np.concatenate([head[2], tail[2]], axis=0),
    )


class StructuralEditor:
    """Split, join and other whole-curve edits on an arena of curves."""

    def __init__(self, arena: CurveArena, emitter: LayerEmitter):
        self.arena = arena
        self.emitter = emitter

    def split(self, handle: CurveHandle, node_index: int) -> List[CurveHandle]:
        """
        Split a curve at a node.

        A loop is opened in place at the node. An open curve is replaced by
        two new curves named "<name> (1)" and "<name> (2)"; every layer is
        copied onto both halves with its own copy of the linked geometry.

        Args:
            handle: Curve to split
            node_index: Split node

        Returns:
            Handles of the resulting curves, empty if the split was rejected
        """
        curve = self.arena.get(handle)
        if curve is None:
            logger.warning(f"Split requested on stale curve handle {handle}")
            return []

        with curve_log_context(curve, "split"):
            return self._split_curve(handle, curve, node_index)

    def _split_curve(self, handle: CurveHandle, curve: Curve, node_index: int) -> List[CurveHandle]:
        n = len(curve)
        if curve.is_loop:
            if n < 3 or not 0 <= node_index < n:
                logger.warning(f"Cannot split loop '{curve.name}' at node {node_index} ({n} nodes)")
                return []
            curve.set_nodes(*split_loop_geometry(curve.positions, curve.widths, curve.normals, node_index))
            curve.is_loop = False
            log_with_context(
                logger, logging.INFO, f"Opened loop '{curve.name}' at node {node_index}", node_index=node_index
            )
            return [handle]

        if n <= 2 or not 0 < node_index < n - 1:
            logger.warning(f"Cannot split '{curve.name}' at node {node_index} ({n} nodes)")
            return []

        first, second = split_open_geometry(curve.positions, curve.widths, curve.normals, node_index)
        part1 = self._derive_curve(curve, f"{curve.name} (1)", first)
        part2 = self._derive_curve(curve, f"{curve.name} (2)", second)

        for layer in curve.layers:
            layer1, layer2 = layer.copy(new_id=True), layer.copy(new_id=True)
            self._clone_linked(layer, layer1, part1, " (1)")
            self._clone_linked(layer, layer2, part2, " (2)")
            part1.layers.append(layer1)
            part2.layers.append(layer2)

        self.emitter.remove_all_layers(curve)
        self.arena.remove(handle)
        handles = [self.arena.insert(part1), self.arena.insert(part2)]
        log_with_context(
            logger,
            logging.INFO,
            f"Split '{curve.name}' at node {node_index} into '{part1.name}' and '{part2.name}'",
            node_index=node_index,
            node_count=n,
        )
        return handles

    def join(
        self,
        first_handle: CurveHandle,
        first_index: int,
        second_handle: CurveHandle,
        second_index: int,
    ) -> bool:
        """
        Join two open curves at their endpoints.

        The joined nodes are stored in the first curve; the second curve is
        removed along with its layers.

        Returns:
            True if the curves were joined
        """
        first = self.arena.get(first_handle)
        second = self.arena.get(second_handle)
        if first is None or second is None or first is second:
            logger.warning("Join requires two distinct live curves")
            return False
        if first.is_loop or second.is_loop:
            logger.warning(f"Cannot join loops ('{first.name}', '{second.name}')")
            return False

        with curve_log_context(first, "join"):
            return self._join_curves(first, first_index, second_handle, second, second_index)

    def _join_curves(
        self,
        first: Curve,
        first_index: int,
        second_handle: CurveHandle,
        second: Curve,
        second_index: int,
    ) -> bool:
        joined = join_geometry(
            (first.positions, first.widths, first.normals),
            first_index,
            (second.positions, second.widths, second.normals),
            second_index,
        )
        if joined is None:
            logger.warning(
                f"Join indices ({first_index}, {second_index}) are not endpoints "
                f"of '{first.name}' and '{second.name}'"
            )
            return False

        first.set_nodes(*joined)
        first.is_loop = False
        self.emitter.remove_all_layers(second)
        self.arena.remove(second_handle)
        log_with_context(
            logger,
            logging.INFO,
            f"Joined '{second.name}' into '{first.name}' ({len(first)} nodes)",
            joined_curve_id=second.id,
            node_count=len(first),
        )
        return True

    def flip_direction(self, handle: CurveHandle) -> bool:
        """Reverse the node order of a curve."""
        curve = self.arena.get(handle)
        if curve is None or len(curve) < 2:
            return False
        curve.set_nodes(curve.positions[::-1], curve.widths[::-1], curve.normals[::-1])
        return True

    def simplify(self, handle: CurveHandle, tolerance: float = SIMPLIFY_TOLERANCE) -> bool:
        """Drop control nodes that deviate less than ``tolerance`` from the polyline."""
        curve = self.arena.get(handle)
        if curve is None or len(curve) <= 2:
            return False
        positions, widths, normals = simplify_polyline(
            curve.positions, curve.widths, curve.normals, tolerance=tolerance
        )
        removed = len(curve) - len(positions)
        curve.set_nodes(positions, widths, normals)
        logger.debug(f"Simplified '{curve.name}', removed {removed} nodes")
        return True

    @staticmethod
    def _derive_curve(source: Curve, name: str, arrays: NodeArrays) -> Curve:
        curve = Curve(
            name=name,
            positions=arrays[0],
            widths=arrays[1],
            normals=arrays[2],
            is_enabled=source.is_enabled,
            is_conform_to_terrain=source.is_conform_to_terrain,
            is_auto_banking=source.is_auto_banking,
            bank_strength=source.bank_strength,
            auto_bank_falloff=source.auto_bank_falloff,
            preset_name=source.preset_name,
            dirty=True,
        )
        curve.analysis.mode = source.analysis.mode
        return curve

    def _clone_linked(self, source: Layer, target: Layer, owner: Curve, suffix: str) -> None:
        """Give ``target`` its own copy of the geometry ``source`` drives."""
        target.dirty = True
        if source.linked_id is None:
            return

        manager = self.emitter.registry.get(source.link_kind)
        blob = manager.serialize(source.linked_id) if manager is not None else None
        if blob is None:
            logger.warning(f"Linked geometry of layer '{source.name}' could not be copied")
            target.linked_id = None
            target.linked_name = None
            target.is_link = False
            return

        target.linked_id = manager.restore(blob)
        target.linked_name = f"{source.linked_name or source.name}{suffix}"
        manager.set_name(target.linked_id, target.linked_name)
        manager.set_link(target.linked_id, owner.id, True)
