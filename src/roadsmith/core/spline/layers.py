"""
Layer emission and lifecycle.

Every frame a dirty curve's layers receive the curve's discretized ribbon,
shifted sideways by the layer's lateral position, simplified and optionally
reversed. The result is forwarded to the linked-geometry manager for the
layer's link kind.
"""

import logging
from typing import Optional

import numpy as np

from roadsmith.core.config import settings
from roadsmith.core.errors import ValidationError
from roadsmith.core.geometry.rdp import simplify_polyline
from roadsmith.core.linking.registry import LinkRegistry
from roadsmith.models.layer import Layer
from roadsmith.models.linked import DEFAULT_LINK_KIND, LinkKind
from roadsmith.models.spline import Curve

logger = logging.getLogger(__name__)

_EMPTY_POINTS = np.zeros((0, 3))
_EMPTY_WIDTHS = np.zeros(0)


class LayerEmitter:
    """
    Emits layer ribbons and manages layer lifetimes.

    Attributes:
        registry: Linked-geometry managers by kind
        simplify_tolerance: RDP tolerance applied to each emitted ribbon
    """

    def __init__(self, registry: LinkRegistry, simplify_tolerance: Optional[float] = None):
        """
        Initialize the emitter.

        Args:
            registry: Linked-geometry managers by kind
            simplify_tolerance: RDP tolerance (defaults to settings.layer_simplify_tolerance)
        """
        self.registry = registry
        self.simplify_tolerance = (
            settings.layer_simplify_tolerance if simplify_tolerance is None else simplify_tolerance
        )

    def update_layer(self, curve: Curve, index: int) -> bool:
        """
        Emit one layer's ribbon to its linked geometry.

        Args:
            curve: Owning curve, with an up-to-date discretization
            index: Layer index

        Returns:
            True if geometry was forwarded to a manager

        Raises:
            ValidationError: If ``index`` is out of range
        """
        layer = self._layer_at(curve, index)

        if layer.linked_id is None:
            layer.dirty = False
            return False

        manager = self.registry.get(layer.link_kind)
        if manager is None:
            return False

        disc = curve.discretization
        if len(curve) < 2 or disc.is_empty:
            # Lets the linked object clean itself up
            manager.update_linked(
                layer.linked_id, _EMPTY_POINTS, _EMPTY_WIDTHS, _EMPTY_POINTS,
                curve.is_loop, curve.is_conform_to_terrain,
            )
            layer.dirty = False
            return True

        points, widths, normals = layer.offset_buffers.resize(len(disc))
        half_offset = layer.position * 0.5 * disc.widths
        np.multiply(disc.binormals, half_offset[:, None], out=points)
        points += disc.points
        widths[:] = disc.widths
        normals[:] = disc.normals

        # simplify_polyline returns fresh arrays, the offset buffers stay intact
        points, widths, normals = simplify_polyline(
            points, widths, normals, tolerance=self.simplify_tolerance
        )

        if layer.is_flip:
            flip_points, flip_widths, flip_normals = layer.flip_buffers.resize(len(points))
            flip_points[:] = points[::-1]
            flip_widths[:] = widths[::-1]
            flip_normals[:] = normals[::-1]
            points, widths, normals = flip_points, flip_widths, flip_normals

        manager.update_linked(
            layer.linked_id, points, widths, normals, curve.is_loop, curve.is_conform_to_terrain
        )
        layer.dirty = False
        return True

    def update_all_layers(self, curve: Curve) -> None:
        for index in range(len(curve.layers)):
            self.update_layer(curve, index)

    def update_dirty_layers(self, curve: Curve) -> None:
        for index, layer in enumerate(curve.layers):
            if layer.dirty:
                self.update_layer(curve, index)

    def add_layer(
        self,
        curve: Curve,
        link_kind: Optional[LinkKind] = None,
        create_linked: bool = False,
        name: Optional[str] = None,
    ) -> Layer:
        """
        Append a layer to the curve.

        Args:
            curve: Owning curve
            link_kind: Kind of linked geometry (defaults to mesh)
            create_linked: Create and link a new geometry object right away
            name: Layer name (defaults to "New Layer <n>")

        Returns:
            The new layer
        """
        layer = Layer(
            name=name or f"New Layer {len(curve.layers) + 1}",
            link_kind=LinkKind(link_kind or DEFAULT_LINK_KIND),
        )
        curve.layers.append(layer)
        if create_linked:
            self.link_layer(curve, len(curve.layers) - 1, layer.link_kind)
        logger.debug(f"Added layer '{layer.name}' to curve '{curve.name}'")
        return layer

    def link_layer(self, curve: Curve, index: int, link_kind: LinkKind) -> Optional[str]:
        """
        Attach fresh linked geometry of ``link_kind`` to a layer.

        Any geometry the layer already drives is destroyed first.

        Returns:
            The new linked id, or None if no manager handles the kind
        """
        layer = self._layer_at(curve, index)
        manager = self.registry.get(link_kind)
        if manager is None:
            return None

        self._release(layer)
        layer.link_kind = LinkKind(link_kind)
        layer.linked_id = manager.create(layer.name)
        layer.linked_name = layer.name
        layer.is_link = True
        layer.dirty = True
        manager.set_link(layer.linked_id, curve.id, True)
        return layer.linked_id

    def remove_layer(self, curve: Curve, index: int) -> None:
        """Destroy a layer's linked geometry, then the layer itself."""
        layer = self._layer_at(curve, index)
        self._release(layer)
        curve.layers.pop(index)

    def remove_all_layers(self, curve: Curve) -> None:
        for index in range(len(curve.layers) - 1, -1, -1):
            self.remove_layer(curve, index)

    def rename_layer(self, curve: Curve, index: int, name: str) -> None:
        layer = self._layer_at(curve, index)
        layer.name = name
        if layer.linked_id is None:
            return
        manager = self.registry.get(layer.link_kind)
        if manager is not None:
            manager.set_name(layer.linked_id, name)
            layer.linked_name = name

    def unlink_all(self, curve: Curve) -> None:
        """Release every linked object of the curve without destroying it."""
        for layer in curve.layers:
            if layer.linked_id is None:
                continue
            manager = self.registry.get(layer.link_kind)
            if manager is not None:
                manager.set_link(layer.linked_id, None, False)

    def relink_all(self, curve: Curve) -> None:
        """Re-attach every linked object to the curve and mark its layers dirty."""
        for layer in curve.layers:
            if layer.linked_id is None:
                continue
            manager = self.registry.get(layer.link_kind)
            if manager is not None:
                manager.set_link(layer.linked_id, curve.id, True)
            layer.dirty = True

    def set_linked_dirty(self, curve: Curve) -> None:
        for layer in curve.layers:
            if layer.linked_id is None:
                continue
            manager = self.registry.get(layer.link_kind)
            if manager is not None:
                manager.set_dirty(layer.linked_id)

    def _release(self, layer: Layer) -> None:
        if layer.linked_id is None:
            return
        manager = self.registry.get(layer.link_kind)
        if manager is not None:
            manager.remove_linked(layer.linked_id)
        layer.linked_id = None
        layer.linked_name = None
        layer.is_link = False

    @staticmethod
    def _layer_at(curve: Curve, index: int) -> Layer:
        if not 0 <= index < len(curve.layers):
            raise ValidationError(
                f"Layer index {index} out of range for curve '{curve.name}'",
                field="index",
                details={"layer_count": len(curve.layers)},
            )
        return curve.layers[index]
