"""
Layer model.

A layer is a lateral offset of its curve's ribbon that drives one piece of
linked geometry. Layers own reusable scratch buffers so the per-frame
emission pass does not allocate once the curve size settles.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np

from roadsmith.models.linked import DEFAULT_LINK_KIND, LinkKind

DEFAULT_LATERAL_POSITION = 0.0


class ScratchBuffer:
    """
    Growable array with a logical length.

    Capacity grows geometrically; :meth:`view` only exposes the first
    ``count`` rows, so rows left over from a longer previous frame are
    never visible.
    """

    def __init__(self, trailing_shape: Tuple[int, ...] = (), initial_capacity: int = 16):
        self._trailing_shape = trailing_shape
        self._data = np.zeros((initial_capacity,) + trailing_shape)
        self.count = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    def resize(self, count: int) -> np.ndarray:
        """Set the logical length, growing storage if needed, and return the view."""
        if count > len(self._data):
            new_capacity = max(count, 2 * len(self._data))
            grown = np.zeros((new_capacity,) + self._trailing_shape)
            grown[: self.count] = self._data[: self.count]
            self._data = grown
        self.count = count
        return self._data[:count]

    def view(self) -> np.ndarray:
        return self._data[: self.count]


@dataclass
class RibbonBuffers:
    """Aligned point, width and normal scratch buffers."""

    points: ScratchBuffer = field(default_factory=lambda: ScratchBuffer((3,)))
    widths: ScratchBuffer = field(default_factory=ScratchBuffer)
    normals: ScratchBuffer = field(default_factory=lambda: ScratchBuffer((3,)))

    def resize(self, count: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.points.resize(count), self.widths.resize(count), self.normals.resize(count)

    @property
    def count(self) -> int:
        return self.points.count


@dataclass
class Layer:
    """
    Offset ribbon attached to a curve.

    Attributes:
        name: Display name
        id: Unique layer identifier
        position: Lateral offset in half-widths (-1 = left edge, +1 = right edge)
        is_flip: Emit the ribbon back to front
        is_link: Whether the layer drives linked geometry
        is_track_width: Whether the linked geometry follows the curve width
        link_kind: Kind of linked geometry
        linked_id: Identifier of the linked geometry, if any
        linked_name: Display name of the linked geometry
        dirty: Whether the layer must be re-emitted
    """

    name: str = "New Layer"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    position: float = DEFAULT_LATERAL_POSITION
    is_flip: bool = False
    is_link: bool = False
    is_track_width: bool = False
    link_kind: LinkKind = DEFAULT_LINK_KIND
    linked_id: Optional[str] = None
    linked_name: Optional[str] = None
    dirty: bool = True
    offset_buffers: RibbonBuffers = field(default_factory=RibbonBuffers, repr=False, compare=False)
    flip_buffers: RibbonBuffers = field(default_factory=RibbonBuffers, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize persistent layer fields (scratch buffers are excluded)."""
        return {
            "name": self.name,
            "id": self.id,
            "is_link": self.is_link,
            "link_kind": self.link_kind.value,
            "linked_id": self.linked_id,
            "linked_name": self.linked_name,
            "is_flip": self.is_flip,
            "is_track_width": self.is_track_width,
            "position": self.position,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Layer":
        """Rebuild a layer from :meth:`to_dict` output; the result is dirty."""
        return cls(
            name=data.get("name") or "New Layer",
            id=data.get("id") or str(uuid.uuid4()),
            position=float(data.get("position", DEFAULT_LATERAL_POSITION)),
            is_flip=data.get("is_flip") is True,
            is_link=data.get("is_link") is True,
            is_track_width=data.get("is_track_width") is True,
            link_kind=LinkKind(data.get("link_kind") or DEFAULT_LINK_KIND.value),
            linked_id=data.get("linked_id"),
            linked_name=data.get("linked_name"),
            dirty=True,
        )

    def copy(self, new_id: bool = False) -> "Layer":
        """Deep copy of the persistent fields with fresh scratch buffers."""
        layer = Layer.from_dict(self.to_dict())
        if new_id:
            layer.id = str(uuid.uuid4())
        return layer
