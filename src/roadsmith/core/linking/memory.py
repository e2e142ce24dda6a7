"""
In-memory linked-geometry manager.

Stores the last ribbon each linked object received. Hosts without a scene
graph (tests, batch scripts, the example demos) use it as a stand-in for
real mesh/road/decal systems.
"""

import copy
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from roadsmith.models.linked import LinkedGeometryManager, LinkKind

logger = logging.getLogger(__name__)


@dataclass
class LinkedObject:
    """
    State of one linked object.

    Attributes:
        id: Object identifier
        name: Display name
        owner_curve_id: Curve currently driving this object
        is_linked: Whether the object is attached to a curve
        points: Last received guide points
        widths: Last received widths
        normals: Last received normals
        is_loop: Last received loop flag
        is_conform_to_terrain: Last received terrain flag
        dirty: Whether a rebuild has been requested
        update_count: Number of updates received
    """

    id: str
    name: str
    owner_curve_id: Optional[str] = None
    is_linked: bool = False
    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    widths: np.ndarray = field(default_factory=lambda: np.zeros(0))
    normals: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    is_loop: bool = False
    is_conform_to_terrain: bool = False
    dirty: bool = True
    update_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "points": self.points.tolist(),
            "widths": self.widths.tolist(),
            "normals": self.normals.tolist(),
            "is_loop": self.is_loop,
            "is_conform_to_terrain": self.is_conform_to_terrain,
        }


class InMemoryLinkedGeometryManager(LinkedGeometryManager):
    """Linked-geometry manager that keeps objects in a dictionary."""

    def __init__(self, kind: LinkKind = LinkKind.MESH):
        self.kind = LinkKind(kind)
        self.objects: Dict[str, LinkedObject] = {}

    def create(self, name: Optional[str] = None) -> str:
        linked_id = str(uuid.uuid4())
        self.objects[linked_id] = LinkedObject(
            id=linked_id, name=name or f"{self.kind.value.title()} {len(self.objects) + 1}"
        )
        logger.debug(f"Created {self.kind.value} object {linked_id}")
        return linked_id

    def set_link(self, linked_id: str, owner_curve_id: Optional[str], is_linked: bool) -> None:
        obj = self.objects.get(linked_id)
        if obj is None:
            logger.warning(f"Cannot link unknown {self.kind.value} object {linked_id}")
            return
        obj.owner_curve_id = owner_curve_id if is_linked else None
        obj.is_linked = is_linked

    def update_linked(
        self,
        linked_id: str,
        points: np.ndarray,
        widths: np.ndarray,
        normals: np.ndarray,
        is_loop: bool,
        is_conform_to_terrain: bool,
    ) -> None:
        obj = self.objects.get(linked_id)
        if obj is None:
            logger.warning(f"Update for unknown {self.kind.value} object {linked_id}")
            return
        # Callers reuse their buffers between frames
        obj.points = np.array(points, dtype=float).reshape(-1, 3)
        obj.widths = np.array(widths, dtype=float).reshape(-1)
        obj.normals = np.array(normals, dtype=float).reshape(-1, 3)
        obj.is_loop = is_loop
        obj.is_conform_to_terrain = is_conform_to_terrain
        obj.dirty = False
        obj.update_count += 1

    def remove_linked(self, linked_id: str) -> None:
        if self.objects.pop(linked_id, None) is not None:
            logger.debug(f"Removed {self.kind.value} object {linked_id}")

    def set_dirty(self, linked_id: str) -> None:
        obj = self.objects.get(linked_id)
        if obj is not None:
            obj.dirty = True

    def set_name(self, linked_id: str, name: str) -> None:
        obj = self.objects.get(linked_id)
        if obj is not None:
            obj.name = name

    def serialize(self, linked_id: str) -> Optional[Dict[str, Any]]:
        obj = self.objects.get(linked_id)
        return obj.to_dict() if obj is not None else None

    def restore(self, data: Dict[str, Any]) -> str:
        data = copy.deepcopy(data)
        linked_id = str(uuid.uuid4())
        self.objects[linked_id] = LinkedObject(
            id=linked_id,
            name=data.get("name") or f"{self.kind.value.title()} {len(self.objects) + 1}",
            points=np.array(data.get("points", []), dtype=float).reshape(-1, 3),
            widths=np.array(data.get("widths", []), dtype=float).reshape(-1),
            normals=np.array(data.get("normals", []), dtype=float).reshape(-1, 3),
            is_loop=bool(data.get("is_loop", False)),
            is_conform_to_terrain=bool(data.get("is_conform_to_terrain", False)),
        )
        return linked_id

    def is_linked(self, linked_id: str) -> bool:
        obj = self.objects.get(linked_id)
        return obj is not None and obj.is_linked

    def __len__(self) -> int:
        return len(self.objects)
