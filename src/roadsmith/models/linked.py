"""
Linked-geometry interface.

A layer forwards its offset ribbon to an external geometry system (meshes,
roads, assemblies, decals). Each system is reached through a manager that
implements :class:`LinkedGeometryManager`.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np


class LinkKind(str, Enum):
    """Kinds of external geometry a layer can drive."""

    MESH = "mesh"
    ROAD = "road"
    ASSEMBLY = "assembly"
    DECAL = "decal"


DEFAULT_LINK_KIND = LinkKind.MESH


class LinkedGeometryManager(ABC):
    """
    Owner of one kind of linked geometry.

    Identifiers returned by :meth:`create` and :meth:`restore` are opaque
    strings. :meth:`restore` always returns a fresh identifier, never the
    one stored in the blob.
    """

    kind: LinkKind

    @abstractmethod
    def create(self, name: Optional[str] = None) -> str:
        """Create an empty linked object and return its id."""

    @abstractmethod
    def set_link(self, linked_id: str, owner_curve_id: Optional[str], is_linked: bool) -> None:
        """Mark a linked object as owned (or released) by a curve."""

    @abstractmethod
    def update_linked(
        self,
        linked_id: str,
        points: np.ndarray,
        widths: np.ndarray,
        normals: np.ndarray,
        is_loop: bool,
        is_conform_to_terrain: bool,
    ) -> None:
        """Replace the guide geometry of a linked object."""

    @abstractmethod
    def remove_linked(self, linked_id: str) -> None:
        """Destroy a linked object."""

    @abstractmethod
    def set_dirty(self, linked_id: str) -> None:
        """Request a rebuild of a linked object."""

    @abstractmethod
    def set_name(self, linked_id: str, name: str) -> None:
        """Rename a linked object."""

    @abstractmethod
    def serialize(self, linked_id: str) -> Optional[Dict[str, Any]]:
        """Serialize a linked object, or None if it does not exist."""

    @abstractmethod
    def restore(self, data: Dict[str, Any]) -> str:
        """Recreate a linked object from a serialized blob, returning its new id."""

    @abstractmethod
    def is_linked(self, linked_id: str) -> bool:
        """Whether the object exists and is owned by a curve."""
