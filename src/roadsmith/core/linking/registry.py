"""
Registry of linked-geometry managers, keyed by link kind.
"""

import logging
from typing import Dict, Iterable, List, Optional

from roadsmith.core.errors import LinkedGeometryError
from roadsmith.models.linked import LinkedGeometryManager, LinkKind

logger = logging.getLogger(__name__)


class LinkRegistry:
    """
    Maps each :class:`LinkKind` to the manager that owns that geometry.

    Lookups through :meth:`get` never raise: a missing manager is logged and
    reported as None so per-frame passes can skip the layer and carry on.
    """

    def __init__(self, managers: Optional[Iterable[LinkedGeometryManager]] = None):
        self._managers: Dict[LinkKind, LinkedGeometryManager] = {}
        for manager in managers or []:
            self.register(manager)

    def register(self, manager: LinkedGeometryManager) -> None:
        """Register (or replace) the manager for ``manager.kind``."""
        kind = LinkKind(manager.kind)
        if kind in self._managers:
            logger.info(f"Replacing linked geometry manager for '{kind.value}'")
        self._managers[kind] = manager

    def unregister(self, kind: LinkKind) -> None:
        self._managers.pop(LinkKind(kind), None)

    def get(self, kind: Optional[LinkKind]) -> Optional[LinkedGeometryManager]:
        """Manager for ``kind``, or None (logged) if none is registered."""
        if kind is None:
            return None
        manager = self._managers.get(LinkKind(kind))
        if manager is None:
            logger.warning(f"No linked geometry manager registered for '{LinkKind(kind).value}'")
        return manager

    def require(self, kind: LinkKind) -> LinkedGeometryManager:
        """
        Manager for ``kind``.

        Raises:
            LinkedGeometryError: If no manager is registered for the kind
        """
        manager = self._managers.get(LinkKind(kind))
        if manager is None:
            raise LinkedGeometryError(
                f"No linked geometry manager registered for '{LinkKind(kind).value}'",
                link_kind=LinkKind(kind).value,
            )
        return manager

    def kinds(self) -> List[LinkKind]:
        return list(self._managers)

    def __contains__(self, kind: object) -> bool:
        try:
            return LinkKind(kind) in self._managers
        except ValueError:
            return False
