"""
Linked-geometry plumbing.

This module provides:
- LinkRegistry, the kind -> manager lookup used by layers
- InMemoryLinkedGeometryManager, a dictionary-backed manager
"""

from roadsmith.core.linking.memory import InMemoryLinkedGeometryManager, LinkedObject
from roadsmith.core.linking.registry import LinkRegistry

__all__ = [
    "InMemoryLinkedGeometryManager",
    "LinkedObject",
    "LinkRegistry",
]
