"""
Curve storage with generational handles.

Handles stay valid only while the curve they were issued for is alive. A
slot reused after a removal bumps its generation, so stale handles held by
a host (selection, history entries) resolve to None instead of silently
addressing a different curve.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional, Tuple

from roadsmith.models.spline import Curve


class CurveHandle(NamedTuple):
    """Stable reference to a curve in a :class:`CurveArena`."""

    index: int
    generation: int


@dataclass
class _Slot:
    generation: int = 0
    curve: Optional[Curve] = None


@dataclass
class CurveArena:
    """Ordered collection of curves addressed by generational handles."""

    _slots: List[_Slot] = field(default_factory=list)
    _free: List[int] = field(default_factory=list)
    _order: List[int] = field(default_factory=list)

    def insert(self, curve: Curve) -> CurveHandle:
        """Store a curve and return its handle. Curves keep insertion order."""
        if self._free:
            index = self._free.pop()
            slot = self._slots[index]
        else:
            index = len(self._slots)
            slot = _Slot()
            self._slots.append(slot)
        slot.curve = curve
        self._order.append(index)
        return CurveHandle(index, slot.generation)

    def get(self, handle: Optional[CurveHandle]) -> Optional[Curve]:
        """Curve for ``handle``, or None if the handle is stale or unknown."""
        if handle is None or not 0 <= handle.index < len(self._slots):
            return None
        slot = self._slots[handle.index]
        if slot.generation != handle.generation:
            return None
        return slot.curve

    def remove(self, handle: CurveHandle) -> Optional[Curve]:
        """Remove and return the curve for ``handle``; stale handles are ignored."""
        curve = self.get(handle)
        if curve is None:
            return None
        slot = self._slots[handle.index]
        slot.curve = None
        slot.generation += 1
        self._free.append(handle.index)
        self._order.remove(handle.index)
        return curve

    def handles(self) -> List[CurveHandle]:
        return [CurveHandle(i, self._slots[i].generation) for i in self._order]

    def curves(self) -> List[Curve]:
        return [self._slots[i].curve for i in self._order]

    def items(self) -> Iterator[Tuple[CurveHandle, Curve]]:
        for index in list(self._order):
            slot = self._slots[index]
            yield CurveHandle(index, slot.generation), slot.curve

    def handle_for_id(self, curve_id: str) -> Optional[CurveHandle]:
        for handle, curve in self.items():
            if curve.id == curve_id:
                return handle
        return None

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, handle: object) -> bool:
        return isinstance(handle, CurveHandle) and self.get(handle) is not None
