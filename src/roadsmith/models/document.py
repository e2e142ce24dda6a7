"""
Pydantic models for saved road documents.

A document holds every curve plus one blob per piece of linked geometry so
a load can rebuild the linked objects before the curves that reference
them.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from roadsmith.models.layer import DEFAULT_LATERAL_POSITION
from roadsmith.models.linked import DEFAULT_LINK_KIND, LinkKind
from roadsmith.models.presets import DEFAULT_PRESET_NAME
from roadsmith.models.spline import DEFAULT_AUTO_BANK_FALLOFF, DEFAULT_BANK_STRENGTH, AnalysisMode

DOCUMENT_VERSION = 1


class Vec3Model(BaseModel):
    """3D vector stored as named components."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class LayerRecord(BaseModel):
    """Persistent fields of one layer."""

    model_config = ConfigDict(use_enum_values=False)

    name: str = Field(default="New Layer", description="Layer display name")
    id: Optional[str] = Field(default=None, description="Layer identifier")
    is_link: bool = Field(default=False, description="Whether the layer drives linked geometry")
    link_kind: LinkKind = Field(default=DEFAULT_LINK_KIND, description="Kind of linked geometry")
    linked_id: Optional[str] = Field(default=None, description="Saved linked geometry id")
    linked_name: Optional[str] = Field(default=None, description="Linked geometry name")
    is_flip: bool = Field(default=False, description="Emit the ribbon back to front")
    is_track_width: bool = Field(default=False, description="Linked geometry follows width")
    position: float = Field(default=DEFAULT_LATERAL_POSITION, description="Lateral offset")


class CurveRecord(BaseModel):
    """Persistent fields of one curve."""

    name: str = Field(default="?", description="Curve display name")
    id: Optional[str] = Field(default=None, description="Curve identifier")
    is_loop: bool = False
    is_enabled: bool = True
    is_conform_to_terrain: bool = False
    analysis_mode: AnalysisMode = AnalysisMode.SLOPE
    preset_name: str = DEFAULT_PRESET_NAME
    is_auto_banking: bool = False
    bank_strength: float = DEFAULT_BANK_STRENGTH
    auto_bank_falloff: float = DEFAULT_AUTO_BANK_FALLOFF
    nodes: List[Vec3Model] = Field(default_factory=list, description="Control node positions")
    widths: List[float] = Field(default_factory=list, description="Control node widths")
    normals: List[Vec3Model] = Field(default_factory=list, description="Control node normals")
    layers: List[LayerRecord] = Field(default_factory=list)


class LinkedGeometryRecord(BaseModel):
    """Serialized linked geometry, keyed by the id it had when saved."""

    kind: LinkKind
    id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class SplineDocument(BaseModel):
    """Complete saved state of a road editing session."""

    version: int = DOCUMENT_VERSION
    curves: List[CurveRecord] = Field(default_factory=list)
    linked_geometry: List[LinkedGeometryRecord] = Field(default_factory=list)
