"""
Conversion between live curves and saved documents.

Linked geometry ids are only meaningful inside the manager that issued
them, so a load restores every linked blob first, collects the ids the
managers hand out and rewrites the layers to point at those.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Tuple

import numpy as np

from roadsmith.models.document import (
    CurveRecord,
    LayerRecord,
    LinkedGeometryRecord,
    SplineDocument,
    Vec3Model,
)
from roadsmith.models.layer import Layer
from roadsmith.models.linked import LinkKind
from roadsmith.models.spline import AnalysisMode, Curve

if TYPE_CHECKING:
    from roadsmith.core.spline.arena import CurveHandle
    from roadsmith.core.spline.session import RoadEditorSession

logger = logging.getLogger(__name__)

LinkedIdMap = Dict[Tuple[LinkKind, str], str]


def _to_vec3(values: np.ndarray) -> List[Vec3Model]:
    return [Vec3Model(x=float(v[0]), y=float(v[1]), z=float(v[2])) for v in values]


def _from_vec3(values: List[Vec3Model]) -> np.ndarray:
    return np.array([[v.x, v.y, v.z] for v in values], dtype=float).reshape(-1, 3)


def serialize_curve(curve: Curve) -> CurveRecord:
    """Persistent record of a curve's authored state and layer stack."""
    return CurveRecord(
        name=curve.name,
        id=curve.id,
        is_loop=curve.is_loop,
        is_enabled=curve.is_enabled,
        is_conform_to_terrain=curve.is_conform_to_terrain,
        analysis_mode=curve.analysis.mode,
        preset_name=curve.preset_name,
        is_auto_banking=curve.is_auto_banking,
        bank_strength=curve.bank_strength,
        auto_bank_falloff=curve.auto_bank_falloff,
        nodes=_to_vec3(curve.positions),
        widths=[float(w) for w in curve.widths],
        normals=_to_vec3(curve.normals),
        layers=[LayerRecord(**layer.to_dict()) for layer in curve.layers],
    )


def deserialize_curve(record: CurveRecord) -> Curve:
    """
    Rebuild a dirty curve from its record.

    Layers keep the linked ids they were saved with; :func:`load_document`
    remaps them.
    """
    positions = _from_vec3(record.nodes)
    n = len(positions)
    widths = np.array(record.widths, dtype=float)
    normals = _from_vec3(record.normals)
    if len(widths) != n:
        logger.warning(f"Curve '{record.name}' has {len(widths)} widths for {n} nodes, resetting widths")
        widths = None
    if len(normals) != n:
        logger.warning(f"Curve '{record.name}' has {len(normals)} normals for {n} nodes, resetting normals")
        normals = None

    curve = Curve(
        name=record.name,
        is_loop=record.is_loop,
        is_enabled=record.is_enabled,
        is_conform_to_terrain=record.is_conform_to_terrain,
        is_auto_banking=record.is_auto_banking,
        bank_strength=record.bank_strength,
        auto_bank_falloff=record.auto_bank_falloff,
        preset_name=record.preset_name,
        layers=[Layer.from_dict(layer.model_dump()) for layer in record.layers],
    )
    if record.id:
        curve.id = record.id
    curve.set_nodes(positions, widths, normals)
    curve.analysis.mode = AnalysisMode(record.analysis_mode)
    return curve


def build_document(session: "RoadEditorSession") -> SplineDocument:
    """Capture every curve and the linked geometry its layers drive."""
    curves = []
    linked = []
    for curve in session.arena.curves():
        curves.append(serialize_curve(curve))
        for layer in curve.layers:
            if layer.linked_id is None:
                continue
            manager = session.registry.get(layer.link_kind)
            if manager is None:
                continue
            blob = manager.serialize(layer.linked_id)
            if blob is None:
                logger.warning(f"Linked geometry {layer.linked_id} of layer '{layer.name}' not found")
                continue
            linked.append(LinkedGeometryRecord(kind=layer.link_kind, id=layer.linked_id, data=blob))

    logger.info(f"Built document with {len(curves)} curves and {len(linked)} linked objects")
    return SplineDocument(curves=curves, linked_geometry=linked)


def restore_linked_geometry(
    session: "RoadEditorSession", records: List[LinkedGeometryRecord]
) -> LinkedIdMap:
    """
    Recreate saved linked geometry through the registered managers.

    Returns:
        Map from (kind, saved id) to the id the manager assigned
    """
    id_map: LinkedIdMap = {}
    for record in records:
        manager = session.registry.get(record.kind)
        if manager is None:
            continue
        try:
            id_map[(LinkKind(record.kind), record.id)] = manager.restore(record.data)
        except Exception as e:
            logger.error(f"Failed to restore {record.kind.value} object {record.id}: {e}")
    return id_map


def remap_layer_links(session: "RoadEditorSession", curve: Curve, id_map: LinkedIdMap) -> None:
    """Point each layer at its restored linked geometry and attach it to the curve."""
    for layer in curve.layers:
        layer.dirty = True
        if layer.linked_id is None:
            continue
        new_id = id_map.get((layer.link_kind, layer.linked_id))
        if new_id is None:
            logger.warning(
                f"Layer '{layer.name}' of curve '{curve.name}' references missing "
                f"{layer.link_kind.value} object {layer.linked_id}, dropping link"
            )
            layer.linked_id = None
            layer.linked_name = None
            layer.is_link = False
            continue
        layer.linked_id = new_id
        session.registry.require(layer.link_kind).set_link(new_id, curve.id, True)


def load_document(session: "RoadEditorSession", document: SplineDocument) -> List["CurveHandle"]:
    """
    Replace the session's curves with the document's.

    Args:
        session: Session to load into; its current curves are removed
        document: Saved document

    Returns:
        Handles of the loaded curves, in document order
    """
    session.remove_all_curves()
    id_map = restore_linked_geometry(session, document.linked_geometry)

    handles = []
    for record in document.curves:
        curve = deserialize_curve(record)
        remap_layer_links(session, curve, id_map)
        handles.append(session.arena.insert(curve))

    logger.info(f"Loaded {len(handles)} curves, restored {len(id_map)} linked objects")
    return handles
