"""
Tests for saving and loading road documents.

Tests curve records, document capture and document load with linked
geometry remapping.
"""

import numpy as np
import pytest

from roadsmith.core.spline.persistence import (
    build_document,
    deserialize_curve,
    load_document,
    serialize_curve,
)
from roadsmith.core.spline.session import RoadEditorSession
from roadsmith.models.document import CurveRecord, SplineDocument, Vec3Model
from roadsmith.models.linked import LinkKind
from roadsmith.models.spline import DEFAULT_BANK_STRENGTH, AnalysisMode, Curve


@pytest.fixture
def session() -> RoadEditorSession:
    """Session with one curve carrying a linked mesh layer and a plain layer."""
    session = RoadEditorSession()
    handle = session.add_curve(
        name="Valley Road",
        positions=[[0, 0, 0], [25, 5, 1], [50, 0, 2]],
        widths=[8.0, 9.0, 10.0],
    )
    curve = session.get(handle)
    curve.preset_name = "Mountain Pass"
    curve.analysis.mode = AnalysisMode.WIDTH
    session.emitter.add_layer(curve, create_linked=True, name="Asphalt")
    session.emitter.add_layer(curve, name="Marker")
    session.update()
    return session


class TestCurveRecords:
    """Tests for single-curve serialization."""

    def test_serialize_curve(self, session) -> None:
        """Test a record carries nodes, settings and layers."""
        curve = session.arena.curves()[0]

        record = serialize_curve(curve)

        assert record.name == "Valley Road"
        assert record.id == curve.id
        assert record.preset_name == "Mountain Pass"
        assert record.analysis_mode == AnalysisMode.WIDTH
        assert record.nodes[1] == Vec3Model(x=25, y=5, z=1)
        assert record.widths == [8.0, 9.0, 10.0]
        assert [layer.name for layer in record.layers] == ["Asphalt", "Marker"]

    def test_deserialize_curve(self, session) -> None:
        """Test a record rebuilds an equivalent dirty curve."""
        curve = session.arena.curves()[0]

        restored = deserialize_curve(serialize_curve(curve))

        assert restored.id == curve.id
        assert restored.dirty
        assert restored.analysis.mode is AnalysisMode.WIDTH
        np.testing.assert_allclose(restored.positions, curve.positions)
        np.testing.assert_allclose(restored.widths, curve.widths)
        assert restored.layers[0].linked_id == curve.layers[0].linked_id

    def test_mismatched_arrays_reset(self) -> None:
        """Test widths and normals that do not match the node count are reset."""
        record = CurveRecord(
            name="Broken",
            nodes=[Vec3Model(x=0), Vec3Model(x=10)],
            widths=[4.0],
            normals=[],
        )

        curve = deserialize_curve(record)

        np.testing.assert_allclose(curve.widths, [10.0, 10.0])
        np.testing.assert_allclose(curve.normals, [[0, 0, 1], [0, 0, 1]])

    def test_missing_id_generates_one(self) -> None:
        """Test records without an id get a fresh one."""
        curve = deserialize_curve(CurveRecord(name="New"))

        assert curve.id
        assert len(curve) == 0

    def test_record_defaults_match_new_curve(self) -> None:
        """Test a record without banking fields loads with the same defaults as a new curve."""
        fresh = Curve(name="Fresh")
        curve = deserialize_curve(CurveRecord(name="Sparse"))

        assert curve.bank_strength == DEFAULT_BANK_STRENGTH == fresh.bank_strength
        assert curve.auto_bank_falloff == fresh.auto_bank_falloff
        assert curve.is_auto_banking is fresh.is_auto_banking
        assert curve.preset_name == fresh.preset_name


class TestDocuments:
    """Tests for whole-document capture and load."""

    def test_build_document(self, session) -> None:
        """Test the document holds every curve and one blob per linked object."""
        curve = session.arena.curves()[0]

        document = build_document(session)

        assert len(document.curves) == 1
        assert len(document.linked_geometry) == 1
        record = document.linked_geometry[0]
        assert record.kind == LinkKind.MESH
        assert record.id == curve.layers[0].linked_id
        assert len(record.data["points"]) >= 2

    def test_load_into_new_session(self, session) -> None:
        """Test loading rebuilds curves and attaches new linked geometry."""
        document = SplineDocument.model_validate_json(build_document(session).model_dump_json())
        saved_id = document.linked_geometry[0].id
        target = RoadEditorSession()

        handles = load_document(target, document)

        assert len(handles) == 1
        curve = target.get(handles[0])
        assert curve.name == "Valley Road"
        assert curve.dirty
        layer = curve.layers[0]
        assert layer.linked_id is not None and layer.linked_id != saved_id
        meshes = target.registry.require(LinkKind.MESH)
        assert meshes.is_linked(layer.linked_id)
        assert meshes.objects[layer.linked_id].owner_curve_id == curve.id
        assert curve.layers[1].linked_id is None

    def test_load_replaces_current_curves(self, session) -> None:
        """Test loading into the same session replaces its curves and geometry."""
        document = build_document(session)

        handles = load_document(session, document)

        assert len(session.arena) == 1
        assert session.get(handles[0]).name == "Valley Road"
        assert len(session.registry.require(LinkKind.MESH)) == 1

    def test_missing_linked_geometry_dropped(self, session) -> None:
        """Test layers whose linked blob is missing lose their link."""
        document = build_document(session)
        document.linked_geometry = []
        target = RoadEditorSession()

        handles = load_document(target, document)

        layer = target.get(handles[0]).layers[0]
        assert layer.linked_id is None
        assert not layer.is_link
        assert len(target.registry.require(LinkKind.MESH)) == 0

    def test_loaded_curve_updates(self, session) -> None:
        """Test a loaded curve emits to its restored geometry on the next update."""
        target = RoadEditorSession()
        handles = load_document(target, build_document(session))

        target.update()

        curve = target.get(handles[0])
        meshes = target.registry.require(LinkKind.MESH)
        assert meshes.objects[curve.layers[0].linked_id].update_count == 1
        assert curve.road_length > 50.0
