"""
Tests for structural curve edits.
"""

import numpy as np
import pytest

from roadsmith.core.linking.memory import InMemoryLinkedGeometryManager
from roadsmith.core.linking.registry import LinkRegistry
from roadsmith.core.spline.arena import CurveArena
from roadsmith.core.spline.editing import (
    StructuralEditor,
    join_geometry,
    split_loop_geometry,
    split_open_geometry,
)
from roadsmith.core.spline.layers import LayerEmitter
from roadsmith.models.linked import LinkKind
from roadsmith.models.spline import AnalysisMode, Curve


def line(xs, name="Main", **kwargs) -> Curve:
    """Curve with nodes along +X at the given coordinates, widths equal to x + 1."""
    xs = np.asarray(xs, dtype=float)
    return Curve(
        name=name,
        positions=np.column_stack([xs, np.zeros(len(xs)), np.zeros(len(xs))]),
        widths=xs + 1.0,
        normals=np.tile([0.0, 0.0, 1.0], (len(xs), 1)),
        **kwargs,
    )


def arrays(curve: Curve):
    return curve.positions, curve.widths, curve.normals


@pytest.fixture
def meshes() -> InMemoryLinkedGeometryManager:
    """In-memory mesh manager."""
    return InMemoryLinkedGeometryManager(LinkKind.MESH)


@pytest.fixture
def editor(meshes) -> StructuralEditor:
    """Editor over an empty arena."""
    return StructuralEditor(CurveArena(), LayerEmitter(LinkRegistry([meshes])))


class TestGeometryHelpers:
    """Tests for the array-level split and join helpers."""

    def test_split_open_shares_node(self) -> None:
        """Test both halves contain the split node."""
        curve = line([0, 10, 20, 30])
        first, second = split_open_geometry(*arrays(curve), 1)

        np.testing.assert_allclose(first[0][:, 0], [0, 10])
        np.testing.assert_allclose(second[0][:, 0], [10, 20, 30])
        np.testing.assert_allclose(second[1], [11, 21, 31])

    def test_split_loop_rotates(self) -> None:
        """Test a loop opens at the split node and ends on it again."""
        curve = line([0, 10, 20, 30])
        positions, widths, _ = split_loop_geometry(*arrays(curve), 2)

        np.testing.assert_allclose(positions[:, 0], [20, 30, 0, 10, 20])
        np.testing.assert_allclose(widths, [21, 31, 1, 11, 21])

    @pytest.mark.parametrize(
        "first_index,second_index,expected",
        [
            (2, 0, [0, 10, 20, 30, 40]),
            (2, 1, [0, 10, 20, 40, 30]),
            (0, 1, [30, 40, 0, 10, 20]),
            (0, 0, [40, 30, 0, 10, 20]),
        ],
    )
    def test_join_orientations(self, first_index, second_index, expected) -> None:
        """Test every endpoint combination produces one continuous sequence."""
        first = arrays(line([0, 10, 20]))
        second = arrays(line([30, 40]))

        joined = join_geometry(first, first_index, second, second_index)

        np.testing.assert_allclose(joined[0][:, 0], expected)
        np.testing.assert_allclose(joined[1], np.array(expected) + 1.0)
        assert len(joined[2]) == len(expected)

    def test_join_merges_duplicate_junction(self) -> None:
        """Test coincident junction nodes are merged."""
        joined = join_geometry(arrays(line([0, 10, 20])), 2, arrays(line([20, 30])), 0)

        np.testing.assert_allclose(joined[0][:, 0], [0, 10, 20, 30])

    def test_join_rejects_interior(self) -> None:
        """Test interior indices are rejected."""
        assert join_geometry(arrays(line([0, 10, 20])), 1, arrays(line([30, 40])), 0) is None


class TestSplit:
    """Tests for StructuralEditor.split."""

    def test_split_open_curve(self, editor, meshes) -> None:
        """Test an open curve becomes two named halves that meet at the split node."""
        source = line([0, 10, 20, 30, 40], preset_name="Highway")
        source.analysis.mode = AnalysisMode.WIDTH
        handle = editor.arena.insert(source)

        handles = editor.split(handle, 2)

        assert len(handles) == 2
        assert editor.arena.get(handle) is None
        part1, part2 = (editor.arena.get(h) for h in handles)
        assert part1.name == "Main (1)"
        assert part2.name == "Main (2)"
        np.testing.assert_allclose(part1.positions[:, 0], [0, 10, 20])
        np.testing.assert_allclose(part2.positions[:, 0], [20, 30, 40])
        assert part1.preset_name == "Highway"
        assert part2.analysis.mode is AnalysisMode.WIDTH
        assert part1.dirty and part2.dirty
        assert part1.id != source.id

    def test_split_clones_linked_geometry(self, editor, meshes) -> None:
        """Test each half gets its own linked geometry and the original is destroyed."""
        source = line([0, 10, 20, 30])
        handle = editor.arena.insert(source)
        layer = editor.emitter.add_layer(source, create_linked=True, name="Kerb")
        original_id = layer.linked_id

        part1, part2 = (editor.arena.get(h) for h in editor.split(handle, 1))

        layer1, layer2 = part1.layers[0], part2.layers[0]
        assert original_id not in meshes.objects
        assert len(meshes) == 2
        assert layer1.linked_id != layer2.linked_id
        assert layer1.id != layer.id and layer2.id != layer.id
        assert meshes.objects[layer1.linked_id].owner_curve_id == part1.id
        assert meshes.objects[layer2.linked_id].owner_curve_id == part2.id
        assert meshes.objects[layer1.linked_id].name == "Kerb (1)"
        assert layer2.linked_name == "Kerb (2)"

    def test_split_copies_unlinked_layers(self, editor) -> None:
        """Test layers without linked geometry are copied onto both halves."""
        source = line([0, 10, 20])
        handle = editor.arena.insert(source)
        editor.emitter.add_layer(source, name="Guide").position = 0.5

        part1, part2 = (editor.arena.get(h) for h in editor.split(handle, 1))

        assert part1.layers[0].position == 0.5
        assert part2.layers[0].name == "Guide"
        assert part1.layers[0].linked_id is None

    @pytest.mark.parametrize("index", [0, 3, -1, 7])
    def test_split_rejects_endpoints(self, editor, index) -> None:
        """Test splitting at an endpoint or outside the curve does nothing."""
        source = line([0, 10, 20, 30])
        handle = editor.arena.insert(source)

        assert editor.split(handle, index) == []
        assert editor.arena.get(handle) is source
        assert len(source) == 4

    def test_split_rejects_two_nodes(self, editor) -> None:
        """Test two-node curves cannot be split."""
        handle = editor.arena.insert(line([0, 10]))

        assert editor.split(handle, 1) == []

    def test_split_loop_opens_in_place(self, editor) -> None:
        """Test splitting a loop keeps one curve and clears the loop flag."""
        source = line([0, 10, 20, 30], is_loop=True)
        handle = editor.arena.insert(source)

        assert editor.split(handle, 1) == [handle]
        assert source.is_loop is False
        np.testing.assert_allclose(source.positions[:, 0], [10, 20, 30, 0, 10])
        assert source.dirty

    def test_split_small_loop_rejected(self, editor) -> None:
        """Test loops with fewer than three nodes cannot be split."""
        handle = editor.arena.insert(line([0, 10], is_loop=True))

        assert editor.split(handle, 0) == []

    def test_split_stale_handle(self, editor) -> None:
        """Test stale handles are rejected."""
        handle = editor.arena.insert(line([0, 10, 20]))
        editor.arena.remove(handle)

        assert editor.split(handle, 1) == []


class TestJoin:
    """Tests for StructuralEditor.join."""

    def test_join_into_first(self, editor, meshes) -> None:
        """Test the first curve receives the nodes and the second is removed."""
        first = line([0, 10, 20], name="A")
        second = line([30, 40], name="B")
        h1, h2 = editor.arena.insert(first), editor.arena.insert(second)
        editor.emitter.add_layer(second, create_linked=True)

        assert editor.join(h1, 2, h2, 0) is True

        np.testing.assert_allclose(first.positions[:, 0], [0, 10, 20, 30, 40])
        assert editor.arena.get(h2) is None
        assert len(editor.arena) == 1
        assert len(meshes) == 0
        assert first.dirty

    def test_join_rejects_loops(self, editor) -> None:
        """Test loops cannot be joined."""
        h1 = editor.arena.insert(line([0, 10, 20], is_loop=True))
        h2 = editor.arena.insert(line([30, 40]))

        assert editor.join(h1, 2, h2, 0) is False
        assert len(editor.arena) == 2

    def test_join_rejects_same_curve(self, editor) -> None:
        """Test a curve cannot be joined to itself."""
        handle = editor.arena.insert(line([0, 10, 20]))

        assert editor.join(handle, 0, handle, 2) is False

    def test_join_rejects_interior_index(self, editor) -> None:
        """Test interior indices leave both curves untouched."""
        first = line([0, 10, 20])
        h1 = editor.arena.insert(first)
        h2 = editor.arena.insert(line([30, 40]))

        assert editor.join(h1, 1, h2, 0) is False
        assert len(first) == 3
        assert len(editor.arena) == 2


class TestFlipAndSimplify:
    """Tests for direction reversal and simplification."""

    def test_flip(self, editor) -> None:
        """Test flip reverses nodes, widths and normals together."""
        curve = line([0, 10, 20])
        handle = editor.arena.insert(curve)

        assert editor.flip_direction(handle) is True
        np.testing.assert_allclose(curve.positions[:, 0], [20, 10, 0])
        np.testing.assert_allclose(curve.widths, [21, 11, 1])

    def test_simplify_straight(self, editor) -> None:
        """Test collinear interior nodes are removed."""
        curve = line([0, 10, 20, 30, 40])
        handle = editor.arena.insert(curve)

        assert editor.simplify(handle) is True
        np.testing.assert_allclose(curve.positions[:, 0], [0, 40])
        np.testing.assert_allclose(curve.widths, [1, 41])

    def test_simplify_keeps_corners(self, editor) -> None:
        """Test nodes beyond the tolerance survive."""
        curve = Curve(
            positions=[[0, 0, 0], [50, 0, 0], [50, 50, 0]],
            widths=[5, 5, 5],
            normals=[[0, 0, 1]] * 3,
        )
        handle = editor.arena.insert(curve)

        editor.simplify(handle)

        assert len(curve) == 3

    def test_simplify_short_curve(self, editor) -> None:
        """Test curves with two nodes are left alone."""
        handle = editor.arena.insert(line([0, 10]))

        assert editor.simplify(handle) is False
