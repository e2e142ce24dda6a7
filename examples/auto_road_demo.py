"""
Demo script for automatic road generation.

This example demonstrates the auto-road pipeline end to end:
1. Create a hilly terrain and an editing session
2. Sketch a rough curve through three waypoints
3. Generate a terrain-aware preview and commit it onto the curve
4. Analyse the committed road and save the session to disk
"""

import tempfile

import numpy as np

from roadsmith.core.logging_config import setup_logging
from roadsmith.core.roads.auto_road import AutoRoadParams
from roadsmith.core.spline.persistence import build_document
from roadsmith.core.spline.session import RoadEditorSession
from roadsmith.core.storage import DocumentStore
from roadsmith.core.terrain.sampler import HeightGridTerrain
from roadsmith.models.linked import LinkKind
from roadsmith.models.spline import AnalysisMode


def make_terrain() -> HeightGridTerrain:
    """300m x 300m site with a hill in the middle, 2m cells."""
    size = 151
    coords = np.arange(size) * 2.0
    xx, yy = np.meshgrid(coords, coords)
    heights = 40.0 * np.exp(-((xx - 150.0) ** 2 + (yy - 150.0) ** 2) / (2 * 45.0 ** 2))
    return HeightGridTerrain.from_origin(heights, cell_size=2.0)


def main():
    """Run auto road demo."""
    setup_logging(log_level="WARNING")

    print("=" * 60)
    print("Auto Road Generation Demo")
    print("=" * 60)

    # 1. Terrain and session
    print("\n1. Creating terrain (300m x 300m, hill in the centre)...")
    terrain = make_terrain()
    heights = terrain.height_grid()
    print(f"   - Elevation range: {heights.min():.1f}m - {heights.max():.1f}m")
    session = RoadEditorSession(terrain=terrain, random_seed=42)

    # 2. Rough curve straight over the hill
    print("\n2. Sketching rough curve...")
    waypoints = [(20.0, 150.0), (150.0, 150.0), (280.0, 150.0)]
    handle = session.add_curve(
        name="Hill Road",
        positions=[(x, y, terrain.get_height_at((x, y))) for x, y in waypoints],
    )
    curve = session.get(handle)
    session.emitter.add_layer(curve, create_linked=True, name="Asphalt")
    session.set_preset(handle, "Mountain Pass")
    print(f"   - Nodes: {len(curve)}")

    # 3. Preview and commit
    print("\n3. Generating preview...")
    preview = session.generate_auto_preview(handle, AutoRoadParams(base_width=7.0))
    if preview is None:
        print("   - No path found")
        return
    print(f"   - Raw search points: {preview.metadata['raw_points']}")
    print(f"   - Preview points: {len(preview)}")
    print(f"   - Preview length: {preview.length:.1f}m")
    print(f"   - Width range: {preview.widths.min():.2f}m - {preview.widths.max():.2f}m")

    session.commit_auto_road(handle)
    session.set_analysis_mode(handle, AnalysisMode.SLOPE)
    session.update()

    # 4. Analysis and save
    print("\n4. Committed road:")
    print("-" * 60)
    print(f"   Nodes: {len(curve)}")
    print(f"   Samples: {len(curve.discretization)}")
    print(f"   Road length: {curve.road_length:.1f}m")
    print(f"   Auto banking: {curve.is_auto_banking} (strength {curve.bank_strength:.2f})")
    print(f"   Worst slope score: {curve.analysis.worst_score:.3f}")

    meshes = session.registry.require(LinkKind.MESH)
    ribbon = meshes.objects[curve.layers[0].linked_id]
    print(f"   Asphalt ribbon points: {len(ribbon.points)}")

    with tempfile.TemporaryDirectory() as tmp:
        store = DocumentStore(base_dir=tmp)
        path = store.save("hill_road", build_document(session))
        print(f"\n5. Saved document: {path.name} ({path.stat().st_size} bytes)")

    print("\n" + "=" * 60)
    print("Demo Complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
