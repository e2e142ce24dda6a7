"""
Demo script for homologation analysis and live optimisation.

Builds a deliberately non-compliant road, scores it against a preset for
every metric, then lets the optimiser run for a number of frames on each
metric and reports the worst score before and after.
"""

import numpy as np

from roadsmith.core.logging_config import setup_logging
from roadsmith.core.spline.session import RoadEditorSession
from roadsmith.models.spline import AnalysisMode

FRAMES = 200


def build_road(session: RoadEditorSession):
    """Steep, twisty road with uneven widths and a banked node."""
    normals = np.tile([0.0, 0.0, 1.0], (6, 1))
    normals[2] = [0.0, 0.5, 0.866]
    return session.add_curve(
        name="Test Road",
        positions=[
            [0.0, 0.0, 0.0],
            [40.0, 0.0, 8.0],
            [70.0, 20.0, 2.0],
            [80.0, 55.0, 9.0],
            [120.0, 60.0, 4.0],
            [160.0, 60.0, 6.0],
        ],
        widths=[6.0, 6.0, 12.0, 5.0, 9.0, 6.0],
        normals=normals,
    )


def main():
    """Run homologation demo."""
    setup_logging(log_level="WARNING")

    print("=" * 60)
    print("Homologation Demo (preset: Rural Road)")
    print("=" * 60)

    for mode in AnalysisMode:
        session = RoadEditorSession(random_seed=1)
        handle = build_road(session)
        session.set_analysis_mode(handle, mode)
        session.update()
        curve = session.get(handle)
        before = curve.analysis.worst_score

        curve.is_optimising = True
        for _ in range(FRAMES):
            session.update(optimise_handle=handle)
        curve.is_optimising = False
        curve.mark_dirty()
        session.update()

        print(f"\n{mode.name}:")
        print(f"   - Worst score before: {before:.3f}")
        print(f"   - Worst score after {FRAMES} frames: {curve.analysis.worst_score:.3f}")
        if curve.analysis.worst_index is not None:
            print(f"   - Worst sample: {curve.analysis.worst_index}")

    print("\n" + "=" * 60)
    print("Demo Complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
