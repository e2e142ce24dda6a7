"""
Roadsmith - parametric road and path authoring engine.

This package turns sparse control nodes into dense, terrain-aware ribbon
geometry, scores it against road-design presets, nudges it toward
compliance and generates whole roads across a height field.
"""

__version__ = "0.1.0"
