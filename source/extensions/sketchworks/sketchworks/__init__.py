"""
SketchWorks — interactive 2D sketch authoring on oriented planes.

The engine is headless: tools consume plane-local pointer events, edit the
sketch through a :class:`~sketchworks.session.SketchSession` and ship the
whole sketch to an external solver.  Start with
:class:`~sketchworks.api.SketchWorksAPI`.
"""

__version__ = "0.1.0"
