"""
Offset: parallel copies of lines, circles and arcs at a fixed distance.

A line moves along its left normal ``(-dy, dx)``; a circle or arc grows
by the distance.  ``flip`` reverses both.  Copies are never construction
geometry, and each is tied to its source:

* Line: Parallel, plus a driving DistancePointLine from the copy's start
  to the source line.
* Circle / Arc: Coincident centers, plus a driving Radius on the copy.

Source lines that share an endpoint keep sharing it: the two copies are
extended (or cut back) to meet, and a Coincident joins them.  So offsetting
the four sides of a rectangle yields a closed rectangle.

Like the pattern engine, every function here is pure and returns a
:class:`~sketchworks.kernel.patterns.PatternResult`.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List

from .constraints import (
    Coincident,
    ConstraintPoint,
    DimensionStyle,
    DistancePointLine,
    Parallel,
    Radius,
)
from .geometry import distance as point_distance, line_intersection
from .measurement import RADIUS_OFFSET
from .patterns import PatternResult
from .sketch import (
    ArcGeometry,
    CircleGeometry,
    LineGeometry,
    Sketch,
    SketchEntity,
    new_entity_id,
)

JOIN_TOLERANCE = 1e-6
MIN_RADIUS = 1e-6


def _offset_line(line: LineGeometry, d: float):
    dx, dy = line.end[0] - line.start[0], line.end[1] - line.start[1]
    length = line.length
    if length < 1e-9:
        return None
    ox, oy = -dy / length * d, dx / length * d
    return LineGeometry(
        (line.start[0] + ox, line.start[1] + oy),
        (line.end[0] + ox, line.end[1] + oy),
    )


def _endpoint(line: LineGeometry, index: int):
    return line.start if index == 0 else line.end


def _with_endpoint(line: LineGeometry, index: int, p) -> LineGeometry:
    return replace(line, start=p) if index == 0 else replace(line, end=p)


def _join_lines(pairs: List[list], result: PatternResult):
    """Make copies of source lines that share an endpoint meet."""
    for i in range(len(pairs)):
        for j in range(i + 1, len(pairs)):
            src_i, copy_i = pairs[i]
            src_j, copy_j = pairs[j]
            for a, b in ((0, 0), (0, 1), (1, 0), (1, 1)):
                if point_distance(_endpoint(src_i.geometry, a), _endpoint(src_j.geometry, b)) >= JOIN_TOLERANCE:
                    continue
                gi, gj = copy_i.geometry, copy_j.geometry
                corner = line_intersection(gi.start, gi.end, gj.start, gj.end)
                if corner is not None:
                    copy_i.geometry = _with_endpoint(gi, a, corner)
                    copy_j.geometry = _with_endpoint(gj, b, corner)
                result.constraints.append(Coincident(
                    points=(ConstraintPoint(copy_i.id, a), ConstraintPoint(copy_j.id, b)),
                ))
                break


def offset_entities(
    sketch: Sketch,
    entity_ids: List[str],
    distance: float,
    flip: bool = False,
) -> PatternResult:
    """
    Offset every Line, Circle and Arc in *entity_ids* by *distance*.

    Other kinds, missing ids and copies that would collapse (zero-length
    line, radius at or below zero) are skipped.
    """
    result = PatternResult()
    d = -distance if flip else distance
    value = abs(distance)
    lines = []

    for eid in entity_ids:
        source = sketch.get_entity(eid)
        if source is None or source.is_preview:
            continue
        geom = source.geometry
        if isinstance(geom, LineGeometry):
            moved = _offset_line(geom, d)
            if moved is None:
                continue
            copy = SketchEntity(new_entity_id(), moved, False)
            lines.append([source, copy])
            result.entities.append(copy)
            result.constraints.append(Parallel(lines=(source.id, copy.id)))
            result.constraints.append(DistancePointLine(
                point=ConstraintPoint(copy.id, 0),
                line=source.id,
                value=value,
                style=DimensionStyle(driven=False, offset=(0.0, 0.0)),
            ))
        elif isinstance(geom, (CircleGeometry, ArcGeometry)):
            radius = geom.radius + d
            if radius <= MIN_RADIUS:
                print(f"[SketchWorks] Offset: {eid} would collapse (radius {radius:.3f})")
                continue
            copy = SketchEntity(new_entity_id(), replace(geom, radius=radius), False)
            result.entities.append(copy)
            result.constraints.append(Coincident(
                points=(ConstraintPoint(source.id, 0), ConstraintPoint(copy.id, 0)),
            ))
            result.constraints.append(Radius(
                entity=copy.id,
                value=radius,
                style=DimensionStyle(driven=False, offset=RADIUS_OFFSET),
            ))

    _join_lines(lines, result)
    return result


def preview_offset(
    sketch: Sketch,
    entity_ids: List[str],
    distance: float,
    flip: bool = False,
) -> List[SketchEntity]:
    """Entities an offset would create (no constraints, no history)."""
    return offset_entities(sketch, entity_ids, distance, flip).entities
