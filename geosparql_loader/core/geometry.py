"""Shared geometry helpers: reprojection, WKT, cleaning and bounding boxes.

All functions are pure.  Geometries arrive in the JGD2011 source CRS and
are reprojected to WGS 84 only at the point where a WKT literal is
written, so clustering and bounding-box arithmetic happen in source
coordinates.

Cleaning removes repeated and collinear vertices; simplification is
Douglas-Peucker without topology preservation, which keeps the vertex
order (and therefore the winding) of each ring.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

import shapely
from pyproj import Transformer
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Point, Polygon, shape
from shapely.ops import transform

from geosparql_loader.core.constants import MIN_RING_COORDS, SOURCE_CRS, TARGET_CRS

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from shapely.geometry.base import BaseGeometry

logger = logging.getLogger("geosparql_loader.core.geometry")

# Errors shapely raises for degenerate or unparseable coordinates.
GEOMETRY_ERRORS = (GEOSException, ValueError, TypeError, IndexError)


# ---------------------------------------------------------------------------
# Reprojection
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=8)
def get_transformer(from_crs: str, to_crs: str) -> Transformer:
    """Return a cached ``always_xy`` transformer (lon/lat axis order)."""
    return Transformer.from_crs(from_crs, to_crs, always_xy=True)


def reproject_point(
    x: float,
    y: float,
    from_crs: str = SOURCE_CRS,
    to_crs: str = TARGET_CRS,
) -> tuple[float, float]:
    tx, ty = get_transformer(from_crs, to_crs).transform(x, y)
    return float(tx), float(ty)


def reproject(
    geometry: BaseGeometry,
    from_crs: str = SOURCE_CRS,
    to_crs: str = TARGET_CRS,
) -> BaseGeometry:
    """Reproject every coordinate of *geometry*."""
    return transform(get_transformer(from_crs, to_crs).transform, geometry)


# ---------------------------------------------------------------------------
# Construction and serialisation
# ---------------------------------------------------------------------------


def geometry_from_geojson(geojson: Mapping[str, object]) -> BaseGeometry:
    """Build a shapely geometry from a GeoJSON-style mapping."""
    return shape(geojson)


def polygon_from_rings(rings: Sequence[Sequence[Sequence[float]]]) -> Polygon:
    """Build a polygon from GeoJSON ``[exterior, *holes]`` ring coordinates.

    Raises:
        ValueError: If the exterior ring is missing or too short.
    """
    if not rings:
        msg = "Polygon has no rings"
        raise ValueError(msg)
    exterior = [tuple(c[:2]) for c in rings[0]]
    holes = [[tuple(c[:2]) for c in ring] for ring in rings[1:]]
    return Polygon(exterior, holes)


def to_wkt(geometry: BaseGeometry) -> str:
    """Serialise to WKT at full coordinate precision."""
    return shapely.to_wkt(geometry, rounding_precision=-1)


def point_wkt(x: float, y: float) -> str:
    return to_wkt(Point(x, y))


# ---------------------------------------------------------------------------
# Cleaning and simplification
# ---------------------------------------------------------------------------


def _ring_ok(polygon: BaseGeometry) -> bool:
    return (
        isinstance(polygon, Polygon)
        and not polygon.is_empty
        and len(polygon.exterior.coords) >= MIN_RING_COORDS
    )


def clean_polygon(polygon: Polygon) -> Polygon | None:
    """Remove repeated and collinear vertices.

    Returns ``None`` when the cleaned ring no longer encloses an area.
    """
    deduplicated = shapely.remove_repeated_points(polygon)
    # Zero-tolerance Douglas-Peucker drops exactly collinear vertices only.
    cleaned = deduplicated.simplify(0.0, preserve_topology=False)
    return cleaned if _ring_ok(cleaned) else None


def clean_and_simplify(polygon: Polygon, tolerance: float) -> Polygon | None:
    """Clean *polygon*, then simplify it with *tolerance* (degrees).

    Returns ``None`` if the input ring is too short, if either step
    fails, or if the result collapses below a closed triangle.
    """
    if not _ring_ok(polygon):
        return None
    try:
        cleaned = clean_polygon(polygon)
        if cleaned is None:
            return None
        simplified = cleaned.simplify(tolerance, preserve_topology=False)
    except GEOSException as exc:
        logger.debug("Polygon cleaning failed | error=%s", exc)
        return None
    return simplified if _ring_ok(simplified) else None


def simplify_geometry(geometry: BaseGeometry, tolerance: float) -> BaseGeometry | None:
    """Simplify a (multi)polygon for display; ``None`` if nothing remains."""
    try:
        simplified = geometry.simplify(tolerance, preserve_topology=True)
    except GEOSException as exc:
        logger.debug("Display simplification failed | error=%s", exc)
        return None
    return None if simplified.is_empty else simplified


# ---------------------------------------------------------------------------
# Bounding box and centre
# ---------------------------------------------------------------------------


def bounding_box(geometry: BaseGeometry) -> tuple[tuple[float, float], tuple[float, float]]:
    """Return ``((min_x, min_y), (max_x, max_y))`` in the geometry's CRS."""
    min_x, min_y, max_x, max_y = geometry.bounds
    return (min_x, min_y), (max_x, max_y)


def bounding_box_wkt(
    geometry: BaseGeometry,
    from_crs: str = SOURCE_CRS,
    to_crs: str = TARGET_CRS,
) -> str:
    """Bounding box as a WKT polygon in *to_crs*.

    Only the two corner points are reprojected, not the full geometry.
    """
    (min_x, min_y), (max_x, max_y) = bounding_box(geometry)
    min_x, min_y = reproject_point(min_x, min_y, from_crs, to_crs)
    max_x, max_y = reproject_point(max_x, max_y, from_crs, to_crs)
    ring = [
        (min_x, min_y),
        (max_x, min_y),
        (max_x, max_y),
        (min_x, max_y),
        (min_x, min_y),
    ]
    return to_wkt(Polygon(ring))


def first_vertex(rings: Sequence[Sequence[Sequence[float]]]) -> tuple[float, float]:
    """First coordinate of the first ring, or ``(0.0, 0.0)`` if absent.

    Used as a cheap stand-in for a centroid during clustering.
    """
    try:
        x, y = rings[0][0][:2]
    except (IndexError, TypeError, ValueError):
        return 0.0, 0.0
    return float(x), float(y)


def ring_vertex_center(geometry: BaseGeometry) -> tuple[float, float] | None:
    """Mean of all exterior-ring vertices, closing vertex excluded.

    Accepts Polygon, MultiPolygon and Point; returns ``None`` for other
    or empty geometries.
    """
    if geometry.is_empty:
        return None
    if isinstance(geometry, Point):
        return geometry.x, geometry.y
    if isinstance(geometry, Polygon):
        parts = [geometry]
    elif isinstance(geometry, MultiPolygon):
        parts = list(geometry.geoms)
    else:
        return None

    xs: list[float] = []
    ys: list[float] = []
    for part in parts:
        for x, y, *_ in list(part.exterior.coords)[:-1]:
            xs.append(x)
            ys.append(y)
    if not xs:
        return None
    return sum(xs) / len(xs), sum(ys) / len(ys)
