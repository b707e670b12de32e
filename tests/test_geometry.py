import math
import random

import pytest

from encadrement.services.geometry import (
    LATLON,
    LONLAT,
    detect_axis_order,
    haversine_km,
    normalize_rings,
    point_in_polygon,
    ring_centroid,
)
from conftest import CHAPELLE_RING, square

SQUARE = square(0, 0, 10, 10)
TRIANGLE = [[0, 0], [10, 0], [5, 10], [0, 0]]


def test_square_inside_outside():
    assert point_in_polygon((5, 5), SQUARE) is True
    assert point_in_polygon((1, 1), SQUARE) is True
    assert point_in_polygon((15, 15), SQUARE) is False
    assert point_in_polygon((-5, 5), SQUARE) is False


def test_triangle():
    assert point_in_polygon((5, 3), TRIANGLE) is True
    assert point_in_polygon((9, 9), TRIANGLE) is False


def test_concave_notch_is_outside():
    # U renversé : l'encoche (4..6, 5..10) est hors du polygone
    ring = [[0, 0], [10, 0], [10, 10], [6, 10], [6, 5], [4, 5], [4, 10], [0, 10], [0, 0]]
    assert point_in_polygon((5, 8), ring) is False
    assert point_in_polygon((2, 8), ring) is True
    assert point_in_polygon((5, 2), ring) is True


def test_empty_ring():
    assert point_in_polygon((0, 0), []) is False


def _random_convex(rng):
    n = rng.randint(5, 12)
    step = 2 * math.pi / n
    # Angles réguliers légèrement bruités : écart max < pi, le centre reste intérieur
    angles = [i * step + rng.uniform(-0.3, 0.3) * step for i in range(n)]
    cx, cy = rng.uniform(-50, 50), rng.uniform(-50, 50)
    r = rng.uniform(0.01, 20)
    ring = [[cx + r * math.cos(a), cy + r * math.sin(a)] for a in angles]
    ring.append(list(ring[0]))
    gaps = [(angles[(i + 1) % n] - angles[i]) % (2 * math.pi) for i in range(n)]
    inradius = r * math.cos(max(gaps) / 2)
    return ring, (cx, cy), r, inradius


@pytest.mark.parametrize("seed", range(25))
def test_random_convex_polygons(seed):
    rng = random.Random(seed)
    ring, (cx, cy), r, inradius = _random_convex(rng)
    for _ in range(40):
        theta = rng.uniform(0, 2 * math.pi)
        inner = rng.uniform(0, 0.95) * inradius
        assert point_in_polygon((cx + inner * math.cos(theta), cy + inner * math.sin(theta)), ring)
        outer = rng.uniform(1.05, 3.0) * r
        assert not point_in_polygon((cx + outer * math.cos(theta), cy + outer * math.sin(theta)), ring)


def test_haversine_known_distance():
    # Notre-Dame -> Tour Eiffel ≈ 4.1 km
    d = haversine_km(48.8530, 2.3499, 48.8584, 2.2945)
    assert 4.0 < d < 4.2
    assert haversine_km(48.85, 2.35, 48.85, 2.35) == 0


def test_normalize_polygon_and_multipolygon():
    assert normalize_rings({"type": "Polygon", "coordinates": [SQUARE]}) == [SQUARE]
    multi = {"type": "MultiPolygon", "coordinates": [[SQUARE], [TRIANGLE]]}
    assert normalize_rings(multi) == [SQUARE, TRIANGLE]
    feature = {"type": "Feature", "geometry": {"type": "Polygon", "coordinates": [TRIANGLE]}}
    assert normalize_rings(feature) == [TRIANGLE]
    assert normalize_rings({"type": "Point", "coordinates": [2.3, 48.8]}) == []
    assert normalize_rings(None) == []


def test_detect_axis_order_ile_de_france():
    assert detect_axis_order(CHAPELLE_RING) == LONLAT
    assert detect_axis_order([[lat, lon] for lon, lat in CHAPELLE_RING]) == LATLON


def test_ring_centroid_ignores_closing_vertex():
    assert ring_centroid(SQUARE) == (5, 5)
    assert ring_centroid([]) is None
