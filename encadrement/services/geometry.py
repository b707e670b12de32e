# encadrement/services/geometry.py
"""
Primitives géométriques (aucune dépendance) :

  - point_in_polygon : test d'appartenance par lancer de rayon (ray casting) ;
  - haversine_km     : distance orthodromique, utilisée uniquement pour classer
                       des candidats, jamais comme test d'appartenance ;
  - normalize_rings  : Polygon / MultiPolygon GeoJSON -> liste d'anneaux ;
  - detect_axis_order / ring_centroid : aides pour les résolveurs.

Les anneaux sont des listes de paires [axe A, axe B]. Le point testé doit être
exprimé dans le même ordre que l'anneau : c'est au résolveur de s'en assurer.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

EARTH_RADIUS_KM = 6371.0

LONLAT = "lonlat"
LATLON = "latlon"

Ring = Sequence[Sequence[float]]


def point_in_polygon(point: Sequence[float], ring: Ring) -> bool:
    """Ray casting : bascule `inside` à chaque arête franchie par le rayon horizontal.

    Le comportement sur les bords n'est pas garanti (pas d'inclusion stricte).
    """
    if not ring:
        return False
    x, y = float(point[0]), float(point[1])
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = float(ring[i][0]), float(ring[i][1])
        xj, yj = float(ring[j][0]), float(ring[j][1])
        # (yi > y) != (yj > y) garantit yi != yj, pas de division par zéro
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def haversine_km(lat_a: float, lon_a: float, lat_b: float, lon_b: float) -> float:
    phi1 = math.radians(lat_a)
    phi2 = math.radians(lat_b)
    d_phi = math.radians(lat_b - lat_a)
    d_lambda = math.radians(lon_b - lon_a)

    a = math.sin(d_phi / 2) ** 2 + \
        math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def normalize_rings(geometry: Optional[Dict[str, Any]]) -> List[Ring]:
    """
    Résout une géométrie GeoJSON (ou une Feature qui l'enveloppe) en anneaux extérieurs :
      - Polygon      -> [coordinates[0]]
      - MultiPolygon -> [premier anneau de chaque sous-polygone]
      - autre / vide -> []
    """
    if not isinstance(geometry, dict):
        return []
    if geometry.get("type") == "Feature" or "geometry" in geometry:
        geometry = geometry.get("geometry")
        if not isinstance(geometry, dict):
            return []
    kind = geometry.get("type")
    coords = geometry.get("coordinates") or []
    if kind == "Polygon":
        return [coords[0]] if coords and coords[0] else []
    if kind == "MultiPolygon":
        return [poly[0] for poly in coords if poly and poly[0]]
    return []


def detect_axis_order(ring: Ring) -> str:
    """
    Devine l'ordre des axes d'un anneau en Île-de-France.

    La latitude (~48–49°) y est toujours bien plus grande en valeur absolue que
    la longitude (~1–3°) : si le premier axe domine, l'anneau est en [lat, lon].
    """
    if not ring:
        return LONLAT
    a = sum(abs(float(v[0])) for v in ring) / len(ring)
    b = sum(abs(float(v[1])) for v in ring) / len(ring)
    return LATLON if a > b else LONLAT


def ring_centroid(ring: Ring) -> Optional[Tuple[float, float]]:
    """Moyenne des sommets (sommet de fermeture exclu), dans l'ordre des axes de l'anneau."""
    if not ring:
        return None
    pts = list(ring)
    if len(pts) > 1 and list(pts[0]) == list(pts[-1]):
        pts = pts[:-1]
    n = len(pts)
    return (
        sum(float(p[0]) for p in pts) / n,
        sum(float(p[1]) for p in pts) / n,
    )


def as_axis_order(latitude: float, longitude: float, axis_order: str) -> Tuple[float, float]:
    """Exprime un point (lat, lon) dans l'ordre d'axes d'un anneau."""
    if axis_order == LATLON:
        return (latitude, longitude)
    return (longitude, latitude)
