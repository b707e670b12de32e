# encadrement/services/paris_resolver.py
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from encadrement.services import referentiel
from encadrement.services.geometry import (
    LATLON,
    as_axis_order,
    detect_axis_order,
    haversine_km,
    normalize_rings,
    point_in_polygon,
    ring_centroid,
)
from encadrement.services.models import (
    MATCH_CENTROID_FALLBACK,
    MATCH_EXACT,
    GeoPoint,
    RegulationCategory,
    RentControlResult,
    ZonePolygon,
)
from encadrement.services.opendata_client import OpenDataClient
from encadrement.services.vocabulary import (
    PARIS,
    map_construction_period,
    map_furnished,
    map_room_count,
    parse_decimal,
    read_schedule,
)

logger = logging.getLogger(__name__)

DEFAULT_RECORDS_URL = (
    "https://opendata.paris.fr/api/explore/v2.1/catalog/datasets/"
    "logement-encadrement-des-loyers/records"
)


def build_where_clause(category: RegulationCategory, year: str) -> str:
    """Clause ODSQL sur piece / epoque / meuble_txt / annee."""
    piece = map_room_count(category.room_count, PARIS)
    epoque = map_construction_period(category.construction_period, PARIS)
    meuble_txt = map_furnished(category.furnished)
    return f'piece="{piece}" AND epoque="{epoque}" AND meuble_txt="{meuble_txt}" AND annee="{year}"'


def record_zone(record: Dict[str, Any]) -> Optional[ZonePolygon]:
    """Normalise un enregistrement en ZonePolygon (un seul anneau, ordre des axes détecté)."""
    rings = normalize_rings(record.get("geo_shape"))
    ring = tuple(tuple(v) for v in rings[0]) if rings else ()
    axis_order = detect_axis_order(ring)

    centroid: Optional[GeoPoint] = None
    gp = record.get("geo_point_2d") or {}
    lat, lon = parse_decimal(gp.get("lat")), parse_decimal(gp.get("lon"))
    if lat is not None and lon is not None:
        centroid = GeoPoint(lat, lon)
    elif ring:
        a, b = ring_centroid(ring)
        centroid = GeoPoint(a, b) if axis_order == LATLON else GeoPoint(b, a)

    if not ring and centroid is None:
        return None
    return ZonePolygon(
        name=str(record.get("nom_quartier") or ""),
        ring=ring,
        centroid=centroid,
        axis_order=axis_order,
    )


def find_quartier(
    records: List[Dict[str, Any]], point: GeoPoint
) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Renvoie (enregistrement, qualité) :
      1) premier polygone qui contient le point -> "exact"
      2) sinon centroïde le plus proche (haversine) -> "centroid_fallback"
      3) sinon (None, "")
    """
    zones = [(r, record_zone(r)) for r in records or []]
    zones = [(r, z) for r, z in zones if z is not None]

    for rec, zone in zones:
        if zone.ring and point_in_polygon(
            as_axis_order(point.latitude, point.longitude, zone.axis_order), zone.ring
        ):
            logger.info("[PARIS] point (%s, %s) dans le quartier %r", point.latitude, point.longitude, zone.name)
            return rec, MATCH_EXACT

    logger.warning(
        "[PARIS] aucun quartier ne contient (%s, %s) : repli sur la distance au centre",
        point.latitude, point.longitude,
    )
    closest: Optional[Dict[str, Any]] = None
    best = float("inf")
    for rec, zone in zones:
        if zone.centroid is None:
            continue
        d = haversine_km(point.latitude, point.longitude, zone.centroid.latitude, zone.centroid.longitude)
        if d < best:
            best, closest = d, rec
    if closest is not None:
        logger.warning("[PARIS] correspondance dégradée : %r à %.3f km", closest.get("nom_quartier"), best)
        return closest, MATCH_CENTROID_FALLBACK
    return None, ""


class ParisZoneResolver:
    """Résout (point, catégorie) -> loyers de référence via l'API records d'opendata.paris.fr.

    Configuration :
      - ENCADREMENT_PARIS_RECORDS_URL (défaut : référentiel / API v2.1)
      - ENCADREMENT_PARIS_YEAR (défaut : année de référence du référentiel)
    """

    def __init__(self, client: Optional[OpenDataClient] = None, year: Optional[str] = None,
                 records_url: Optional[str] = None):
        conf = referentiel.dataset("paris")
        self.client = client or OpenDataClient()
        self.records_url = (
            records_url
            or os.getenv("ENCADREMENT_PARIS_RECORDS_URL")
            or conf.get("records_url")
            or DEFAULT_RECORDS_URL
        )
        self.year = str(year or os.getenv("ENCADREMENT_PARIS_YEAR") or conf.get("reference_year") or "2025")
        self.limit = int(conf.get("limit") or 100)

    def fetch_records(self, category: RegulationCategory) -> List[Dict[str, Any]]:
        params = {"where": build_where_clause(category, self.year), "limit": self.limit}
        data = self.client.get_json(self.records_url, params=params)
        results = (data or {}).get("results") or []
        logger.info("[PARIS] %d enregistrement(s) pour %s", len(results), params["where"])
        return results

    def resolve(self, point: GeoPoint, category: RegulationCategory) -> Optional[RentControlResult]:
        """None si aucun enregistrement / candidat ; TransportError si l'API échoue."""
        records = self.fetch_records(category)
        if not records:
            logger.warning("[PARIS] aucun résultat pour ces critères")
            return None

        rec, quality = find_quartier(records, point)
        if rec is None:
            logger.warning("[PARIS] impossible d'identifier le quartier")
            return None

        schedule = read_schedule(rec.get("ref"), rec.get("max"), rec.get("min"))
        if schedule is None:
            logger.warning(
                "[PARIS] loyers illisibles pour %r (ref=%r max=%r min=%r)",
                rec.get("nom_quartier"), rec.get("ref"), rec.get("max"), rec.get("min"),
            )
            return None
        return RentControlResult(
            territory=PARIS,
            zone_name=str(rec.get("nom_quartier") or ""),
            schedule=schedule,
            year=str(rec.get("annee") or self.year),
            room_count=str(rec.get("piece") or map_room_count(category.room_count, PARIS)),
            construction_period=str(rec.get("epoque") or map_construction_period(category.construction_period, PARIS)),
            furnished_label=str(rec.get("meuble_txt") or map_furnished(category.furnished)),
            match_quality=quality,
        )
