# encadrement/services/est_ensemble_resolver.py
from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, List, Optional

from encadrement.services import referentiel
from encadrement.services.errors import TransportError
from encadrement.services.geometry import (
    as_axis_order,
    detect_axis_order,
    normalize_rings,
    point_in_polygon,
)
from encadrement.services.models import (
    MATCH_APARTMENT_FALLBACK,
    MATCH_EXACT,
    GeoPoint,
    RegulationCategory,
    RentControlResult,
    ZonePolygon,
)
from encadrement.services.opendata_client import OpenDataClient
from encadrement.services.vocabulary import (
    EST_ENSEMBLE,
    map_construction_period,
    map_furnished,
    map_room_count,
    read_schedule,
)

logger = logging.getLogger(__name__)


def _zone_id(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


class EstEnsembleDataset:
    """Cache explicite des deux instantanés Est Ensemble (zones GeoJSON + grille de loyers).

    Créé une fois par l'application hôte et passé par référence au résolveur.
    Rempli au premier besoin (sous verrou), lu seulement ensuite ; pas
    d'invalidation, les instantanés publiés sont datés et statiques.
    """

    def __init__(self, client: Optional[OpenDataClient] = None,
                 rent_url: Optional[str] = None, geo_url: Optional[str] = None):
        conf = referentiel.dataset(EST_ENSEMBLE)
        self.client = client or OpenDataClient()
        self.rent_url = rent_url or os.getenv("ENCADREMENT_EE_RENT_URL") or conf.get("rent_url")
        self.geo_url = geo_url or os.getenv("ENCADREMENT_EE_GEO_URL") or conf.get("geo_url")
        self.year = str(conf.get("reference_year") or "2023")
        self._lock = threading.Lock()
        self._zones: Optional[List[ZonePolygon]] = None
        self._rows: Optional[List[Dict[str, Any]]] = None

    @property
    def is_loaded(self) -> bool:
        return self._zones is not None and self._rows is not None

    def load(self) -> None:
        """Télécharge les deux instantanés si besoin. Un échec (TransportError) laisse le cache vide."""
        if self.is_loaded:
            return
        with self._lock:
            if self.is_loaded:
                return
            logger.info("[EST ENSEMBLE] chargement des données de loyers…")
            rows = self.client.get_json(self.rent_url)
            logger.info("[EST ENSEMBLE] chargement des données géographiques…")
            geo = self.client.get_json(self.geo_url)
            if not isinstance(rows, list):
                raise TransportError(
                    f"Grille de loyers inattendue ({type(rows).__name__}, liste attendue)", url=self.rent_url
                )
            if not isinstance(geo, dict):
                raise TransportError(
                    f"Zones inattendues ({type(geo).__name__}, FeatureCollection attendue)", url=self.geo_url
                )
            zones = self._ingest_zones(geo)
            self._rows = list(rows)
            self._zones = zones
            logger.info("[EST ENSEMBLE] %d ligne(s) de loyers, %d zone(s)", len(self._rows), len(self._zones))

    @staticmethod
    def _ingest_zones(geo: Any) -> List[ZonePolygon]:
        out: List[ZonePolygon] = []
        for feature in (geo or {}).get("features") or []:
            props = feature.get("properties") or {}
            zone = _zone_id(props.get("zone", props.get("Zone")))
            if zone is None:
                continue
            for ring in normalize_rings(feature.get("geometry")):
                ring = tuple(tuple(v) for v in ring)
                out.append(ZonePolygon(name=str(zone), ring=ring, axis_order=detect_axis_order(ring)))
        return out

    @property
    def zones(self) -> List[ZonePolygon]:
        self.load()
        return self._zones or []

    @property
    def rows(self) -> List[Dict[str, Any]]:
        self.load()
        return self._rows or []


def zone_name(zone: int) -> str:
    return referentiel.est_ensemble_zone_names().get(zone) or f"Zone {zone}"


def find_zone(zones: List[ZonePolygon], point: GeoPoint) -> Optional[int]:
    """Zone contenant le point ; pas de repli à la distance pour Est Ensemble."""
    for z in zones:
        if point_in_polygon(as_axis_order(point.latitude, point.longitude, z.axis_order), z.ring):
            return int(z.name)
    return None


def find_row(rows: List[Dict[str, Any]], zone: int, piece: Any, epoque: str,
             meuble: bool, maison: bool) -> Optional[Dict[str, Any]]:
    for row in rows:
        if (
            _zone_id(row.get("zone")) == zone
            and row.get("nombre_de_piece") == piece
            and row.get("annee_de_construction") == epoque
            and bool(row.get("meuble")) == meuble
            and bool(row.get("maison")) == maison
        ):
            return row
    return None


class EstEnsembleZoneResolver:
    def __init__(self, dataset: EstEnsembleDataset):
        self.dataset = dataset

    def resolve(self, point: GeoPoint, category: RegulationCategory) -> Optional[RentControlResult]:
        zone = find_zone(self.dataset.zones, point)
        if zone is None:
            logger.warning("[EST ENSEMBLE] aucune zone pour (%s, %s)", point.latitude, point.longitude)
            return None

        piece = map_room_count(category.room_count, EST_ENSEMBLE)
        epoque = map_construction_period(category.construction_period, EST_ENSEMBLE)
        meuble = category.furnished
        maison = category.is_house
        rows = self.dataset.rows

        quality = MATCH_EXACT
        row = find_row(rows, zone, piece, epoque, meuble, maison)
        if row is None and maison:
            # La grille publiée comporte peu de lignes "maison" : approximation par l'appartement
            row = find_row(rows, zone, piece, epoque, meuble, False)
            if row is not None:
                quality = MATCH_APARTMENT_FALLBACK
                logger.warning(
                    "[EST ENSEMBLE] pas de ligne 'maison' pour zone=%s piece=%r epoque=%r ; "
                    "grille appartement utilisée", zone, piece, epoque,
                )
        if row is None:
            logger.warning("[EST ENSEMBLE] aucune ligne pour zone=%s piece=%r epoque=%r meuble=%s maison=%s",
                           zone, piece, epoque, meuble, maison)
            return None

        schedule = read_schedule(row.get("prix_med"), row.get("prix_max"), row.get("prix_min"))
        if schedule is None:
            logger.warning(
                "[EST ENSEMBLE] loyers illisibles pour zone=%s (med=%r max=%r min=%r)",
                zone, row.get("prix_med"), row.get("prix_max"), row.get("prix_min"),
            )
            return None

        matched_house = bool(row.get("maison"))
        return RentControlResult(
            territory=EST_ENSEMBLE,
            zone_name=zone_name(zone),
            schedule=schedule,
            year=self.dataset.year,
            room_count=str(row.get("nombre_de_piece")),
            construction_period=str(row.get("annee_de_construction")),
            furnished_label=map_furnished(bool(row.get("meuble"))),
            building_type="maison" if matched_house else "appartement",
            requested_building_type=category.building_type,
            match_quality=quality,
        )
