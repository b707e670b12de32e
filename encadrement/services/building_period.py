# encadrement/services/building_period.py
"""
Indice d'époque de construction à partir de l'emprise bâtie APUR (Paris).

Sert uniquement à pré-remplir le formulaire : toute erreur donne None.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from encadrement.services import referentiel
from encadrement.services.errors import TransportError
from encadrement.services.models import GeoPoint
from encadrement.services.opendata_client import OpenDataClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildingPeriodHint:
    construction_period: str
    apur_code: int
    apur_label: Optional[str] = None


class BuildingPeriodClient:
    def __init__(self, client: Optional[OpenDataClient] = None, query_url: Optional[str] = None):
        conf = referentiel.dataset("apur")
        self.client = client or OpenDataClient()
        self.query_url = query_url or os.getenv("ENCADREMENT_APUR_URL") or conf.get("query_url")
        self.buffer = float(conf.get("envelope_buffer_deg") or 0.0002)

    def _params(self, point: GeoPoint) -> dict:
        # Enveloppe d'environ 20 m autour du point pour toucher un bâtiment
        envelope = {
            "xmin": point.longitude - self.buffer,
            "ymin": point.latitude - self.buffer,
            "xmax": point.longitude + self.buffer,
            "ymax": point.latitude + self.buffer,
            "spatialReference": {"wkid": 4326},
        }
        return {
            "geometry": json.dumps(envelope),
            "geometryType": "esriGeometryEnvelope",
            "spatialRel": "esriSpatialRelIntersects",
            "outFields": "c_perconst",
            "returnGeometry": "false",
            "f": "json",
        }

    def lookup(self, point: GeoPoint) -> Optional[BuildingPeriodHint]:
        try:
            data = self.client.get_json(self.query_url, params=self._params(point))
        except TransportError as e:
            logger.warning("[APUR] requête impossible : %s", e)
            return None

        features = (data or {}).get("features") or []
        if not features:
            logger.info("[APUR] aucun bâtiment autour de (%s, %s)", point.latitude, point.longitude)
            return None
        code = (features[0].get("attributes") or {}).get("c_perconst")
        try:
            code = int(code)
        except (TypeError, ValueError):
            return None

        period = referentiel.apur_periods().get(code)
        if not period:
            logger.info("[APUR] code c_perconst=%s sans correspondance", code)
            return None
        label = period[1] if len(period) > 1 else None
        return BuildingPeriodHint(construction_period=period[0], apur_code=code, apur_label=label)
