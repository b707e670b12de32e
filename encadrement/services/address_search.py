# encadrement/services/address_search.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

from encadrement.services import referentiel
from encadrement.services.models import GeoPoint
from encadrement.services.opendata_client import OpenDataClient

logger = logging.getLogger(__name__)

# Codes INSEE des 20 arrondissements parisiens (75101 … 75120)
PARIS_CITY_CODES = [f"751{n:02d}" for n in range(1, 21)]


@dataclass(frozen=True)
class ResolvedAddress:
    label: str
    city: str
    postcode: str
    citycode: str
    latitude: float
    longitude: float

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


class AddressSearchClient:
    """Recherche d'adresses via le service de géocodage de la Géoplateforme (/search)."""

    def __init__(self, client: Optional[OpenDataClient] = None, search_url: Optional[str] = None):
        conf = referentiel.dataset("geocoder")
        self.client = client or OpenDataClient()
        self.search_url = search_url or os.getenv("ENCADREMENT_GEOCODER_URL") or conf.get("search_url")
        self.min_query_length = int(conf.get("min_query_length") or 3)

    def search(self, query: str, limit: int = 10,
               citycodes: Optional[Iterable[str]] = None) -> List[ResolvedAddress]:
        q = (query or "").strip()
        if len(q) < self.min_query_length:
            return []
        params = {"q": q, "index": "address", "limit": limit}
        if citycodes:
            params["citycode"] = ",".join(citycodes)
        data = self.client.get_json(self.search_url, params=params)

        out: List[ResolvedAddress] = []
        for f in (data or {}).get("features") or []:
            props = f.get("properties") or {}
            coords = (f.get("geometry") or {}).get("coordinates") or []
            if len(coords) < 2:
                continue
            out.append(ResolvedAddress(
                label=props.get("label") or "",
                city=props.get("city") or "",
                postcode=str(props.get("postcode") or ""),
                citycode=str(props.get("citycode") or ""),
                longitude=float(coords[0]),   # GeoJSON : [lon, lat]
                latitude=float(coords[1]),
            ))
        logger.debug("[ADRESSE] %d suggestion(s) pour %r", len(out), q)
        return out
