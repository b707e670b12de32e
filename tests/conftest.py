import pytest
import requests

from encadrement.services.opendata_client import OpenDataClient


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.headers = {}
        self.text = "" if payload is None else str(payload)[:200]

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Session requests factice : réponses routées par préfixe d'URL, appels enregistrés."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        for prefix, resp in self.routes.items():
            if url.startswith(prefix):
                if isinstance(resp, Exception):
                    raise resp
                if isinstance(resp, FakeResponse):
                    return resp
                return FakeResponse(resp)
        raise requests.ConnectionError(f"route non simulée: {url}")


PARIS_URL = "https://paris.test/records"
EE_RENT_URL = "https://ee.test/rent.json"
EE_GEO_URL = "https://ee.test/geo.json"
APUR_URL = "https://apur.test/query"
GEOCODER_URL = "https://geo.test/search"


def square(lon_min, lat_min, lon_max, lat_max):
    """Anneau GeoJSON fermé [lon, lat]."""
    return [
        [lon_min, lat_min],
        [lon_max, lat_min],
        [lon_max, lat_max],
        [lon_min, lat_max],
        [lon_min, lat_min],
    ]


def paris_record(name, ring, centroid=None, multipolygon=False, ref="25.4", mx="30.5", mn="17.8"):
    if multipolygon:
        geometry = {"type": "MultiPolygon", "coordinates": [[ring]]}
    else:
        geometry = {"type": "Polygon", "coordinates": [ring]}
    rec = {
        "nom_quartier": name,
        "ref": ref,
        "max": mx,
        "min": mn,
        "annee": "2025",
        "piece": 2,
        "epoque": "Avant 1946",
        "meuble_txt": "non meublé",
        "geo_shape": {"type": "Feature", "geometry": geometry, "properties": {}},
    }
    if centroid is not None:
        rec["geo_point_2d"] = {"lat": centroid[0], "lon": centroid[1]}
    return rec


# Deux quartiers voisins séparés par une fine couture (lon 2.365 – 2.366)
CHAPELLE_RING = square(2.355, 48.885, 2.365, 48.895)
VILLETTE_RING = square(2.366, 48.880, 2.386, 48.900)


@pytest.fixture
def paris_records():
    return [
        paris_record("Villette", VILLETTE_RING, centroid=(48.890, 2.376), ref="24.1", mx="28.9", mn="16.9"),
        paris_record("La Chapelle", CHAPELLE_RING, centroid=(48.890, 2.360)),
    ]


@pytest.fixture
def fake_session():
    def _make(routes=None):
        return FakeSession(routes)
    return _make


@pytest.fixture
def make_client():
    def _make(session):
        return OpenDataClient(session=session, timeout=5)
    return _make


EE_GEO = {
    "type": "FeatureCollection",
    "features": [
        {"type": "Feature", "properties": {"zone": 312},
         "geometry": {"type": "Polygon", "coordinates": [square(2.42, 48.85, 2.47, 48.87)]}},
        {"type": "Feature", "properties": {"Zone": "314"},
         "geometry": {"type": "Polygon", "coordinates": [square(2.38, 48.89, 2.42, 48.91)]}},
    ],
}

EE_ROWS = [
    {"zone": 312, "nombre_de_piece": 2, "annee_de_construction": "avant 1946", "meuble": False,
     "maison": False, "prix_med": "16,9", "prix_max": "20,3", "prix_min": "11,8"},
    {"zone": 312, "nombre_de_piece": 2, "annee_de_construction": "avant 1946", "meuble": True,
     "maison": False, "prix_med": "19,2", "prix_max": "23", "prix_min": "13,4"},
    {"zone": 312, "nombre_de_piece": "4 et plus", "annee_de_construction": "apres 1990", "meuble": False,
     "maison": True, "prix_med": "14,1", "prix_max": "16,9", "prix_min": "9,9"},
    {"zone": 314, "nombre_de_piece": 1, "annee_de_construction": "1971-1990", "meuble": False,
     "maison": False, "prix_med": "21,5", "prix_max": "25,8", "prix_min": "15,1"},
]


@pytest.fixture
def ee_routes():
    return {EE_RENT_URL: EE_ROWS, EE_GEO_URL: EE_GEO}
