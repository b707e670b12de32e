import pytest

from encadrement.services.errors import TransportError
from encadrement.services.models import GeoPoint, RegulationCategory
from encadrement.services.paris_resolver import ParisZoneResolver, build_where_clause, find_quartier
from conftest import CHAPELLE_RING, PARIS_URL, VILLETTE_RING, FakeResponse, paris_record, square

CATEGORY = RegulationCategory(room_count="2", construction_period="avant-1946", furnished=False)

# 3 Rue Romy Schneider (75018) se situe dans La Chapelle, pas dans La Villette
CHAPELLE_POINT = GeoPoint(48.890, 2.360)
SEAM_POINT = GeoPoint(48.890, 2.3655)


def _resolver(fake_session, make_client, payload):
    session = fake_session({PARIS_URL: payload})
    return ParisZoneResolver(make_client(session), year="2025", records_url=PARIS_URL), session


def test_where_clause():
    cat = RegulationCategory(room_count="4+", construction_period="apres-1990", furnished=True)
    assert build_where_clause(cat, "2025") == (
        'piece="4" AND epoque="Apres 1990" AND meuble_txt="meublé" AND annee="2025"'
    )


def test_query_params(fake_session, make_client, paris_records):
    resolver, session = _resolver(fake_session, make_client, {"results": paris_records})
    resolver.resolve(CHAPELLE_POINT, CATEGORY)
    params = session.calls[0]["params"]
    assert params["limit"] == 100
    assert 'epoque="Avant 1946"' in params["where"]
    assert 'meuble_txt="non meublé"' in params["where"]


def test_polygon_match(fake_session, make_client, paris_records):
    resolver, _ = _resolver(fake_session, make_client, {"results": paris_records})
    res = resolver.resolve(CHAPELLE_POINT, CATEGORY)
    assert res.zone_name == "La Chapelle"
    assert res.match_quality == "exact"
    assert res.territory == "paris"
    assert res.schedule.reference_rate == 25.4
    assert res.schedule.majored_rate == 30.5
    assert res.schedule.minored_rate == 17.8
    assert res.construction_period == "Avant 1946"
    assert res.room_count == "2"


def test_latlon_polygons_resolve_same_quartier(fake_session, make_client):
    # Régression : polygones stockés en [lat, lon] -> même quartier qu'en GeoJSON
    swap = lambda ring: [[lat, lon] for lon, lat in ring]  # noqa: E731
    records = [
        paris_record("Villette", swap(VILLETTE_RING), centroid=(48.890, 2.376)),
        paris_record("La Chapelle", swap(CHAPELLE_RING), centroid=(48.890, 2.360)),
    ]
    resolver, _ = _resolver(fake_session, make_client, {"results": records})
    res = resolver.resolve(CHAPELLE_POINT, CATEGORY)
    assert res.zone_name == "La Chapelle"
    assert res.match_quality == "exact"


def test_multipolygon_uses_first_ring(fake_session, make_client):
    records = [paris_record("La Chapelle", CHAPELLE_RING, centroid=(48.89, 2.36), multipolygon=True)]
    resolver, _ = _resolver(fake_session, make_client, {"results": records})
    assert resolver.resolve(CHAPELLE_POINT, CATEGORY).match_quality == "exact"


def test_multipolygon_ignores_later_sub_polygons(fake_session, make_client):
    # Seul le premier sous-polygone compte : un point dans le second passe par le centroïde
    rec = paris_record("La Chapelle", CHAPELLE_RING, centroid=(48.890, 2.360))
    rec["geo_shape"]["geometry"] = {
        "type": "MultiPolygon",
        "coordinates": [[square(2.300, 48.860, 2.310, 48.870)], [CHAPELLE_RING]],
    }
    resolver, _ = _resolver(fake_session, make_client, {"results": [rec]})
    res = resolver.resolve(CHAPELLE_POINT, CATEGORY)
    assert res.zone_name == "La Chapelle"
    assert res.match_quality == "centroid_fallback"


def test_unreadable_rate_is_not_found(fake_session, make_client):
    records = [paris_record("La Chapelle", CHAPELLE_RING, centroid=(48.890, 2.360), mx="")]
    resolver, _ = _resolver(fake_session, make_client, {"results": records})
    assert resolver.resolve(CHAPELLE_POINT, CATEGORY) is None

    records = [paris_record("La Chapelle", CHAPELLE_RING, centroid=(48.890, 2.360), ref="n/c")]
    resolver, _ = _resolver(fake_session, make_client, {"results": records})
    assert resolver.resolve(CHAPELLE_POINT, CATEGORY) is None


def test_seam_point_uses_centroid_fallback(fake_session, make_client, paris_records):
    resolver, _ = _resolver(fake_session, make_client, {"results": paris_records})
    res = resolver.resolve(SEAM_POINT, CATEGORY)
    assert res is not None
    assert res.zone_name == "La Chapelle"
    assert res.match_quality == "centroid_fallback"
    assert res.is_degraded


def test_fallback_synthesises_missing_centroid():
    records = [paris_record("Villette", VILLETTE_RING), paris_record("La Chapelle", CHAPELLE_RING)]
    rec, quality = find_quartier(records, SEAM_POINT)
    assert rec["nom_quartier"] == "La Chapelle"
    assert quality == "centroid_fallback"


def test_empty_results_is_not_found(fake_session, make_client):
    resolver, _ = _resolver(fake_session, make_client, {"results": []})
    assert resolver.resolve(CHAPELLE_POINT, CATEGORY) is None


def test_no_usable_candidate_is_not_found(fake_session, make_client):
    records = [{"nom_quartier": "Sans géométrie", "ref": "20", "max": "24", "min": "14"}]
    resolver, _ = _resolver(fake_session, make_client, {"results": records})
    assert resolver.resolve(CHAPELLE_POINT, CATEGORY) is None


def test_idempotent(fake_session, make_client, paris_records):
    resolver, _ = _resolver(fake_session, make_client, {"results": paris_records})
    assert resolver.resolve(CHAPELLE_POINT, CATEGORY) == resolver.resolve(CHAPELLE_POINT, CATEGORY)


def test_http_error_is_transport_error(fake_session, make_client):
    resolver, _ = _resolver(fake_session, make_client, FakeResponse({"error": "boom"}, status_code=503))
    with pytest.raises(TransportError) as exc:
        resolver.resolve(CHAPELLE_POINT, CATEGORY)
    assert exc.value.status_code == 503


def test_network_error_is_transport_error(fake_session, make_client):
    session = fake_session({})
    resolver = ParisZoneResolver(make_client(session), records_url=PARIS_URL)
    with pytest.raises(TransportError):
        resolver.resolve(CHAPELLE_POINT, CATEGORY)
