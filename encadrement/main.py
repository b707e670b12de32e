# encadrement/main.py

# Standard library
from typing import Optional
import logging

# Third-party
from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from encadrement.schemas import (
    AddressSearchResponse, AddressSuggestion, BuildingPeriodResponse, CompliancePayload, ErrorResponse,
    RatesPayload, RentControlPayload, RentControlRequest, TerritoryResponse,
    VerificationRequest, VerificationResponse,
)

# Local modules
from encadrement.services.address_search import AddressSearchClient
from encadrement.services.building_period import BuildingPeriodClient
from encadrement.services.errors import NoDataError, TransportError, UnsupportedTerritoryError
from encadrement.services.est_ensemble_resolver import EstEnsembleDataset
from encadrement.services.models import GeoPoint, RegulationCategory, RentControlResult
from encadrement.services.opendata_client import OpenDataClient
from encadrement.services.territory_router import (
    LookupRequest, RentControlService, classify_postcode, est_ensemble_city, territory_label,
)

# --- logger minimal ---
logger = logging.getLogger("encadrement")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)

# --- app FastAPI ---
app = FastAPI(title="Encadrement des loyers", version="0.1")

# --- collaborateurs partagés (un seul cache Est Ensemble par processus) ---
_client = OpenDataClient()
_est_ensemble_dataset = EstEnsembleDataset(_client)
_service = RentControlService(_client, _est_ensemble_dataset)
_building_periods = BuildingPeriodClient(_client)
_addresses = AddressSearchClient(_client)


def get_service() -> RentControlService:
    return _service


def get_building_periods() -> BuildingPeriodClient:
    return _building_periods


def get_address_search() -> AddressSearchClient:
    return _addresses


# ========== Erreurs ==========

def _error(status_code: int, error: str, detail: str, retryable: bool = False) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, retryable=retryable)
    return JSONResponse(body.model_dump(), status_code=status_code)


# Réponses d'erreur documentées dans l'OpenAPI des routes de recherche
LOOKUP_ERRORS = {
    404: {"model": ErrorResponse, "description": "Aucune zone / ligne de loyer pour cette demande"},
    422: {"model": ErrorResponse, "description": "Territoire non couvert par l'encadrement"},
    502: {"model": ErrorResponse, "description": "Source de données ouverte indisponible (réessayable)"},
}


@app.exception_handler(UnsupportedTerritoryError)
async def _unsupported_territory(request, exc: UnsupportedTerritoryError):
    return _error(422, "unsupported_territory", str(exc))


@app.exception_handler(NoDataError)
async def _no_data(request, exc: NoDataError):
    return _error(404, "no_data", str(exc))


@app.exception_handler(TransportError)
async def _transport(request, exc: TransportError):
    logger.warning("source indisponible (%s) : %s", exc.url, exc)
    return _error(502, "transport", "Vérification impossible pour le moment, réessayez.", retryable=True)


# ========== Helpers ==========

def _lookup_request(body: RentControlRequest) -> LookupRequest:
    return LookupRequest(
        point=GeoPoint(body.address.latitude, body.address.longitude),
        postcode=body.address.postcode,
        category=RegulationCategory(
            room_count=body.room_count,
            construction_period=body.construction_period,
            furnished=body.is_furnished == "meuble",
            building_type=body.building_type,
        ),
    )


def _rent_control_payload(res: RentControlResult) -> RentControlPayload:
    return RentControlPayload(
        territory=res.territory,
        territory_label=territory_label(res.territory),
        quartier=res.zone_name,
        rates=RatesPayload(
            ref=res.schedule.reference_rate,
            max=res.schedule.majored_rate,
            min=res.schedule.minored_rate,
        ),
        annee=res.year,
        piece=res.room_count,
        epoque=res.construction_period,
        meuble=res.furnished_label,
        building_type=res.building_type,
        requested_building_type=res.requested_building_type,
        match_quality=res.match_quality,
    )


# ========== API ==========

@app.get("/healthz")
async def healthz():
    return {"ok": True, "est_ensemble_loaded": _est_ensemble_dataset.is_loaded}


@app.get("/api/territoire", response_model=TerritoryResponse)
async def api_territoire(postcode: str):
    territory = classify_postcode(postcode)
    return TerritoryResponse(
        postcode=postcode,
        territory=territory,
        label=territory_label(territory) if territory else None,
        supported=territory is not None,
        city=est_ensemble_city(postcode),
    )


@app.post("/api/encadrement", response_model=RentControlPayload, responses=LOOKUP_ERRORS)
async def api_encadrement(body: RentControlRequest, service: RentControlService = Depends(get_service)):
    # Appels bloquants hors de la boucle : un client qui abandonne cesse simplement d'attendre
    res = await run_in_threadpool(service.lookup, _lookup_request(body))
    return _rent_control_payload(res)


@app.post("/api/verification", response_model=VerificationResponse, responses=LOOKUP_ERRORS)
async def api_verification(body: VerificationRequest, service: RentControlService = Depends(get_service)):
    res, comp = await run_in_threadpool(service.verify, _lookup_request(body), body.surface, body.rent)
    return VerificationResponse(
        rent_control=_rent_control_payload(res),
        compliance=CompliancePayload(
            surface=comp.area,
            rent=comp.declared_rent,
            reference_amount=comp.reference_amount,
            majored_amount=comp.majored_amount,
            minored_amount=comp.minored_amount,
            is_compliant=comp.is_compliant,
            difference=comp.deviation_amount,
        ),
    )


@app.get("/api/epoque", response_model=BuildingPeriodResponse)
async def api_epoque(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    hints: BuildingPeriodClient = Depends(get_building_periods),
):
    hint = await run_in_threadpool(hints.lookup, GeoPoint(latitude, longitude))
    if hint is None:
        return BuildingPeriodResponse()
    return BuildingPeriodResponse(
        construction_period=hint.construction_period,
        apur_code=hint.apur_code,
        apur_label=hint.apur_label,
    )


@app.get("/api/adresses", response_model=AddressSearchResponse)
async def api_adresses(
    q: str,
    limit: int = Query(10, ge=1, le=20),
    citycode: Optional[str] = None,
    search: AddressSearchClient = Depends(get_address_search),
):
    codes = [c for c in (citycode or "").split(",") if c.strip()] or None
    items = await run_in_threadpool(search.search, q, limit, codes)
    return AddressSearchResponse(items=[
        AddressSuggestion(
            label=a.label, city=a.city, postcode=a.postcode, citycode=a.citycode,
            latitude=a.latitude, longitude=a.longitude, territory=classify_postcode(a.postcode),
        )
        for a in items
    ])
