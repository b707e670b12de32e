# encadrement/services/territory_router.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from encadrement.services import referentiel
from encadrement.services.compliance import check_compliance
from encadrement.services.errors import NoDataError, UnsupportedTerritoryError
from encadrement.services.est_ensemble_resolver import EstEnsembleDataset, EstEnsembleZoneResolver
from encadrement.services.models import ComplianceResult, GeoPoint, RegulationCategory, RentControlResult
from encadrement.services.opendata_client import OpenDataClient
from encadrement.services.paris_resolver import ParisZoneResolver
from encadrement.services.vocabulary import EST_ENSEMBLE, PARIS

logger = logging.getLogger(__name__)

TERRITORIES = (PARIS, EST_ENSEMBLE)


# -------------------- classification --------------------

def classify_postcode(postcode: Optional[str]) -> Optional[str]:
    """'75xxx' -> paris ; un des 9 codes postaux Est Ensemble -> est-ensemble ; sinon None."""
    pc = str(postcode or "").strip()
    if not pc:
        return None
    if pc.startswith(referentiel.paris_postcode_prefix()):
        return PARIS
    if pc in referentiel.est_ensemble_postcodes():
        return EST_ENSEMBLE
    return None


def classify_insee(insee_code: Optional[str]) -> Optional[str]:
    code = str(insee_code or "").strip()
    if not code:
        return None
    if code.startswith(referentiel.paris_insee_prefix()):
        return PARIS
    if code in referentiel.est_ensemble_insee_codes():
        return EST_ENSEMBLE
    return None


def is_supported_postcode(postcode: Optional[str]) -> bool:
    return classify_postcode(postcode) is not None


def est_ensemble_city(postcode: Optional[str]) -> Optional[str]:
    return referentiel.est_ensemble_postcodes().get(str(postcode or "").strip())


def territory_label(territory: Optional[str]) -> str:
    return referentiel.territory_label(territory)


def supported_postcodes() -> List[str]:
    """Préfixe parisien puis codes postaux Est Ensemble."""
    return [referentiel.paris_postcode_prefix()] + sorted(referentiel.est_ensemble_postcodes())


# -------------------- aiguillage --------------------

@dataclass(frozen=True)
class LookupRequest:
    point: GeoPoint
    postcode: str
    category: RegulationCategory


class RentControlService:
    """Aiguille une demande vers le bon résolveur et unifie la sortie.

    Le cache Est Ensemble est fourni par l'hôte (créé une fois par processus).
    """

    def __init__(
        self,
        client: Optional[OpenDataClient] = None,
        est_ensemble_dataset: Optional[EstEnsembleDataset] = None,
        paris_resolver: Optional[ParisZoneResolver] = None,
    ):
        self.client = client or OpenDataClient()
        self.paris = paris_resolver or ParisZoneResolver(self.client)
        self.est_ensemble = EstEnsembleZoneResolver(
            est_ensemble_dataset or EstEnsembleDataset(self.client)
        )

    def lookup(self, req: LookupRequest) -> RentControlResult:
        """
        Lève :
          - UnsupportedTerritoryError avant tout appel réseau ;
          - NoDataError si aucune zone / ligne ne correspond ;
          - TransportError (propagée) si une source ne répond pas.
        """
        territory = classify_postcode(req.postcode)
        if territory is None:
            logger.warning("[ROUTER] territoire non supporté pour le code postal %r", req.postcode)
            raise UnsupportedTerritoryError(req.postcode)

        logger.info("[ROUTER] territoire détecté : %s", territory)
        if territory == PARIS:
            result = self.paris.resolve(req.point, req.category)
        else:
            result = self.est_ensemble.resolve(req.point, req.category)

        if result is None:
            raise NoDataError(
                f"Aucune donnée d'encadrement pour cette adresse ({territory_label(territory)})"
            )
        if result.is_degraded:
            logger.warning("[ROUTER] correspondance dégradée (%s) : %r", result.match_quality, result.zone_name)
        return result

    def verify(
        self, req: LookupRequest, area_m2: float, declared_rent: float
    ) -> Tuple[RentControlResult, ComplianceResult]:
        result = self.lookup(req)
        return result, check_compliance(result, area_m2, declared_rent, req.category)
