# encadrement/services/models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

ROOM_COUNTS = ("1", "2", "3", "4+")
CONSTRUCTION_PERIODS = ("avant-1946", "1946-1970", "1971-1990", "apres-1990")
BUILDING_TYPES = ("appartement", "maison")

# Qualité de la correspondance zone / ligne de loyer
MATCH_EXACT = "exact"
MATCH_CENTROID_FALLBACK = "centroid_fallback"
MATCH_APARTMENT_FALLBACK = "apartment_fallback"


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class RegulationCategory:
    """Clé de recherche dans les grilles d'encadrement.

    Tous les champs sont obligatoires : une catégorie partielle ne doit jamais
    atteindre les résolveurs.
    """

    room_count: str
    construction_period: str
    furnished: bool
    building_type: str = "appartement"

    def __post_init__(self):
        for name in ("room_count", "construction_period", "building_type"):
            v = getattr(self, name)
            if v is None or str(v).strip() == "":
                raise ValueError(f"RegulationCategory: champ '{name}' manquant")
        if self.furnished is None:
            raise ValueError("RegulationCategory: champ 'furnished' manquant")
        if self.room_count not in ROOM_COUNTS:
            raise ValueError(f"RegulationCategory: nombre de pièces invalide {self.room_count!r}")
        if self.construction_period not in CONSTRUCTION_PERIODS:
            raise ValueError(f"RegulationCategory: époque de construction invalide {self.construction_period!r}")
        if self.building_type not in BUILDING_TYPES:
            raise ValueError(f"RegulationCategory: type de bien invalide {self.building_type!r}")

    @property
    def is_house(self) -> bool:
        return self.building_type == "maison"


@dataclass(frozen=True)
class ZonePolygon:
    """Zone nommée, géométrie déjà normalisée en un anneau extérieur."""

    name: str
    ring: tuple
    centroid: Optional[GeoPoint] = None
    axis_order: str = "lonlat"


@dataclass(frozen=True)
class RateSchedule:
    """Loyers de référence en €/m² pour un couple (zone, catégorie)."""

    reference_rate: float
    majored_rate: float
    minored_rate: float

    def is_consistent(self) -> bool:
        return self.minored_rate <= self.reference_rate <= self.majored_rate


@dataclass(frozen=True)
class RentControlResult:
    """Sortie unifiée des résolveurs, indépendante du territoire."""

    territory: str
    zone_name: str
    schedule: RateSchedule
    year: str
    room_count: str
    construction_period: str
    furnished_label: str
    building_type: Optional[str] = None
    requested_building_type: Optional[str] = None
    match_quality: str = MATCH_EXACT

    @property
    def is_degraded(self) -> bool:
        return self.match_quality != MATCH_EXACT


@dataclass(frozen=True)
class ComplianceResult:
    zone_name: Optional[str]
    category: Optional[RegulationCategory]
    area: float
    declared_rent: float
    reference_amount: float
    majored_amount: float
    minored_amount: float
    is_compliant: bool
    deviation_amount: float
