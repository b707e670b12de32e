# encadrement/services/vocabulary.py
"""
Traduction des valeurs du formulaire vers l'encodage de chaque jeu de données.

Tables explicites (jamais déduites). Une valeur inconnue donne une
`Translation(mapped=False)` : les fonctions map_* la laissent passer telle
quelle (compatibilité ascendante) mais la journalisent, ou lèvent
UnmappedValueError avec strict=True.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from encadrement.services.errors import UnmappedValueError
from encadrement.services.models import RateSchedule

logger = logging.getLogger(__name__)

PARIS = "paris"
EST_ENSEMBLE = "est-ensemble"

# Nombre de pièces : le jeu de données plafonne à 4
ROOM_COUNT_TABLES: Dict[str, Dict[str, Any]] = {
    PARIS: {"1": "1", "2": "2", "3": "3", "4+": "4"},
    EST_ENSEMBLE: {"1": 1, "2": 2, "3": 3, "4+": "4 et plus"},
}

# Époque de construction. Paris écrit "Apres 1990" sans accent : à reproduire tel quel.
CONSTRUCTION_PERIOD_TABLES: Dict[str, Dict[str, str]] = {
    PARIS: {
        "avant-1946": "Avant 1946",
        "1946-1970": "1946-1970",
        "1971-1990": "1971-1990",
        "apres-1990": "Apres 1990",
    },
    EST_ENSEMBLE: {
        "avant-1946": "avant 1946",
        "1946-1970": "1946-1970",
        "1971-1990": "1971-1990",
        "apres-1990": "apres 1990",
    },
}

FURNISHED_LABEL = "meublé"
UNFURNISHED_LABEL = "non meublé"
_FURNISHED_INPUTS = {"meuble", "meublé"}


@dataclass(frozen=True)
class Translation:
    value: Any
    mapped: bool


def translate(table: Dict[str, Any], value: Any) -> Translation:
    if value in table:
        return Translation(table[value], True)
    return Translation(value, False)


def _resolve(axis: str, table: Dict[str, Any], value: Any, strict: bool) -> Any:
    t = translate(table, value)
    if t.mapped:
        return t.value
    if strict:
        raise UnmappedValueError(axis, value)
    logger.warning("[VOCAB] %s non reconnu %r, transmis tel quel", axis, value)
    return t.value


def map_room_count(room_count: str, dataset: str = PARIS, *, strict: bool = False) -> Any:
    """'4+' -> '4' (Paris) ou '4 et plus' (Est Ensemble) ; '1'..'3' inchangés (int pour Est Ensemble)."""
    return _resolve("room_count", ROOM_COUNT_TABLES[dataset], room_count, strict)


def map_construction_period(period: str, dataset: str = PARIS, *, strict: bool = False) -> str:
    return _resolve("construction_period", CONSTRUCTION_PERIOD_TABLES[dataset], period, strict)


def is_furnished(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _FURNISHED_INPUTS


def map_furnished(value: Any) -> str:
    """True / 'meuble' / 'meublé' -> 'meublé', tout le reste -> 'non meublé'."""
    return FURNISHED_LABEL if is_furnished(value) else UNFURNISHED_LABEL


def parse_decimal(val: Any) -> Optional[float]:
    """'16,9' / '16.9' / 16.9 -> 16.9 ; valeur vide ou illisible -> None."""
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return float(val)
    try:
        return float(str(val).replace(",", ".").strip())
    except ValueError:
        return None


def read_schedule(ref: Any, majored: Any, minored: Any) -> Optional[RateSchedule]:
    """Grille €/m² d'un enregistrement source ; None si un des trois loyers est illisible."""
    rates = [parse_decimal(v) for v in (ref, majored, minored)]
    if any(r is None for r in rates):
        return None
    return RateSchedule(reference_rate=rates[0], majored_rate=rates[1], minored_rate=rates[2])
