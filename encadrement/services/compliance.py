# encadrement/services/compliance.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from encadrement.services.models import (
    ComplianceResult,
    RateSchedule,
    RegulationCategory,
    RentControlResult,
)

logger = logging.getLogger(__name__)


def compute(
    schedule: RateSchedule,
    area_m2: float,
    declared_rent: float,
    *,
    zone_name: Optional[str] = None,
    category: Optional[RegulationCategory] = None,
) -> ComplianceResult:
    """
    Convertit les loyers au m² en montants mensuels et qualifie le loyer déclaré.

      - référence = ref × surface ; majoré = max × surface ; minoré = min × surface
      - conforme si loyer ≤ majoré (égalité conforme)
      - écart = loyer − majoré (≤ 0 si conforme)

    Aucun arrondi ici, ni contrôle de signe : la surface et le loyer sont
    validés en entrée (schéma de requête).
    """
    if not schedule.is_consistent():
        logger.warning(
            "[CONFORMITE] grille incohérente (min=%s ref=%s max=%s) pour %r",
            schedule.minored_rate, schedule.reference_rate, schedule.majored_rate, zone_name,
        )
    reference_amount = schedule.reference_rate * area_m2
    majored_amount = schedule.majored_rate * area_m2
    minored_amount = schedule.minored_rate * area_m2
    return ComplianceResult(
        zone_name=zone_name,
        category=category,
        area=area_m2,
        declared_rent=declared_rent,
        reference_amount=reference_amount,
        majored_amount=majored_amount,
        minored_amount=minored_amount,
        is_compliant=declared_rent <= majored_amount,
        deviation_amount=declared_rent - majored_amount,
    )


def check_compliance(
    result: RentControlResult,
    area_m2: float,
    declared_rent: float,
    category: Optional[RegulationCategory] = None,
) -> ComplianceResult:
    """compute() à partir d'une sortie de résolveur : la catégorie rapportée est celle réellement appariée."""
    if category is not None and result.building_type and result.building_type != category.building_type:
        category = replace(category, building_type=result.building_type)
    return compute(
        result.schedule,
        area_m2,
        declared_rent,
        zone_name=result.zone_name,
        category=category,
    )
