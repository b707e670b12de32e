#!/usr/bin/env python3
"""
Contrôle de cohérence des instantanés Est Ensemble publiés.

Usage:
  python scripts/validate_datasets.py [--strict]

Comportement:
  - Télécharge la grille de loyers et le GeoJSON des zones
  - Vérifie que chaque zone du GeoJSON a un nom de commune au référentiel
  - Vérifie que chaque ligne a des prix lisibles et min ≤ med ≤ max
  - Compte les lignes "maison" (la grille en publie peu : repli appartement)
  - --strict : toute anomalie de qualité fait échouer le script
"""

from __future__ import annotations

import argparse
import sys

from encadrement.services import referentiel
from encadrement.services.errors import TransportError
from encadrement.services.est_ensemble_resolver import EstEnsembleDataset
from encadrement.services.vocabulary import parse_decimal


def check(dataset: EstEnsembleDataset, strict: bool) -> bool:
    ok = True
    names = referentiel.est_ensemble_zone_names()
    zone_ids = sorted({int(z.name) for z in dataset.zones})
    for z in zone_ids:
        if z not in names:
            print(f"[WARN] zone {z} sans nom de commune au référentiel")
            ok = ok and not strict
    print(f"zones: {len(zone_ids)} ({', '.join(str(z) for z in zone_ids)})")

    houses = 0
    for i, row in enumerate(dataset.rows):
        med, mx, mn = (parse_decimal(row.get(k)) for k in ("prix_med", "prix_max", "prix_min"))
        if None in (med, mx, mn):
            print(f"[ERR] ligne #{i}: prix illisible {row!r}")
            ok = False
            continue
        if not mn <= med <= mx:
            print(f"[WARN] ligne #{i}: min ≤ med ≤ max non respecté ({mn}, {med}, {mx})")
            ok = ok and not strict
        if row.get("maison"):
            houses += 1
    print(f"lignes: {len(dataset.rows)} dont maison: {houses}")
    return ok


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--strict", action="store_true", help="échouer sur les anomalies de qualité")
    args = ap.parse_args()

    dataset = EstEnsembleDataset()
    try:
        dataset.load()
    except TransportError as e:
        print(f"[ERR] téléchargement impossible: {e}")
        return 1
    return 0 if check(dataset, args.strict) else 1


if __name__ == "__main__":
    sys.exit(main())
