# encadrement/services/referentiel.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional
from functools import lru_cache
import yaml

APP_DIR = Path(__file__).resolve().parents[1]          # .../encadrement
REFERENTIEL_DIR = APP_DIR / "referentiel"

TERRITORIES_FILE = REFERENTIEL_DIR / "territoires.yml"
DATASETS_FILE = REFERENTIEL_DIR / "datasets.yml"

# Libellés sûrs si le YAML est absent/illisible
FALLBACK_LABELS = {
    "paris": "Paris",
    "est-ensemble": "Est Ensemble",
}


def _mtime(p: Path) -> float:
    try:
        return p.stat().st_mtime
    except OSError:
        return 0.0


@lru_cache(maxsize=16)
def _load_yaml_cached(path_str: str, mtime: float) -> Dict[str, Any]:
    p = Path(path_str)
    if not p.exists():
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    return data if isinstance(data, dict) else {}


def load_yaml(p: Path) -> Dict[str, Any]:
    """Charge un YAML du référentiel (mémoïsé tant que le fichier n'a pas bougé)."""
    return _load_yaml_cached(str(p), _mtime(p))


# -------------------- territoires --------------------

def territories() -> Dict[str, Any]:
    return load_yaml(TERRITORIES_FILE).get("territories") or {}


def territory_label(territory: Optional[str]) -> str:
    conf = territories().get(territory or "") or {}
    label = conf.get("label")
    if isinstance(label, str) and label.strip():
        return label.strip()
    return FALLBACK_LABELS.get(territory or "", territory or "")


def paris_postcode_prefix() -> str:
    return str((territories().get("paris") or {}).get("postcode_prefix") or "75")


def paris_insee_prefix() -> str:
    return str((territories().get("paris") or {}).get("insee_prefix") or "75")


def est_ensemble_communes() -> List[Dict[str, Any]]:
    return list((territories().get("est-ensemble") or {}).get("communes") or [])


def est_ensemble_postcodes() -> Dict[str, str]:
    """Code postal -> nom de la commune."""
    return {str(c["postcode"]): c["name"] for c in est_ensemble_communes() if c.get("postcode")}


def est_ensemble_insee_codes() -> Dict[str, str]:
    """Code INSEE -> nom de la commune."""
    return {str(c["insee"]): c["name"] for c in est_ensemble_communes() if c.get("insee")}


def est_ensemble_zone_names() -> Dict[int, str]:
    """Identifiant de zone du jeu de données -> nom de la commune."""
    return {int(c["zone"]): c["name"] for c in est_ensemble_communes() if c.get("zone") is not None}


# -------------------- jeux de données --------------------

def dataset(key: str) -> Dict[str, Any]:
    return load_yaml(DATASETS_FILE).get(key) or {}


def apur_periods() -> Dict[int, List[str]]:
    """Code APUR c_perconst -> [époque d'encadrement, libellé APUR]."""
    out: Dict[int, List[str]] = {}
    for k, v in (dataset("apur").get("periods") or {}).items():
        try:
            out[int(k)] = list(v)
        except (TypeError, ValueError):
            continue
    return out
