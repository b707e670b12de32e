#!/usr/bin/env python3
import sys
from pathlib import Path
import yaml

ROOT = Path(__file__).resolve().parents[1]
REFERENTIEL = ROOT / "encadrement" / "referentiel"

CONSTRUCTION_PERIODS = {"avant-1946", "1946-1970", "1971-1990", "apres-1990"}


def load_yaml(p: Path):
    try:
        return yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as e:
        print(f"[ERR] YAML invalide: {p}: {e}")
        return None


def check_territoires(p: Path, data) -> bool:
    ok = True
    terr = (data or {}).get("territories") or {}
    for key in ("paris", "est-ensemble"):
        if key not in terr:
            print(f"[ERR] {p}: territoire '{key}' manquant")
            ok = False
    communes = (terr.get("est-ensemble") or {}).get("communes") or []
    if len(communes) != 9:
        print(f"[ERR] {p}: Est Ensemble doit compter 9 communes (trouvé {len(communes)})")
        ok = False
    seen = {"zone": set(), "postcode": set(), "insee": set()}
    for i, c in enumerate(communes):
        for k in ("zone", "name", "postcode", "insee"):
            if c.get(k) in (None, ""):
                print(f"[ERR] {p}: commune #{i} manque '{k}'")
                ok = False
        if not isinstance(c.get("zone"), int):
            print(f"[ERR] {p}: commune #{i} 'zone' doit être un entier")
            ok = False
        for k in ("postcode", "insee"):
            v = str(c.get(k) or "")
            if len(v) != 5 or not v.isdigit():
                print(f"[ERR] {p}: commune #{i} {k}={v!r} doit compter 5 chiffres")
                ok = False
        for k in seen:
            if c.get(k) in seen[k]:
                print(f"[ERR] {p}: commune #{i} {k}={c.get(k)!r} en double")
                ok = False
            seen[k].add(c.get(k))
    return ok


def check_datasets(p: Path, data) -> bool:
    ok = True
    data = data or {}
    for key, fields in (("paris", ["records_url", "reference_year"]),
                        ("est-ensemble", ["rent_url", "geo_url"]),
                        ("apur", ["query_url", "periods"]),
                        ("geocoder", ["search_url"])):
        for f in fields:
            if not (data.get(key) or {}).get(f):
                print(f"[ERR] {p}: {key}.{f} manquant")
                ok = False
    for code, v in ((data.get("apur") or {}).get("periods") or {}).items():
        if not isinstance(code, int):
            print(f"[ERR] {p}: apur.periods clé {code!r} doit être un entier")
            ok = False
        if not isinstance(v, list) or not v or v[0] not in CONSTRUCTION_PERIODS:
            print(f"[ERR] {p}: apur.periods.{code} époque inconnue {v!r}")
            ok = False
    return ok


def main():
    ok = True
    for p in sorted(REFERENTIEL.glob("*.yml")):
        data = load_yaml(p)
        if data is None:
            ok = False
            continue
        if p.name == "territoires.yml":
            ok = check_territoires(p, data) and ok
        if p.name == "datasets.yml":
            ok = check_datasets(p, data) and ok
    print("OK" if ok else "KO")
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
