#!/usr/bin/env python3
from encadrement.services.errors import TransportError
from encadrement.services.paris_resolver import ParisZoneResolver


def main() -> int:
    r = ParisZoneResolver()
    try:
        data = r.client.get_json(r.records_url, params={"limit": 1})
        ok = bool((data or {}).get("results"))
    except TransportError as e:
        print("erreur:", e)
        ok = False
    print("RECORDS_URL:", r.records_url)
    print("ping:", "OK" if ok else "KO")
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
