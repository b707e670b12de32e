# encadrement/services/opendata_client.py
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from encadrement.services.errors import TransportError

logger = logging.getLogger(__name__)


def _env(name: str) -> Optional[str]:
    v = os.getenv(name)
    if v is None or str(v).strip() == "":
        return None
    return v


def _env_float(name: str, default: float) -> float:
    v = _env(name)
    try:
        return float(v) if v is not None else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    v = _env(name)
    try:
        return int(v) if v is not None else default
    except ValueError:
        return default


class OpenDataClient:
    """Client HTTP minimal pour les jeux de données ouverts (Paris, data.gouv, APUR, Géoplateforme).

    - Une seule session `requests` partagée, timeouts explicites
    - Aucun retry par défaut : un échec remonte une seule fois à l'appelant,
      qui décide de réessayer (ENCADREMENT_HTTP_RETRIES pour surcharger)
    - Toute erreur réseau ou réponse non-2xx devient TransportError

    Configuration par variables d'environnement :
      - ENCADREMENT_HTTP_TIMEOUT (secondes, défaut 15)
      - ENCADREMENT_HTTP_RETRIES (défaut 0)
      - ENCADREMENT_HTTP_DEBUG=1 pour tracer chaque requête
    """

    USER_AGENT = "encadrement-loyers/0.1"

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self._session = session or requests.Session()
        self.timeout = timeout if timeout is not None else _env_float("ENCADREMENT_HTTP_TIMEOUT", 15.0)
        self._debug: bool = str(os.getenv("ENCADREMENT_HTTP_DEBUG", "")).lower() in {"1", "true", "yes"}
        self._install_retries(total=_env_int("ENCADREMENT_HTTP_RETRIES", 0))

    # ---------- infra ----------
    def _install_retries(self, total: int = 0, backoff: float = 0.5) -> None:
        if not hasattr(self._session, "mount"):
            return
        retry = Retry(
            total=total,
            backoff_factor=backoff,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(["GET"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def _log(self, msg: str, *args: Any) -> None:
        if self._debug:
            logger.info("[OpenDataClient] " + msg, *args)
        else:
            logger.debug("[OpenDataClient] " + msg, *args)

    # ---------- HTTP ----------
    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET + décodage JSON. Lève TransportError (réseau, non-2xx, JSON invalide)."""
        self._log("GET  %s params=%s", url, params)
        try:
            resp = self._session.get(
                url,
                params=params,
                headers={"Accept": "application/json", "User-Agent": self.USER_AGENT},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("[OpenDataClient] échec réseau sur %s : %s", url, e)
            raise TransportError(f"Échec réseau : {e}", url=url) from e

        self._log("-> status=%s len=%s", resp.status_code, resp.headers.get("content-length", "?"))
        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"Erreur API {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
                url=url,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"Réponse JSON invalide : {e}", status_code=resp.status_code, url=url) from e
