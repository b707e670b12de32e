# encadrement/services/errors.py


class TransportError(RuntimeError):
    """Échec réseau ou réponse non-2xx d'une source ouverte. Réessayable par l'appelant."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class NoDataError(RuntimeError):
    """Réponse bien formée, mais aucune zone / ligne ne correspond à la demande."""


class UnsupportedTerritoryError(NoDataError):
    """Code postal hors Paris et hors Est Ensemble (levée avant tout appel réseau)."""

    def __init__(self, postcode: str):
        super().__init__(f"Territoire non couvert par l'encadrement des loyers : {postcode!r}")
        self.postcode = postcode


class UnmappedValueError(ValueError):
    """Valeur de formulaire absente des tables de correspondance (mode strict)."""

    def __init__(self, axis: str, value):
        super().__init__(f"Valeur non reconnue pour {axis} : {value!r}")
        self.axis = axis
        self.value = value
