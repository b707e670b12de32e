# encadrement/schemas.py
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field


# --- Tolérance aux champs supplémentaires envoyés par le formulaire ---
class _EncBase(BaseModel):
    model_config = ConfigDict(extra='allow')


BaseModel = _EncBase

RoomCount = Literal["1", "2", "3", "4+"]
ConstructionPeriod = Literal["avant-1946", "1946-1970", "1971-1990", "apres-1990"]
Furnished = Literal["meuble", "non-meuble"]
BuildingType = Literal["appartement", "maison"]


# ---- Entrées
class SelectedAddress(BaseModel):
    label: Optional[str] = None
    city: Optional[str] = None
    postcode: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class RentControlRequest(BaseModel):
    address: SelectedAddress
    room_count: RoomCount
    construction_period: ConstructionPeriod
    is_furnished: Furnished
    building_type: BuildingType = "appartement"


class VerificationRequest(RentControlRequest):
    surface: float = Field(..., gt=0, description="Surface habitable en m²")
    rent: float = Field(..., gt=0, description="Loyer mensuel hors charges en €")


# ---- Sorties
class RatesPayload(BaseModel):
    ref: Optional[float] = None
    max: Optional[float] = None
    min: Optional[float] = None


class RentControlPayload(BaseModel):
    territory: str
    territory_label: str
    quartier: str
    rates: RatesPayload = RatesPayload()
    annee: Optional[str] = None
    piece: Optional[str] = None
    epoque: Optional[str] = None
    meuble: Optional[str] = None
    building_type: Optional[str] = None
    requested_building_type: Optional[str] = None
    match_quality: str = "exact"


class CompliancePayload(BaseModel):
    surface: float
    rent: float
    reference_amount: float
    majored_amount: float
    minored_amount: float
    is_compliant: bool
    difference: float


class VerificationResponse(BaseModel):
    rent_control: RentControlPayload
    compliance: CompliancePayload


class TerritoryResponse(BaseModel):
    postcode: str
    territory: Optional[str] = None
    label: Optional[str] = None
    supported: bool = False
    city: Optional[str] = None


class BuildingPeriodResponse(BaseModel):
    construction_period: Optional[str] = None
    apur_code: Optional[int] = None
    apur_label: Optional[str] = None


class AddressSuggestion(BaseModel):
    label: str
    city: str
    postcode: str
    citycode: Optional[str] = None
    latitude: float
    longitude: float
    territory: Optional[str] = None


class AddressSearchResponse(BaseModel):
    items: List[AddressSuggestion] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    retryable: bool = False
