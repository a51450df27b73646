"""
Mileage Ledger - Domain Models

Inputs (snapshots supplied by the trip repository):
- VehicleInfo: The vehicle a trip was driven in
- TripRecord: One recorded trip
- EarningRecord: Platform earnings for a period

Outputs (consumed by CSV/PDF renderers and accounting previews, which must
not re-derive any money figure):
- ExportRow: One annotated trip
- ExportSummary: Totals, per-vehicle breakdown and per-platform earnings
- MileageClassSummary: Yearly totals by vehicle class
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.mileage.rates import VehicleClass
from services.mileage.tax_year import to_uk_wall_clock

UNKNOWN_VEHICLE_KEY = "unknown"
UNKNOWN_VEHICLE_NAME = "Unknown vehicle"


# ==================== ENUMS ====================

class TripClassification(str, Enum):
    """Business/personal split, decided upstream of the ledger"""
    BUSINESS = "business"
    PERSONAL = "personal"


# ==================== INPUT MODELS ====================

class VehicleInfo(BaseModel):
    """Vehicle joined onto a trip"""
    model_config = ConfigDict(frozen=True)

    id: str
    make: str
    model: str
    vehicle_type: VehicleClass = VehicleClass.CAR

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model}"


class TripRecord(BaseModel):
    """
    A recorded trip as returned by the repository.

    distance_miles is deliberately unconstrained here: the ledger rejects a
    run containing a negative or non-finite distance instead of failing at
    load time on a single record.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    classification: TripClassification
    distance_miles: float
    started_at: datetime
    ended_at: Optional[datetime] = None
    vehicle: Optional[VehicleInfo] = None
    platform_tag: Optional[str] = None
    start_address: Optional[str] = None
    end_address: Optional[str] = None

    @field_validator("started_at", "ended_at")
    @classmethod
    def to_uk_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Stored instants (often UTC) become UK wall-clock time"""
        return to_uk_wall_clock(v)

    @property
    def vehicle_class(self) -> VehicleClass:
        return VehicleClass.parse(self.vehicle.vehicle_type if self.vehicle else None)

    @property
    def vehicle_key(self) -> str:
        return self.vehicle.id if self.vehicle else UNKNOWN_VEHICLE_KEY

    @property
    def is_business(self) -> bool:
        return self.classification == TripClassification.BUSINESS


class EarningRecord(BaseModel):
    """Earnings reported for one platform over a period"""
    model_config = ConfigDict(frozen=True)

    id: str
    platform: str
    amount_pence: int
    period_start: datetime
    period_end: datetime

    @field_validator("period_start", "period_end")
    @classmethod
    def to_uk_time(cls, v: datetime) -> datetime:
        return to_uk_wall_clock(v)


class ExportRequest(BaseModel):
    """
    Export request at the input boundary.
    Exactly one of tax_year or start+end must be given; checked by the service.
    """
    user_id: str
    tax_year: Optional[str] = Field(default=None, description="UK tax year, e.g. 2025-26")
    start: Optional[datetime] = Field(default=None, description="Range start (inclusive)")
    end: Optional[datetime] = Field(default=None, description="Range end (exclusive)")
    classification: Optional[TripClassification] = None

    @field_validator("start", "end")
    @classmethod
    def to_uk_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_uk_wall_clock(v)


# ==================== OUTPUT MODELS ====================

class ExportRow(BaseModel):
    """One trip annotated with its HMRC rate and deduction"""
    model_config = ConfigDict(frozen=True)

    trip_id: str
    date: str
    start_time: str
    end_time: Optional[str] = None
    started_at: datetime
    ended_at: Optional[datetime] = None
    start_address: Optional[str] = None
    end_address: Optional[str] = None
    distance_miles: float
    classification: TripClassification
    platform: Optional[str] = None
    vehicle_id: Optional[str] = None
    vehicle_type: Optional[VehicleClass] = None
    vehicle_class: VehicleClass
    vehicle_name: Optional[str] = None
    hmrc_rate_pence: int = 0
    deduction_pence: int = 0


class VehicleBreakdown(BaseModel):
    """Per-vehicle totals; each vehicle's deduction uses its own tally"""
    model_config = ConfigDict(frozen=True)

    vehicle_id: Optional[str] = None
    vehicle_name: str
    vehicle_type: VehicleClass
    total_miles: float = 0
    business_miles: float = 0
    deduction_pence: int = 0


class PlatformEarnings(BaseModel):
    """Earnings total for one platform"""
    model_config = ConfigDict(frozen=True)

    platform: str
    total_pence: int = 0


class ExportSummary(BaseModel):
    """Rolled-up figures for one aggregation run"""
    model_config = ConfigDict(frozen=True)

    tax_year: Optional[str] = None
    total_trips: int = 0
    total_miles: float = 0
    business_miles: float = 0
    personal_miles: float = 0
    vehicle_breakdown: List[VehicleBreakdown] = Field(default_factory=list)
    total_deduction_pence: int = 0
    total_earnings_pence: int = 0
    earnings_by_platform: List[PlatformEarnings] = Field(default_factory=list)
    user_name: Optional[str] = None
    generated_at: Optional[datetime] = None


class MileageClassSummary(BaseModel):
    """Yearly mileage and deduction grouped by vehicle class"""
    model_config = ConfigDict(frozen=True)

    tax_year: Optional[str] = None
    total_miles: float = 0
    business_miles: float = 0
    business_miles_by_class: Dict[VehicleClass, float] = Field(default_factory=dict)
    deduction_pence: int = 0
