"""
Mileage Ledger - Package Init

Exports the HMRC mileage engine for export renderers and other services.
"""

from services.mileage.rates import (
    # Rate table
    VehicleClass,
    TieredRate,
    FlatRate,
    RateTable,
    DEFAULT_RATE_TABLE,
    HMRC_THRESHOLD_MILES,
    get_rate_table,
    get_rate_table_info,

    # Tier calculator
    DeductionResult,
    compute_deduction,
    calculate_hmrc_deduction,
)

from services.mileage.models import (
    TripClassification,
    VehicleInfo,
    TripRecord,
    EarningRecord,
    ExportRequest,
    ExportRow,
    VehicleBreakdown,
    PlatformEarnings,
    ExportSummary,
    MileageClassSummary,
)

from services.mileage.ledger import (
    CumulativeTally,
    LedgerAggregator,
    annotate_trips,
    summarize,
    summarize_by_vehicle_class,
)

from services.mileage.tax_year import (
    DateRange,
    parse_tax_year,
    get_tax_year,
    resolve_date_range,
)

from services.mileage.formatting import (
    round_miles,
    format_pence,
    format_miles,
    format_trip_date,
    format_trip_time,
)

from services.mileage.errors import (
    MileageLedgerError,
    InvalidExportRequestError,
    InvalidTaxYearError,
    DateRangeError,
    TripDataIntegrityError,
    TripOrderingError,
)

from services.mileage.repository import TripRepository, InMemoryTripRepository
from services.mileage.service import MileageExportService

__all__ = [
    "VehicleClass",
    "TieredRate",
    "FlatRate",
    "RateTable",
    "DEFAULT_RATE_TABLE",
    "HMRC_THRESHOLD_MILES",
    "get_rate_table",
    "get_rate_table_info",
    "DeductionResult",
    "compute_deduction",
    "calculate_hmrc_deduction",
    "TripClassification",
    "VehicleInfo",
    "TripRecord",
    "EarningRecord",
    "ExportRequest",
    "ExportRow",
    "VehicleBreakdown",
    "PlatformEarnings",
    "ExportSummary",
    "MileageClassSummary",
    "CumulativeTally",
    "LedgerAggregator",
    "annotate_trips",
    "summarize",
    "summarize_by_vehicle_class",
    "DateRange",
    "parse_tax_year",
    "get_tax_year",
    "resolve_date_range",
    "round_miles",
    "format_pence",
    "format_miles",
    "format_trip_date",
    "format_trip_time",
    "MileageLedgerError",
    "InvalidExportRequestError",
    "InvalidTaxYearError",
    "DateRangeError",
    "TripDataIntegrityError",
    "TripOrderingError",
    "TripRepository",
    "InMemoryTripRepository",
    "MileageExportService",
]
