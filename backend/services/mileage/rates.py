"""
Mileage Ledger - HMRC Rate Table & Tier Calculator

Simplified mileage allowance (approved mileage allowance payments):
- Car / Van: 45p per mile for the first 10,000 business miles, 25p per mile after
- Motorbike: flat 24p per mile, no threshold

All money is integer pence. Mileage is carried as Decimal built from the
shortest repr of the input, so accumulating many trips does not drift.
Each trip's deduction is rounded to the nearest penny (half up) once, after
summing its tier portions.

Tax Year: 2025-26
"""

import logging
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP, localcontext
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


# ==================== HMRC CONSTANTS ====================

HMRC_CAR_FIRST_TIER_PENCE = 45
HMRC_CAR_SECOND_TIER_PENCE = 25
HMRC_MOTORBIKE_FLAT_PENCE = 24
HMRC_THRESHOLD_MILES = 10_000

ZERO = Decimal("0")

# Extra significant digits for rate products and carries
PRECISION_HEADROOM = 8

MilesLike = Union[int, float, Decimal, str]


class VehicleClass(str, Enum):
    """Vehicle classes with their own HMRC rate schedule"""
    CAR = "car"
    VAN = "van"
    MOTORBIKE = "motorbike"

    @classmethod
    def parse(cls, value: Optional[Union[str, "VehicleClass"]]) -> "VehicleClass":
        """Resolve a stored vehicle type; trips without a vehicle count as cars."""
        if value is None:
            return cls.CAR
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


# ==================== RATE TABLE ====================

@dataclass(frozen=True)
class TieredRate:
    """Two-tier schedule switching rate at a cumulative mileage threshold."""
    first_tier_pence: int
    second_tier_pence: int
    threshold_miles: int


@dataclass(frozen=True)
class FlatRate:
    """Single rate for every mile."""
    flat_pence: int


@dataclass(frozen=True)
class RateTable:
    """Process-wide, read-only rate configuration."""
    car: TieredRate
    van: TieredRate
    motorbike: FlatRate

    def for_class(self, vehicle_class: VehicleClass) -> Union[TieredRate, FlatRate]:
        return getattr(self, VehicleClass.parse(vehicle_class).value)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_RATE_TABLE = RateTable(
    car=TieredRate(
        first_tier_pence=HMRC_CAR_FIRST_TIER_PENCE,
        second_tier_pence=HMRC_CAR_SECOND_TIER_PENCE,
        threshold_miles=HMRC_THRESHOLD_MILES,
    ),
    van=TieredRate(
        first_tier_pence=HMRC_CAR_FIRST_TIER_PENCE,
        second_tier_pence=HMRC_CAR_SECOND_TIER_PENCE,
        threshold_miles=HMRC_THRESHOLD_MILES,
    ),
    motorbike=FlatRate(flat_pence=HMRC_MOTORBIKE_FLAT_PENCE),
)


@lru_cache(maxsize=1)
def get_rate_table() -> RateTable:
    """
    Build the rate table from settings.
    Loaded once per process and never mutated afterwards.
    """
    from config import get_settings

    settings = get_settings()
    table = RateTable(
        car=TieredRate(
            first_tier_pence=settings.HMRC_CAR_FIRST_TIER_PENCE,
            second_tier_pence=settings.HMRC_CAR_SECOND_TIER_PENCE,
            threshold_miles=settings.HMRC_THRESHOLD_MILES,
        ),
        van=TieredRate(
            first_tier_pence=settings.HMRC_VAN_FIRST_TIER_PENCE,
            second_tier_pence=settings.HMRC_VAN_SECOND_TIER_PENCE,
            threshold_miles=settings.HMRC_THRESHOLD_MILES,
        ),
        motorbike=FlatRate(flat_pence=settings.HMRC_MOTORBIKE_FLAT_PENCE),
    )
    if table != DEFAULT_RATE_TABLE:
        logger.warning(f"Using non-default HMRC rate table: {table.to_dict()}")
    return table


# ==================== ARITHMETIC HELPERS ====================

def to_miles(value: MilesLike) -> Decimal:
    """Convert a mileage figure to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_half_up(value: Decimal, quantum: Decimal) -> Decimal:
    """
    Round to the given quantum, halves up.
    Precision grows with the value so very large mileages still quantize.
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() - quantum.adjusted() + 2)
        return value.quantize(quantum, rounding=ROUND_HALF_UP)


def round_pence(amount: Decimal) -> int:
    """Round to the nearest whole penny, halves up."""
    return int(quantize_half_up(amount, Decimal("1")))


def _exact_digits(*values: Decimal) -> int:
    """Working precision that keeps sums and rate products of the values exact."""
    nonzero = [v for v in values if v]
    if not nonzero:
        return 1
    top = max(v.adjusted() for v in nonzero)
    bottom = min(v.as_tuple().exponent for v in nonzero)
    return top - bottom + PRECISION_HEADROOM


# ==================== TIER CALCULATOR ====================

@dataclass(frozen=True)
class DeductionResult:
    """Deduction for one trip and the per-mile rate shown against it."""
    deduction_pence: int
    effective_rate_pence: int


def compute_deduction(
    vehicle_class: Union[str, VehicleClass],
    prior_tally_miles: MilesLike,
    trip_miles: MilesLike,
    rates: Optional[RateTable] = None,
) -> DeductionResult:
    """
    Deduction for a trip given the business miles already attributed to
    the vehicle class in this run.

    Car/Van cases, by where [prior, prior + trip] sits against the threshold:
    1. prior >= threshold: every mile at the second tier rate
    2. prior + trip <= threshold: every mile at the first tier rate
    3. otherwise the trip straddles: the miles up to the threshold at the
       first tier, the rest at the second tier. The reported rate is the
       blended deduction / miles, for display only.

    Inputs must be finite and non-negative; callers validate.
    """
    rates = rates or get_rate_table()
    vehicle_class = VehicleClass.parse(vehicle_class)
    schedule = rates.for_class(vehicle_class)
    prior = to_miles(prior_tally_miles)
    miles = to_miles(trip_miles)

    threshold = Decimal(getattr(schedule, "threshold_miles", 0))

    # Tier sums stay exact however far apart the magnitudes are
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, _exact_digits(prior, miles, threshold))
        return _tier_deduction(vehicle_class, schedule, prior, miles)


def _tier_deduction(
    vehicle_class: VehicleClass,
    schedule: Union[TieredRate, FlatRate],
    prior: Decimal,
    miles: Decimal,
) -> DeductionResult:
    if isinstance(schedule, FlatRate):
        return DeductionResult(
            deduction_pence=round_pence(miles * schedule.flat_pence),
            effective_rate_pence=schedule.flat_pence,
        )

    threshold = Decimal(schedule.threshold_miles)

    if prior >= threshold:
        return DeductionResult(
            deduction_pence=round_pence(miles * schedule.second_tier_pence),
            effective_rate_pence=schedule.second_tier_pence,
        )

    # Zero-mile trips land here, so the straddle branch always has miles > 0
    if prior + miles <= threshold:
        return DeductionResult(
            deduction_pence=round_pence(miles * schedule.first_tier_pence),
            effective_rate_pence=schedule.first_tier_pence,
        )

    miles_at_first_tier = threshold - prior
    miles_at_second_tier = miles - miles_at_first_tier
    deduction = round_pence(
        miles_at_first_tier * schedule.first_tier_pence
        + miles_at_second_tier * schedule.second_tier_pence
    )
    effective_rate = round_pence(Decimal(deduction) / miles)

    logger.debug(
        f"Straddling {vehicle_class.value} trip: {miles_at_first_tier} mi at "
        f"{schedule.first_tier_pence}p + {miles_at_second_tier} mi at "
        f"{schedule.second_tier_pence}p = {deduction}p"
    )

    return DeductionResult(deduction_pence=deduction, effective_rate_pence=effective_rate)


def calculate_hmrc_deduction(
    vehicle_class: Union[str, VehicleClass],
    total_business_miles: MilesLike,
    rates: Optional[RateTable] = None,
) -> int:
    """
    Whole-period deduction in pence for a vehicle's total business miles.

    Matches the sum of compute_deduction over the individual trips in
    order, up to each trip's penny rounding, since tiers follow a running total.
    """
    return compute_deduction(vehicle_class, ZERO, total_business_miles, rates).deduction_pence


def get_rate_table_info(rates: Optional[RateTable] = None) -> Dict[str, Any]:
    """Return current HMRC mileage rates"""
    rates = rates or get_rate_table()
    return {
        "vehicle_classes": [vc.value for vc in VehicleClass],
        "rates_pence_per_mile": rates.to_dict(),
        "threshold_miles": rates.car.threshold_miles,
        "rounding": "per_trip_half_up",
    }
