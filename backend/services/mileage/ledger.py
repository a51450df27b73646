"""
Mileage Ledger - Ledger Aggregator

Turns an ordered trip sequence into:
- Annotated export rows (one per trip, running tally per vehicle class)
- An export summary (totals, per-vehicle breakdown, per-platform earnings)
- A yearly summary by vehicle class

Every run builds its own tally from zero. Trips must already be in
ascending start time order; an out-of-order sequence is rejected, never
re-sorted. Money is integer pence; mileage is Decimal until display.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from services.mileage.errors import TripDataIntegrityError, TripOrderingError
from services.mileage.formatting import format_trip_date, format_trip_time, round_miles
from services.mileage.models import (
    UNKNOWN_VEHICLE_NAME,
    EarningRecord,
    ExportRow,
    ExportSummary,
    MileageClassSummary,
    PlatformEarnings,
    TripRecord,
    VehicleBreakdown,
)
from services.mileage.rates import (
    ZERO,
    RateTable,
    VehicleClass,
    calculate_hmrc_deduction,
    compute_deduction,
    get_rate_table,
    to_miles,
)

logger = logging.getLogger(__name__)


# ==================== TALLY ====================

class CumulativeTally:
    """Business miles attributed to each vehicle class so far in one run."""

    def __init__(self):
        self._miles: Dict[VehicleClass, Decimal] = {vc: ZERO for vc in VehicleClass}

    def get(self, vehicle_class: VehicleClass) -> Decimal:
        return self._miles[vehicle_class]

    def add(self, vehicle_class: VehicleClass, miles: Decimal):
        self._miles[vehicle_class] += miles

    def as_dict(self) -> Dict[VehicleClass, Decimal]:
        return dict(self._miles)


# ==================== VALIDATION ====================

def validate_distance(trip: TripRecord) -> Decimal:
    """Return the trip distance as Decimal, rejecting negative or non-finite values."""
    distance = trip.distance_miles
    if isinstance(distance, bool) or not isinstance(distance, (int, float, Decimal)):
        raise TripDataIntegrityError(trip.id, distance)
    if not math.isfinite(distance) or distance < 0:
        raise TripDataIntegrityError(trip.id, distance)
    return to_miles(distance)


def validate_trips(trips: Sequence[TripRecord], check_order: bool = True) -> List[Decimal]:
    """
    Validate a whole run before any arithmetic.

    Returns the trip distances as Decimals, in input order.

    Raises:
        TripDataIntegrityError: a distance is negative or non-finite
        TripOrderingError: a trip starts before its predecessor
    """
    distances = []
    previous: Optional[TripRecord] = None
    for trip in trips:
        distances.append(validate_distance(trip))
        if check_order and previous is not None and trip.started_at < previous.started_at:
            raise TripOrderingError(previous.id, trip.id)
        previous = trip
    return distances


# ==================== AGGREGATOR ====================

@dataclass
class _VehicleGroup:
    vehicle_id: Optional[str]
    name: str
    vehicle_type: VehicleClass
    total_miles: Decimal = ZERO
    business_miles: Decimal = ZERO


class LedgerAggregator:
    """
    Mileage ledger for one rate table.

    Holds no run state: each call starts from a fresh tally, so one
    aggregator can serve concurrent runs.
    """

    def __init__(self, rates: Optional[RateTable] = None):
        self.rates = rates or get_rate_table()

    def annotate(self, trips: Sequence[TripRecord]) -> List[ExportRow]:
        """
        Annotate each trip with its HMRC rate and deduction.

        Personal trips get zero rate and deduction and leave the tally alone.
        Business trips are priced against the tally for their vehicle class,
        then added to it.
        """
        distances = validate_trips(trips)
        tally = CumulativeTally()
        rows = []

        for trip, miles in zip(trips, distances):
            vehicle_class = trip.vehicle_class
            rate_pence = 0
            deduction_pence = 0

            if trip.is_business:
                result = compute_deduction(vehicle_class, tally.get(vehicle_class), miles, self.rates)
                rate_pence = result.effective_rate_pence
                deduction_pence = result.deduction_pence
                tally.add(vehicle_class, miles)

            rows.append(self._build_row(trip, miles, vehicle_class, rate_pence, deduction_pence))

        logger.info(
            f"Annotated {len(rows)} trips, deduction {sum(r.deduction_pence for r in rows)}p",
            extra={"tally_miles": {vc.value: str(m) for vc, m in tally.as_dict().items()}},
        )
        return rows

    def summarize(
        self,
        trips: Sequence[TripRecord],
        earnings: Iterable[EarningRecord] = (),
        tax_year: Optional[str] = None,
        user_name: Optional[str] = None,
        generated_at: Optional[datetime] = None,
    ) -> ExportSummary:
        """
        Roll trips and earnings up into an export summary.

        Vehicles are grouped by identity, not class; trips with no vehicle
        share one "Unknown vehicle" bucket priced as a car. Each vehicle's
        deduction is priced on its own business total from zero, and the
        total deduction is the sum of those integer figures.
        """
        distances = validate_trips(trips, check_order=False)

        total_miles = ZERO
        business_miles = ZERO
        personal_miles = ZERO
        groups: Dict[str, _VehicleGroup] = {}

        for trip, miles in zip(trips, distances):
            total_miles += miles
            if trip.is_business:
                business_miles += miles
            else:
                personal_miles += miles

            group = groups.get(trip.vehicle_key)
            if group is None:
                group = _VehicleGroup(
                    vehicle_id=trip.vehicle.id if trip.vehicle else None,
                    name=trip.vehicle.display_name if trip.vehicle else UNKNOWN_VEHICLE_NAME,
                    vehicle_type=trip.vehicle_class,
                )
                groups[trip.vehicle_key] = group

            group.total_miles += miles
            if trip.is_business:
                group.business_miles += miles

        vehicle_breakdown = []
        total_deduction_pence = 0
        for group in groups.values():
            deduction = calculate_hmrc_deduction(group.vehicle_type, group.business_miles, self.rates)
            total_deduction_pence += deduction
            vehicle_breakdown.append(VehicleBreakdown(
                vehicle_id=group.vehicle_id,
                vehicle_name=group.name,
                vehicle_type=group.vehicle_type,
                total_miles=round_miles(group.total_miles),
                business_miles=round_miles(group.business_miles),
                deduction_pence=deduction,
            ))

        total_earnings_pence, earnings_by_platform = summarize_earnings(earnings)

        summary = ExportSummary(
            tax_year=tax_year,
            total_trips=len(trips),
            total_miles=round_miles(total_miles),
            business_miles=round_miles(business_miles),
            personal_miles=round_miles(personal_miles),
            vehicle_breakdown=vehicle_breakdown,
            total_deduction_pence=total_deduction_pence,
            total_earnings_pence=total_earnings_pence,
            earnings_by_platform=earnings_by_platform,
            user_name=user_name,
            generated_at=generated_at,
        )

        logger.info(
            f"Summarised {len(trips)} trips across {len(vehicle_breakdown)} vehicles, "
            f"deduction {total_deduction_pence}p, earnings {total_earnings_pence}p"
        )
        return summary

    def summarize_by_vehicle_class(
        self,
        trips: Sequence[TripRecord],
        tax_year: Optional[str] = None,
    ) -> MileageClassSummary:
        """Yearly totals with the deduction priced once per vehicle class."""
        distances = validate_trips(trips, check_order=False)

        total_miles = ZERO
        business_miles = ZERO
        business_by_class = CumulativeTally()

        for trip, miles in zip(trips, distances):
            total_miles += miles
            if trip.is_business:
                business_miles += miles
                business_by_class.add(trip.vehicle_class, miles)

        deduction_pence = 0
        for vehicle_class, miles in business_by_class.as_dict().items():
            if miles > 0:
                deduction_pence += calculate_hmrc_deduction(vehicle_class, miles, self.rates)

        return MileageClassSummary(
            tax_year=tax_year,
            total_miles=round_miles(total_miles),
            business_miles=round_miles(business_miles),
            business_miles_by_class={
                vc: round_miles(m) for vc, m in business_by_class.as_dict().items()
            },
            deduction_pence=deduction_pence,
        )

    def deduction_drift(
        self,
        trips: Sequence[TripRecord],
        rows: Sequence[ExportRow],
    ) -> Dict[VehicleClass, int]:
        """
        Per vehicle class: summed row deductions minus the single-call figure
        for the class's business miles. Only per-trip penny rounding can make
        this non-zero, so its magnitude is bounded by the business trip count.
        """
        distances = validate_trips(trips, check_order=False)
        row_totals: Dict[VehicleClass, int] = {vc: 0 for vc in VehicleClass}
        miles = CumulativeTally()
        for trip, distance, row in zip(trips, distances, rows):
            if trip.is_business:
                row_totals[trip.vehicle_class] += row.deduction_pence
                miles.add(trip.vehicle_class, distance)

        return {
            vc: row_totals[vc] - calculate_hmrc_deduction(vc, miles.get(vc), self.rates)
            for vc in VehicleClass
        }

    @staticmethod
    def _build_row(
        trip: TripRecord,
        miles: Decimal,
        vehicle_class: VehicleClass,
        rate_pence: int,
        deduction_pence: int,
    ) -> ExportRow:
        return ExportRow(
            trip_id=trip.id,
            date=format_trip_date(trip.started_at),
            start_time=format_trip_time(trip.started_at),
            end_time=format_trip_time(trip.ended_at),
            started_at=trip.started_at,
            ended_at=trip.ended_at,
            start_address=trip.start_address,
            end_address=trip.end_address,
            distance_miles=round_miles(miles),
            classification=trip.classification,
            platform=trip.platform_tag,
            vehicle_id=trip.vehicle.id if trip.vehicle else None,
            vehicle_type=trip.vehicle.vehicle_type if trip.vehicle else None,
            vehicle_class=vehicle_class,
            vehicle_name=trip.vehicle.display_name if trip.vehicle else None,
            hmrc_rate_pence=rate_pence,
            deduction_pence=deduction_pence,
        )


def summarize_earnings(earnings: Iterable[EarningRecord]):
    """Total earnings and per-platform totals, platforms in first-seen order."""
    by_platform: Dict[str, int] = {}
    total = 0
    for earning in earnings:
        total += earning.amount_pence
        by_platform[earning.platform] = by_platform.get(earning.platform, 0) + earning.amount_pence

    return total, [
        PlatformEarnings(platform=platform, total_pence=pence)
        for platform, pence in by_platform.items()
    ]


# ==================== HELPER FUNCTIONS ====================

def annotate_trips(trips: Sequence[TripRecord], rates: Optional[RateTable] = None) -> List[ExportRow]:
    """Annotate an ordered trip sequence with per-trip HMRC deductions."""
    return LedgerAggregator(rates).annotate(trips)


def summarize(
    trips: Sequence[TripRecord],
    earnings: Iterable[EarningRecord] = (),
    rates: Optional[RateTable] = None,
    **kwargs,
) -> ExportSummary:
    """Build the export summary for a trip set and its earnings."""
    return LedgerAggregator(rates).summarize(trips, earnings, **kwargs)


def summarize_by_vehicle_class(
    trips: Sequence[TripRecord],
    tax_year: Optional[str] = None,
    rates: Optional[RateTable] = None,
) -> MileageClassSummary:
    """Yearly mileage summary priced per vehicle class."""
    return LedgerAggregator(rates).summarize_by_vehicle_class(trips, tax_year)
