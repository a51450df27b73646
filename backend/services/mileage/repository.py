"""
Mileage Ledger - Trip Repository Interface

The ledger never queries storage itself. A repository hands it immutable
snapshots: trips with their vehicle joined, ordered by start time ascending,
and the earnings falling inside the requested window.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from services.mileage.models import EarningRecord, TripClassification, TripRecord
from services.mileage.tax_year import DateRange


class TripRepository(ABC):
    """Source of trips, earnings and user display names."""

    @abstractmethod
    def list_trips(
        self,
        user_id: str,
        date_range: DateRange,
        classification: Optional[TripClassification] = None,
    ) -> List[TripRecord]:
        """Trips started inside the range, ascending by start time."""

    @abstractmethod
    def list_earnings(self, user_id: str, date_range: DateRange) -> List[EarningRecord]:
        """Earnings whose whole period lies inside the range."""

    @abstractmethod
    def get_user_display_name(self, user_id: str) -> Optional[str]:
        """Display name (or email) for summaries, if known."""


class InMemoryTripRepository(TripRepository):
    """
    Repository over in-memory lists.
    Used for offline recomputation and tests.
    """

    def __init__(
        self,
        trips: Optional[Dict[str, Iterable[TripRecord]]] = None,
        earnings: Optional[Dict[str, Iterable[EarningRecord]]] = None,
        user_names: Optional[Dict[str, str]] = None,
    ):
        self._trips = {user_id: list(items) for user_id, items in (trips or {}).items()}
        self._earnings = {user_id: list(items) for user_id, items in (earnings or {}).items()}
        self._user_names = dict(user_names or {})

    def add_trip(self, user_id: str, trip: TripRecord):
        self._trips.setdefault(user_id, []).append(trip)

    def add_earning(self, user_id: str, earning: EarningRecord):
        self._earnings.setdefault(user_id, []).append(earning)

    def list_trips(
        self,
        user_id: str,
        date_range: DateRange,
        classification: Optional[TripClassification] = None,
    ) -> List[TripRecord]:
        trips = [
            trip for trip in self._trips.get(user_id, [])
            if date_range.contains(trip.started_at)
            and (classification is None or trip.classification == classification)
        ]
        # Stable sort keeps insertion order for trips sharing a start time
        return sorted(trips, key=lambda trip: trip.started_at)

    def list_earnings(self, user_id: str, date_range: DateRange) -> List[EarningRecord]:
        return [
            earning for earning in self._earnings.get(user_id, [])
            if earning.period_start >= date_range.start
            and date_range.contains(earning.period_end)
        ]

    def get_user_display_name(self, user_id: str) -> Optional[str]:
        return self._user_names.get(user_id)
