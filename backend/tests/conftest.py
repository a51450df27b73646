"""
Shared fixtures for mileage ledger tests.

Run with: pytest backend/tests -v
"""

from datetime import datetime, timedelta
from typing import Optional

import pytest

from config import get_settings
from services.mileage import (
    DEFAULT_RATE_TABLE,
    EarningRecord,
    InMemoryTripRepository,
    TripClassification,
    TripRecord,
    VehicleClass,
    VehicleInfo,
)
from services.mileage.rates import get_rate_table

BASE_TIME = datetime(2025, 5, 1, 8, 0)

CAR = VehicleInfo(id="veh-car-1", make="Toyota", model="Prius", vehicle_type=VehicleClass.CAR)
SECOND_CAR = VehicleInfo(id="veh-car-2", make="Ford", model="Focus", vehicle_type=VehicleClass.CAR)
VAN = VehicleInfo(id="veh-van-1", make="Ford", model="Transit", vehicle_type=VehicleClass.VAN)
MOTORBIKE = VehicleInfo(id="veh-bike-1", make="Honda", model="PCX", vehicle_type=VehicleClass.MOTORBIKE)


def make_trip(
    trip_id: str,
    miles: float,
    classification: str = "business",
    vehicle: Optional[VehicleInfo] = CAR,
    hours: float = 0,
    platform: Optional[str] = None,
    started_at: Optional[datetime] = None,
) -> TripRecord:
    """Build a trip starting `hours` after BASE_TIME."""
    start = started_at or BASE_TIME + timedelta(hours=hours)
    return TripRecord(
        id=trip_id,
        classification=TripClassification(classification),
        distance_miles=miles,
        started_at=start,
        ended_at=start + timedelta(minutes=45),
        vehicle=vehicle,
        platform_tag=platform,
        start_address="1 High Street, Leeds",
        end_address="2 Station Road, York",
    )


def make_earning(
    earning_id: str,
    platform: str,
    amount_pence: int,
    period_start: datetime = datetime(2025, 6, 1),
    period_end: datetime = datetime(2025, 6, 30, 23, 59),
) -> EarningRecord:
    return EarningRecord(
        id=earning_id,
        platform=platform,
        amount_pence=amount_pence,
        period_start=period_start,
        period_end=period_end,
    )


@pytest.fixture(autouse=True)
def _fresh_config_caches():
    """Settings and the rate table are process-wide caches; reset per test."""
    get_settings.cache_clear()
    get_rate_table.cache_clear()
    yield
    get_settings.cache_clear()
    get_rate_table.cache_clear()


@pytest.fixture
def rates():
    return DEFAULT_RATE_TABLE


@pytest.fixture
def repository():
    trips = [
        make_trip("t1", 50, vehicle=CAR, hours=0, platform="uber"),
        make_trip("t2", 1000, "personal", vehicle=CAR, hours=5),
        make_trip("t3", 20, vehicle=None, hours=10, platform="deliveroo"),
        make_trip("t4", 200, vehicle=MOTORBIKE, hours=20),
    ]
    earnings = [
        make_earning("e1", "uber", 120_00),
        make_earning("e2", "deliveroo", 80_50),
        make_earning("e3", "uber", 30_25),
        # Straddles the tax year end, excluded
        make_earning("e4", "uber", 999_99, datetime(2026, 4, 1), datetime(2026, 4, 30)),
    ]
    return InMemoryTripRepository(
        trips={"user-1": trips},
        earnings={"user-1": earnings},
        user_names={"user-1": "Sam Driver"},
    )
