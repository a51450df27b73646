"""
Mileage Ledger - Display Formatting

Rounding here is presentation only; nothing formatted is fed back into
the ledger arithmetic.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from services.mileage.rates import MilesLike, quantize_half_up, to_miles


def round_miles(miles: MilesLike, decimals: int = 2) -> float:
    """Round mileage for display (2 decimal places, halves up)."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(quantize_half_up(to_miles(miles), quantum))


def format_pence(pence: int) -> str:
    """Format pence as GBP string (e.g. 12345 → "£123.45")."""
    sign = "-" if pence < 0 else ""
    pounds, remainder = divmod(abs(int(pence)), 100)
    return f"{sign}£{pounds}.{remainder:02d}"


def format_miles(miles: MilesLike) -> str:
    """Format a distance in miles (e.g. 1234.5 → "1,234.5 mi")."""
    value = quantize_half_up(to_miles(miles), Decimal("0.1"))
    if value == quantize_half_up(value, Decimal("1")):
        return f"{int(value):,} mi"
    return f"{value:,} mi"


def format_trip_date(moment: datetime) -> str:
    return moment.strftime("%d/%m/%Y")


def format_trip_time(moment: Optional[datetime]) -> Optional[str]:
    if moment is None:
        return None
    return moment.strftime("%H:%M")
