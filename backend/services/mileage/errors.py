"""
Mileage Ledger - Exceptions

Invalid requests are rejected before any trip is fetched.
Data integrity and ordering errors reject the whole run.
"""

from typing import Any, Dict, Optional

from utils.validation_errors import ValidationErrorResponse


class MileageLedgerError(Exception):
    """Base exception for ledger errors"""

    def to_dict(self) -> Dict[str, Any]:
        return ValidationErrorResponse.validation_error(str(self))


class InvalidExportRequestError(MileageLedgerError):
    """Raised when an export request cannot be served as given"""

    def __init__(self, message: str, parameter: Optional[str] = None, value: Optional[Any] = None):
        super().__init__(message)
        self.parameter = parameter
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        if self.parameter is None:
            return ValidationErrorResponse.validation_error(str(self))
        return ValidationErrorResponse.invalid_parameter(self.parameter, str(self), self.value)


class InvalidTaxYearError(InvalidExportRequestError):
    """Raised for a malformed tax year identifier"""

    def __init__(self, tax_year: Any):
        super().__init__(
            f"Invalid tax year format: {tax_year}",
            parameter="tax_year",
            value=tax_year,
        )


class DateRangeError(InvalidExportRequestError):
    """Raised when the date window is missing, ambiguous or empty"""

    def __init__(self, message: str, parameter: Optional[str] = None, missing: bool = False):
        super().__init__(message, parameter=parameter)
        self.missing = missing

    def to_dict(self) -> Dict[str, Any]:
        if self.missing and self.parameter:
            return ValidationErrorResponse.missing_parameter(self.parameter, str(self))
        return super().to_dict()


class TripDataIntegrityError(MileageLedgerError):
    """Raised when a trip distance is negative or non-finite"""

    def __init__(self, trip_id: str, distance_miles: Any):
        super().__init__(
            f"Trip {trip_id} has invalid distance {distance_miles!r}; "
            f"distance must be a finite, non-negative number of miles"
        )
        self.trip_id = trip_id
        self.distance_miles = distance_miles

    def to_dict(self) -> Dict[str, Any]:
        return ValidationErrorResponse.data_integrity_error(
            str(self),
            {"trip_id": self.trip_id, "distance_miles": str(self.distance_miles)},
        )


class TripOrderingError(MileageLedgerError):
    """Raised when trips are not in ascending start time order"""

    def __init__(self, previous_trip_id: str, trip_id: str):
        super().__init__(
            f"Trip {trip_id} starts before preceding trip {previous_trip_id}; "
            f"trips must be ordered by start time"
        )
        self.previous_trip_id = previous_trip_id
        self.trip_id = trip_id

    def to_dict(self) -> Dict[str, Any]:
        return ValidationErrorResponse.data_integrity_error(
            str(self),
            {"previous_trip_id": self.previous_trip_id, "trip_id": self.trip_id},
        )
