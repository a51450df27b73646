"""
Mileage Ledger - Export Service

Input boundary for exports: validates the request, resolves the date
window, fetches snapshots from the repository and runs the ledger.
Rejected runs are logged, reported to Sentry and re-raised; nothing is
retried.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from config import get_settings
from logging_config import clear_request_context, get_request_context, set_request_context
from sentry_integration import capture_exception
from services.mileage.errors import InvalidExportRequestError, MileageLedgerError
from services.mileage.ledger import LedgerAggregator
from services.mileage.models import ExportRequest, ExportRow, ExportSummary, MileageClassSummary
from services.mileage.rates import RateTable
from services.mileage.repository import TripRepository
from services.mileage.tax_year import parse_tax_year, resolve_date_range

logger = logging.getLogger(__name__)


class MileageExportService:
    """Computes export rows and summaries for a user's trips."""

    def __init__(self, repository: TripRepository, rates: Optional[RateTable] = None):
        self.repository = repository
        self.aggregator = LedgerAggregator(rates)

    def fetch_export_trips(self, request: ExportRequest) -> List[ExportRow]:
        """
        Annotated trip rows for a tax year or an explicit [start, end) range.

        Raises:
            InvalidExportRequestError: before any trip is fetched
            TripDataIntegrityError / TripOrderingError: the run is rejected
        """
        self._begin(request.user_id, request.tax_year)
        try:
            date_range = resolve_date_range(request.tax_year, request.start, request.end)
            trips = self.repository.list_trips(request.user_id, date_range, request.classification)
            logger.info(f"Exporting {len(trips)} trips for {date_range.label()}")
            return self.aggregator.annotate(trips)
        except MileageLedgerError as e:
            self._reject(e)
            raise
        finally:
            clear_request_context()

    def fetch_export_summary(
        self,
        user_id: str,
        tax_year: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        generated_at: Optional[datetime] = None,
    ) -> ExportSummary:
        """
        Summary of trips and earnings for a tax year or explicit range.

        generated_at is stamped onto the summary as given; the ledger
        itself never reads the clock.
        """
        self._begin(user_id, tax_year)
        try:
            date_range = resolve_date_range(tax_year, start, end)
            trips = self.repository.list_trips(user_id, date_range)
            earnings = self.repository.list_earnings(user_id, date_range)
            user_name = self.repository.get_user_display_name(user_id) or get_settings().DEFAULT_USER_NAME

            return self.aggregator.summarize(
                trips,
                earnings,
                tax_year=date_range.tax_year,
                user_name=user_name,
                generated_at=generated_at,
            )
        except MileageLedgerError as e:
            self._reject(e)
            raise
        finally:
            clear_request_context()

    def mileage_summary(self, user_id: str, tax_year: str) -> MileageClassSummary:
        """Yearly totals by vehicle class for one tax year."""
        self._begin(user_id, tax_year)
        try:
            date_range = parse_tax_year(tax_year)
            trips = self.repository.list_trips(user_id, date_range)
            return self.aggregator.summarize_by_vehicle_class(trips, tax_year)
        except MileageLedgerError as e:
            self._reject(e)
            raise
        finally:
            clear_request_context()

    @staticmethod
    def _begin(user_id: str, tax_year: Optional[str]):
        set_request_context(request_id=str(uuid.uuid4()), user_id=user_id, tax_year=tax_year)

    @staticmethod
    def _reject(error: MileageLedgerError):
        if isinstance(error, InvalidExportRequestError):
            logger.warning(f"Invalid export request: {error}")
            return

        logger.error(f"Ledger run rejected: {error}")
        capture_exception(
            error,
            tags={"ledger_error": type(error).__name__},
            error_detail=error.to_dict(),
            **get_request_context(),
        )
