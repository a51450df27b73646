"""
Structured Validation Error Utilities

Provides standardized error bodies for rejected ledger requests and runs.
Lets callers distinguish invalid requests from bad trip data.

Error Response Format:
{
    "error": "missing_parameter" | "invalid_parameter" | "validation_error" | "data_integrity_error",
    "parameter": "tax_year",
    "message": "tax_year is required"
}
"""

from typing import Optional, Any


class ValidationErrorResponse:
    """Structured validation error response builder."""

    @staticmethod
    def missing_parameter(parameter: str, message: Optional[str] = None) -> dict:
        """
        Create a missing parameter error response.

        Args:
            parameter: Name of the missing parameter
            message: Optional custom message

        Returns:
            Structured error dict
        """
        return {
            "error": "missing_parameter",
            "parameter": parameter,
            "message": message or f"{parameter} is required"
        }

    @staticmethod
    def invalid_parameter(parameter: str, message: str, value: Optional[Any] = None) -> dict:
        """
        Create an invalid parameter error response.

        Args:
            parameter: Name of the invalid parameter
            message: Description of the validation error
            value: The invalid value (optional, for debugging)

        Returns:
            Structured error dict
        """
        response = {
            "error": "invalid_parameter",
            "parameter": parameter,
            "message": message
        }
        if value is not None:
            response["received_value"] = str(value)[:100]  # Truncate for safety
        return response

    @staticmethod
    def validation_error(message: str, details: Optional[dict] = None) -> dict:
        """
        Create a general validation error response.

        Args:
            message: Description of the validation error
            details: Additional error details

        Returns:
            Structured error dict
        """
        response = {
            "error": "validation_error",
            "parameter": None,
            "message": message
        }
        if details:
            response["details"] = details
        return response

    @staticmethod
    def data_integrity_error(message: str, details: Optional[dict] = None) -> dict:
        """Create an error response for trip data the ledger refuses to process."""
        response = {
            "error": "data_integrity_error",
            "parameter": None,
            "message": message
        }
        if details:
            response["details"] = details
        return response
