"""
Utils Package

Provides utility modules for:
- validation_errors: Structured error bodies for rejected requests and runs
"""

from .validation_errors import ValidationErrorResponse

__all__ = [
    'ValidationErrorResponse',
]
