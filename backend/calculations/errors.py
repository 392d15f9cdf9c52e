"""
Error types raised by the concentration calculators.

Every error carries the name of the offending form field so the caller can
point the user at it. All of them are recoverable: the engine turns them into
a failed CalculationResult instead of letting them escape.
"""

from typing import Optional


class CalculationError(ValueError):
    """Base class for all calculator errors."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ParseError(CalculationError):
    """Input string is not a valid number."""


class ValidationError(CalculationError):
    """Input parses but violates a precondition (non-positive, missing MW, ...)."""


class ComputationError(CalculationError):
    """Result is mathematically undefined (e.g. zero molar denominator)."""
