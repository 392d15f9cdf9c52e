"""
Core calculation engine for the calculator forms.
Looks up the formula for a form, validates its data and runs it.
"""

import logging

from calculations.errors import CalculationError
from calculations.formulas import (
    Formula,
    CalculationResult,
    ConversionFormula,
    DilutionFormula,
    MixtureFormula,
)

logger = logging.getLogger(__name__)


# Registry of available calculation types
FORMULA_REGISTRY: dict[str, type[Formula]] = {
    "conversion": ConversionFormula,
    "dilution": DilutionFormula,
    "mixture": MixtureFormula,
}


class CalculationEngine:
    """
    Core engine for running calculator forms.

    Every parse, validation and computation error is caught here and returned
    as a failed CalculationResult, so one bad form never takes anything else down.
    """

    def __init__(self, settings: dict):
        """
        Initialize engine with settings.

        Args:
            settings: Dict of key-value settings
                Expected keys: max_mixing_ratio
        """
        self.settings = settings

    def get_formula(self, calculation_type: str) -> Formula:
        """
        Get formula instance for the given calculation type.

        Raises:
            ValueError: If calculation type is unknown
        """
        if calculation_type not in FORMULA_REGISTRY:
            raise ValueError(f"Unknown calculation type: {calculation_type}")
        return FORMULA_REGISTRY[calculation_type]()

    def calculate(self, data: dict, calculation_type: str) -> CalculationResult:
        """
        Run specified calculation on form data.

        Args:
            data: Raw form data dict
            calculation_type: Type of calculation to perform

        Returns:
            CalculationResult with output values and any warnings

        Raises:
            ValueError: If calculation type is unknown
        """
        formula = self.get_formula(calculation_type)

        # Validate inputs
        validation_errors = formula.validate(data or {}, self.settings)
        if validation_errors:
            messages = [e.message for e in validation_errors]
            logger.info("%s validation failed: %s", calculation_type, "; ".join(messages))
            return CalculationResult(
                calculation_type=calculation_type,
                input_summary={"validation_errors": messages},
                output_values={},
                warnings=[],
                success=False,
                error=f"Validation failed: {'; '.join(messages)}",
                error_fields=[e.field for e in validation_errors if e.field],
                display="\n".join(messages),
            )

        # Execute calculation
        try:
            return formula.execute(data, self.settings)
        except CalculationError as e:
            logger.info("%s failed: %s", calculation_type, e.message)
            return CalculationResult(
                calculation_type=calculation_type,
                input_summary={},
                output_values={},
                warnings=[],
                success=False,
                error=e.message,
                error_fields=[e.field] if e.field else [],
                display=e.message,
            )

    @staticmethod
    def get_available_types() -> list[str]:
        """Get list of all available calculation types."""
        return list(FORMULA_REGISTRY.keys())
