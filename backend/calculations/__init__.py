"""
Calculations module for Concentrator.
Provides unit conversion, dilution and mixture solvers plus the form engine.
"""

from calculations.engine import CalculationEngine
from calculations.errors import CalculationError, ComputationError, ParseError, ValidationError
from calculations.formulas import (
    CalculationResult,
    Formula,
    ConversionFormula,
    DilutionFormula,
    MixtureFormula,
)
from calculations.units import ConcentrationUnit, VolumeUnit, convert, from_molar, to_molar
from calculations.dilution import DilutionResult, solve_dilution
from calculations.mixture import Compound, CompoundList, CompoundRow, MixtureResult, solve_mixture

__all__ = [
    "CalculationEngine",
    "CalculationResult",
    "CalculationError",
    "ComputationError",
    "ParseError",
    "ValidationError",
    "Formula",
    "ConversionFormula",
    "DilutionFormula",
    "MixtureFormula",
    "ConcentrationUnit",
    "VolumeUnit",
    "convert",
    "from_molar",
    "to_molar",
    "DilutionResult",
    "solve_dilution",
    "Compound",
    "CompoundList",
    "CompoundRow",
    "MixtureResult",
    "solve_mixture",
]
