"""
Concentration and volume unit conversions.

Molar units differ by fixed powers of ten and pivot through mol/L.
mg/mL is a mass unit and needs a molecular weight (g/mol) to relate to the
molar units: 1 mg/mL == 1 g/L, so mol/L = (mg/mL) / MW.
"""

import math
from enum import Enum
from typing import Optional

from calculations.errors import ComputationError, ValidationError


class ConcentrationUnit(str, Enum):
    """Supported concentration units."""

    MOL_PER_L = "mol/L"
    MILLIMOLAR = "mM"
    MICROMOLAR = "µM"
    NANOMOLAR = "nM"
    MG_PER_ML = "mg/mL"

    @classmethod
    def _missing_(cls, value):
        # ASCII "u" and Greek mu are common stand-ins for the micro sign
        if isinstance(value, str) and value in ("uM", "μM"):
            return cls.MICROMOLAR
        return None

    @property
    def is_molar(self) -> bool:
        return self is not ConcentrationUnit.MG_PER_ML


class VolumeUnit(str, Enum):
    """Supported volume units."""

    MILLILITRE = "mL"
    MICROLITRE = "µL"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str) and value in ("uL", "μL"):
            return cls.MICROLITRE
        return None


# Multiply a mol/L value by the factor to express it in the unit
MOLAR_FACTORS: dict[ConcentrationUnit, float] = {
    ConcentrationUnit.MOL_PER_L: 1.0,
    ConcentrationUnit.MILLIMOLAR: 1e3,
    ConcentrationUnit.MICROMOLAR: 1e6,
    ConcentrationUnit.NANOMOLAR: 1e9,
}

# Multiply a mL value by the factor to express it in the unit
VOLUME_FACTORS: dict[VolumeUnit, float] = {
    VolumeUnit.MILLILITRE: 1.0,
    VolumeUnit.MICROLITRE: 1e3,
}


def parse_concentration_unit(value, field: str = "unit") -> ConcentrationUnit:
    """
    Resolve a unit selection to a ConcentrationUnit.

    Raises:
        ValidationError: For anything outside the fixed unit set
    """
    try:
        return ConcentrationUnit(value)
    except ValueError:
        raise ValidationError(f"Unsupported concentration unit: {value!r}", field=field)


def parse_volume_unit(value, field: str = "volume_unit") -> VolumeUnit:
    """Resolve a unit selection to a VolumeUnit, rejecting unknown units."""
    try:
        return VolumeUnit(value)
    except ValueError:
        raise ValidationError(f"Unsupported volume unit: {value!r}", field=field)


def require_positive(value: float, field: str, label: Optional[str] = None) -> float:
    """
    Check that a magnitude is a positive finite number.

    Raises:
        ValidationError: If value is missing, zero, negative, NaN or infinite
    """
    label = label or field.replace("_", " ")
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Please enter a valid {label}.", field=field)
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite or value <= 0:
        raise ValidationError(f"{label.capitalize()} must be a positive number.", field=field)
    return value


def _check_molecular_weight(molecular_weight: Optional[float]) -> float:
    if molecular_weight is None:
        raise ValidationError("Please enter a valid molecular weight.", field="molecular_weight")
    return require_positive(molecular_weight, "molecular_weight")


def to_molar(
    value: float,
    unit: ConcentrationUnit,
    molecular_weight: Optional[float] = None,
) -> float:
    """
    Convert a concentration to mol/L.

    Args:
        value: Concentration in `unit`
        unit: Unit of `value`
        molecular_weight: g/mol, required when unit is mg/mL

    Returns:
        Concentration in mol/L

    Raises:
        ValidationError: If value is not a positive finite number, or unit is mg/mL
            and molecular_weight is missing or not positive
    """
    require_positive(value, "concentration")
    unit = parse_concentration_unit(unit)
    if unit is ConcentrationUnit.MG_PER_ML:
        return value / _check_molecular_weight(molecular_weight)
    return value / MOLAR_FACTORS[unit]


def from_molar(
    molar_value: float,
    unit: ConcentrationUnit,
    molecular_weight: Optional[float] = None,
) -> float:
    """Convert a mol/L concentration to `unit`. Inverse of to_molar()."""
    require_positive(molar_value, "concentration")
    unit = parse_concentration_unit(unit)
    if unit is ConcentrationUnit.MG_PER_ML:
        return molar_value * _check_molecular_weight(molecular_weight)
    return molar_value * MOLAR_FACTORS[unit]


def convert(
    value: float,
    from_unit: ConcentrationUnit,
    to_unit: ConcentrationUnit,
    molecular_weight: Optional[float] = None,
) -> float:
    """
    Convert a concentration between any two supported units.

    Pivots through mol/L. Converting a unit to itself returns `value` unchanged.

    Raises:
        ValidationError: For a non-positive value, an unknown unit, or a missing
            molecular weight when either side is mg/mL
        ComputationError: If the value underflows or overflows when normalized to mol/L
    """
    require_positive(value, "concentration")
    from_unit = parse_concentration_unit(from_unit, field="from_unit")
    to_unit = parse_concentration_unit(to_unit, field="to_unit")
    if from_unit is to_unit:
        return value
    molar_value = to_molar(value, from_unit, molecular_weight)
    if molar_value == 0 or not math.isfinite(molar_value):
        raise ComputationError(
            "Concentration is out of range for this conversion.", field="concentration"
        )
    return from_molar(molar_value, to_unit, molecular_weight)


def to_millilitres(value: float, unit: VolumeUnit) -> float:
    """Convert a volume in `unit` to mL."""
    return value / VOLUME_FACTORS[parse_volume_unit(unit)]


def from_millilitres(value: float, unit: VolumeUnit) -> float:
    """Convert a volume in mL to `unit`."""
    return value * VOLUME_FACTORS[parse_volume_unit(unit)]
