"""
Display strings for calculator results.
"""

from typing import Sequence

from calculations.dilution import DilutionResult
from calculations.mixture import MixtureResult
from calculations.units import ConcentrationUnit


def format_number(value: float) -> str:
    """Two decimals, or scientific notation for very large/small magnitudes."""
    if abs(value) >= 1e6 or (abs(value) < 1e-3 and value != 0):
        return "%.2e" % value
    return "%.2f" % value


def format_conversion(
    value: float,
    from_unit: ConcentrationUnit,
    converted: float,
    to_unit: ConcentrationUnit,
) -> str:
    # e.g. "5.00 mM = 5.00e-03 mol/L"
    return f"{format_number(value)} {from_unit.value} = {format_number(converted)} {to_unit.value}"


def format_dilution(result: DilutionResult) -> str:
    unit = result.volume_unit.value
    return (
        f"Stock: {format_number(result.stock_volume)} {unit}, "
        f"Diluent: {format_number(result.diluent_volume)} {unit}"
    )


def format_mixture(result: MixtureResult, order: Sequence[str]) -> str:
    """
    One line per compound, numbered by position in `order`, then the buffer.

    Volumes are looked up by compound id, so rows are never misattributed.
    Every id in `order` must be present in the result.
    """
    unit = result.volume_unit.value
    volumes = result.per_compound_volume
    lines = [
        f"Compound {index}: {format_number(volumes[compound_id])} {unit}"
        for index, compound_id in enumerate(order, start=1)
    ]
    lines.append(f"Buffer: {format_number(result.buffer_volume)} {unit}")
    return "\n".join(lines)
