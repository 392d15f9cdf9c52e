"""
Formula implementations for the three calculator forms.
Each formula reads raw form data (typed strings and unit selections),
validates it, and runs the matching solver.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional

from calculations.dilution import solve_dilution
from calculations.errors import CalculationError, ValidationError
from calculations.formatting import format_conversion, format_dilution, format_mixture
from calculations.mixture import Compound, CompoundList, CompoundRow, solve_mixture
from calculations.parsing import parse_number, parse_optional_number, parse_ratio
from calculations.units import (
    ConcentrationUnit,
    convert,
    parse_concentration_unit,
    parse_volume_unit,
    require_positive,
)

DEFAULT_MAX_MIXING_RATIO = 5


@dataclass
class CalculationResult:
    """Result of a single calculation."""
    calculation_type: str
    input_summary: dict
    output_values: dict
    warnings: list[str] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None
    error_fields: list[str] = field(default_factory=list)
    display: Optional[str] = None


class Formula(ABC):
    """
    Abstract base class for calculator formulas.

    Each formula defines:
    - validate(): Parse and check every input field
    - execute(): Perform the calculation
    """

    calculation_type: str = ""

    @abstractmethod
    def execute(self, data: dict, settings: dict) -> CalculationResult:
        """
        Execute the formula on form data.

        Args:
            data: Raw form data dict
            settings: Application settings dict

        Returns:
            CalculationResult with output values

        Raises:
            CalculationError: If an input is invalid or the result is undefined
        """
        pass

    @abstractmethod
    def validate(self, data: dict, settings: dict) -> list[CalculationError]:
        """
        Validate all form inputs.

        Args:
            data: Raw form data dict
            settings: Application settings dict

        Returns:
            List of errors, one per offending field (empty if valid)
        """
        pass


def _check(errors: list[CalculationError], func: Callable, *args, **kwargs):
    """Run a parse/check step, recording its error instead of raising."""
    try:
        return func(*args, **kwargs)
    except CalculationError as e:
        errors.append(e)
        return None


def _positive(data: dict, key: str, label: Optional[str] = None) -> float:
    value = parse_number(data.get(key), key, label)
    return require_positive(value, key, label)


def _optional_positive(data: dict, key: str, label: Optional[str] = None) -> Optional[float]:
    value = parse_optional_number(data.get(key), key, label)
    if value is None:
        return None
    return require_positive(value, key, label)


def _molecular_weight(data: dict, key: str = "mol_weight") -> float:
    # Always reported as "molecular_weight" whatever the form key is
    value = parse_optional_number(data.get(key), "molecular_weight")
    if value is None:
        raise ValidationError("Please enter a valid molecular weight.", field="molecular_weight")
    return require_positive(value, "molecular_weight")


def max_mixing_ratio(settings: dict) -> int:
    """Mixing ratio limit from settings, falling back to the default when unset or not a number."""
    try:
        return int(settings.get("max_mixing_ratio", DEFAULT_MAX_MIXING_RATIO))
    except (ValueError, TypeError):
        return DEFAULT_MAX_MIXING_RATIO


class ConversionFormula(Formula):
    """
    Convert a concentration from one unit to another.

    Inputs:
        - concentration: typed value
        - from_unit, to_unit: unit selections
        - mol_weight: only read when either unit is mg/mL

    Outputs:
        - value: converted concentration in to_unit
        - molar_value: the mol/L pivot value
    """

    calculation_type = "conversion"

    def validate(self, data: dict, settings: dict) -> list[CalculationError]:
        errors: list[CalculationError] = []
        from_unit = _check(errors, parse_concentration_unit, data.get("from_unit"), field="from_unit")
        to_unit = _check(errors, parse_concentration_unit, data.get("to_unit"), field="to_unit")
        _check(errors, _positive, data, "concentration")
        if ConcentrationUnit.MG_PER_ML in (from_unit, to_unit):
            _check(errors, _molecular_weight, data)
        return errors

    def execute(self, data: dict, settings: dict) -> CalculationResult:
        from_unit = parse_concentration_unit(data.get("from_unit"), field="from_unit")
        to_unit = parse_concentration_unit(data.get("to_unit"), field="to_unit")
        concentration = _positive(data, "concentration")

        mol_weight = None
        if ConcentrationUnit.MG_PER_ML in (from_unit, to_unit):
            mol_weight = _molecular_weight(data)

        value = convert(concentration, from_unit, to_unit, mol_weight)
        molar_value = convert(concentration, from_unit, ConcentrationUnit.MOL_PER_L, mol_weight)

        return CalculationResult(
            calculation_type=self.calculation_type,
            input_summary={
                "concentration": concentration,
                "from_unit": from_unit.value,
                "to_unit": to_unit.value,
                "mol_weight": mol_weight,
            },
            output_values={
                "value": value,
                "unit": to_unit.value,
                "molar_value": molar_value,
            },
            display=format_conversion(concentration, from_unit, value, to_unit),
        )


class DilutionFormula(Formula):
    """
    Stock and diluent volumes for a single dilution.

    Inputs:
        - stock_concentration, stock_unit
        - final_concentration, final_unit
        - final_volume, volume_unit
        - mol_weight: shared by both concentrations, read when either is mg/mL

    Outputs:
        - stock_volume, diluent_volume in volume_unit
        - infeasible: diluent volume came out negative
    """

    calculation_type = "dilution"

    def validate(self, data: dict, settings: dict) -> list[CalculationError]:
        errors: list[CalculationError] = []
        stock_unit = _check(errors, parse_concentration_unit, data.get("stock_unit"), field="stock_unit")
        final_unit = _check(errors, parse_concentration_unit, data.get("final_unit"), field="final_unit")
        _check(errors, parse_volume_unit, data.get("volume_unit"))
        _check(errors, _positive, data, "stock_concentration")
        _check(errors, _positive, data, "final_concentration")
        _check(errors, _positive, data, "final_volume")
        if ConcentrationUnit.MG_PER_ML in (stock_unit, final_unit):
            _check(errors, _molecular_weight, data)
        return errors

    def execute(self, data: dict, settings: dict) -> CalculationResult:
        stock_unit = parse_concentration_unit(data.get("stock_unit"), field="stock_unit")
        final_unit = parse_concentration_unit(data.get("final_unit"), field="final_unit")
        volume_unit = parse_volume_unit(data.get("volume_unit"))
        stock_conc = _positive(data, "stock_concentration")
        final_conc = _positive(data, "final_concentration")
        final_volume = _positive(data, "final_volume")

        mol_weight = None
        if ConcentrationUnit.MG_PER_ML in (stock_unit, final_unit):
            mol_weight = _molecular_weight(data)

        result = solve_dilution(
            stock_conc, stock_unit, final_conc, final_unit, final_volume, volume_unit, mol_weight
        )

        warnings: list[str] = []
        if result.infeasible:
            warnings.append(
                "Stock is too dilute to reach the final concentration: "
                "stock volume exceeds the final volume"
            )

        return CalculationResult(
            calculation_type=self.calculation_type,
            input_summary={
                "stock_concentration": stock_conc,
                "stock_unit": stock_unit.value,
                "final_concentration": final_conc,
                "final_unit": final_unit.value,
                "final_volume": final_volume,
                "volume_unit": volume_unit.value,
                "mol_weight": mol_weight,
            },
            output_values={
                "stock_volume": result.stock_volume,
                "diluent_volume": result.diluent_volume,
                "volume_unit": volume_unit.value,
                "infeasible": result.infeasible,
            },
            warnings=warnings,
            display=format_dilution(result),
        )


class MixtureFormula(Formula):
    """
    Complexing: mix several stocks by ratio, top up with buffer.

    Inputs:
        - compounds: list of rows {id, concentration, unit, mol_weight, ratio}
        - final_concentration, final_unit
        - final_volume, volume_unit
        - final_mass: optional, only validated

    Outputs:
        - volumes: [{id, volume}] in row order
        - buffer_volume, total_compound_volume in volume_unit
    """

    calculation_type = "mixture"

    def _rows(self, data: dict) -> CompoundList:
        raw_rows = data.get("compounds") or []
        if not isinstance(raw_rows, list) or not raw_rows:
            raise ValidationError("Add at least one compound.", field="compounds")
        rows = []
        for raw in raw_rows:
            if not isinstance(raw, dict):
                raise ValidationError("Each compound must be an object.", field="compounds")
            row = CompoundRow(
                concentration=raw.get("concentration", ""),
                unit=raw.get("unit") or ConcentrationUnit.MOL_PER_L,
                molecular_weight=raw.get("mol_weight", ""),
                ratio=raw.get("ratio", 1),
            )
            if raw.get("id"):
                row.id = str(raw["id"])
            rows.append(row)
        return CompoundList(rows)

    def _compound(self, row: CompoundRow, position: int, max_ratio: int) -> Compound:
        try:
            concentration = parse_number(row.concentration, "concentration")
        except CalculationError:
            raise ValidationError(
                f"Please enter a valid concentration for compound {position}.",
                field="concentration",
            )
        if not math.isfinite(concentration) or concentration <= 0:
            raise ValidationError(
                f"Please enter a valid concentration for compound {position}.",
                field="concentration",
            )

        unit = parse_concentration_unit(row.unit)
        ratio = parse_ratio(row.ratio)
        if ratio < 1 or ratio > max_ratio:
            raise ValidationError(
                f"Mixing ratio for compound {position} must be between 1 and {max_ratio}.",
                field="ratio",
            )

        mol_weight = None
        if unit is ConcentrationUnit.MG_PER_ML:
            try:
                mol_weight = _molecular_weight({"mol_weight": row.molecular_weight})
            except CalculationError:
                raise ValidationError(
                    f"Please enter a valid molecular weight for compound {position}.",
                    field="molecular_weight",
                )

        return Compound(
            id=row.id,
            concentration=concentration,
            unit=unit,
            molecular_weight=mol_weight,
            ratio=ratio,
        )

    def validate(self, data: dict, settings: dict) -> list[CalculationError]:
        errors: list[CalculationError] = []
        _check(errors, _positive, data, "final_concentration")
        _check(errors, _positive, data, "final_volume")
        _check(errors, _optional_positive, data, "final_mass")
        _check(errors, parse_concentration_unit, data.get("final_unit"), field="final_unit")
        _check(errors, parse_volume_unit, data.get("volume_unit"))

        rows = _check(errors, self._rows, data)
        if rows is not None:
            max_ratio = max_mixing_ratio(settings)
            for position, row in enumerate(rows, start=1):
                _check(errors, self._compound, row, position, max_ratio)
        return errors

    def execute(self, data: dict, settings: dict) -> CalculationResult:
        final_conc = _positive(data, "final_concentration")
        final_volume = _positive(data, "final_volume")
        final_mass = _optional_positive(data, "final_mass")
        final_unit = parse_concentration_unit(data.get("final_unit"), field="final_unit")
        volume_unit = parse_volume_unit(data.get("volume_unit"))

        max_ratio = max_mixing_ratio(settings)
        snapshot = self._rows(data).snapshot()
        compounds = [
            self._compound(row, position, max_ratio)
            for position, row in enumerate(snapshot, start=1)
        ]

        result = solve_mixture(
            compounds, final_conc, final_unit, final_volume, volume_unit, final_mass
        )

        warnings: list[str] = []
        if final_unit is ConcentrationUnit.MG_PER_ML:
            warnings.append(
                "Final concentration in mg/mL is converted with a molecular weight of 1"
            )
        if result.over_allocated:
            warnings.append(
                "Compound volumes exceed the final volume; buffer volume set to 0"
            )

        order = [c.id for c in compounds]
        return CalculationResult(
            calculation_type=self.calculation_type,
            input_summary={
                "compound_count": len(compounds),
                "total_ratio": sum(c.ratio for c in compounds),
                "final_concentration": final_conc,
                "final_unit": final_unit.value,
                "final_volume": final_volume,
                "volume_unit": volume_unit.value,
                "final_mass": final_mass,
            },
            output_values={
                "volumes": [{"id": v.id, "volume": v.volume} for v in result.volumes],
                "buffer_volume": result.buffer_volume,
                "total_compound_volume": result.total_compound_volume,
                "volume_unit": volume_unit.value,
            },
            warnings=warnings,
            display=format_mixture(result, order),
        )
