"""
Two-component dilution (C1V1 = C2V2).

Given a stock and a target concentration plus the target volume, works out how
much stock to pipette and how much diluent to top up with.
"""

import math
from dataclasses import dataclass
from typing import Optional

from calculations.errors import ComputationError
from calculations.units import (
    ConcentrationUnit,
    VolumeUnit,
    from_millilitres,
    parse_concentration_unit,
    parse_volume_unit,
    require_positive,
    to_millilitres,
    to_molar,
)


@dataclass(frozen=True)
class DilutionResult:
    """Volumes to mix, in volume_unit."""
    stock_volume: float
    diluent_volume: float
    volume_unit: VolumeUnit

    @property
    def infeasible(self) -> bool:
        """True when the stock is too dilute to reach the target by topping up."""
        return self.diluent_volume < 0


def solve_dilution(
    stock_conc: float,
    stock_unit: ConcentrationUnit,
    final_conc: float,
    final_unit: ConcentrationUnit,
    final_volume: float,
    volume_unit: VolumeUnit,
    molecular_weight: Optional[float] = None,
) -> DilutionResult:
    """
    Calculate stock and diluent volumes for a simple dilution.

    Formula:
        stock_vol   = final_conc_molar * final_vol_ml / stock_conc_molar
        diluent_vol = final_vol_ml - stock_vol

    One molecular weight serves both concentrations; it is required when
    either of them is in mg/mL.

    A negative diluent volume is returned as-is (see DilutionResult.infeasible).

    Raises:
        ValidationError: Non-positive inputs, unknown units, missing molecular weight
        ComputationError: Non-finite result
    """
    require_positive(stock_conc, "stock_concentration")
    require_positive(final_conc, "final_concentration")
    require_positive(final_volume, "final_volume")
    stock_unit = parse_concentration_unit(stock_unit, field="stock_unit")
    final_unit = parse_concentration_unit(final_unit, field="final_unit")
    volume_unit = parse_volume_unit(volume_unit)

    stock_molar = to_molar(stock_conc, stock_unit, molecular_weight)
    final_molar = to_molar(final_conc, final_unit, molecular_weight)
    if stock_molar == 0:
        raise ComputationError("Stock concentration is too small to compute a dilution.",
                               field="stock_concentration")

    final_vol_ml = to_millilitres(final_volume, volume_unit)
    stock_vol_ml = (final_molar * final_vol_ml) / stock_molar
    diluent_vol_ml = final_vol_ml - stock_vol_ml

    if not (math.isfinite(stock_vol_ml) and math.isfinite(diluent_vol_ml)):
        raise ComputationError("Dilution result is not a finite number.")

    return DilutionResult(
        stock_volume=from_millilitres(stock_vol_ml, volume_unit),
        diluent_volume=from_millilitres(diluent_vol_ml, volume_unit),
        volume_unit=volume_unit,
    )
