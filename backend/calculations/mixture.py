"""
Multi-compound mixing ("complexing").

Several stock solutions each contribute a share of a target concentration,
weighted by an integer mixing ratio. Whatever volume the stocks leave free is
topped up with buffer.
"""

import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from calculations.errors import ComputationError, ValidationError
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


def new_compound_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Compound:
    """One parsed stock solution in a mixture."""
    id: str
    concentration: float
    unit: ConcentrationUnit = ConcentrationUnit.MOL_PER_L
    molecular_weight: Optional[float] = None  # g/mol, only used for mg/mL
    ratio: int = 1


@dataclass
class CompoundRow:
    """
    Raw form row for one compound, as typed by the user.

    Rows are identified by `id`, which never changes while the row exists, so a
    computed volume can always be matched back to the row that produced it.
    """
    id: str = field(default_factory=new_compound_id)
    concentration: str = ""
    unit: ConcentrationUnit = ConcentrationUnit.MOL_PER_L
    molecular_weight: str = ""
    ratio: int = 1


class CompoundList:
    """
    Form-owned, ordered collection of compound rows.

    Always holds at least one row. The solver never sees this object, only a
    snapshot of it.
    """

    def __init__(self, rows: Optional[Sequence[CompoundRow]] = None):
        self._rows: list[CompoundRow] = list(rows) if rows else [CompoundRow()]
        ids = [row.id for row in self._rows]
        if len(set(ids)) != len(ids):
            raise ValidationError("Compound rows must have unique ids", field="compounds")

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(self.snapshot())

    def add(self) -> CompoundRow:
        """Append a blank row (unit mol/L, ratio 1) and return it."""
        row = CompoundRow()
        self._rows.append(row)
        return row

    def remove(self, compound_id: str) -> bool:
        """
        Remove the row with the given id.

        Returns:
            False if the row is unknown or is the last remaining row
        """
        if len(self._rows) <= 1:
            return False
        for index, row in enumerate(self._rows):
            if row.id == compound_id:
                del self._rows[index]
                return True
        return False

    def get(self, compound_id: str) -> Optional[CompoundRow]:
        for row in self._rows:
            if row.id == compound_id:
                return row
        return None

    def snapshot(self) -> tuple[CompoundRow, ...]:
        """Independent copies of the rows, in display order."""
        return tuple(replace(row) for row in self._rows)


@dataclass(frozen=True)
class CompoundVolume:
    """Stock volume computed for one compound."""
    id: str
    volume: float


@dataclass(frozen=True)
class MixtureResult:
    """Per-compound stock volumes and buffer top-up, all in volume_unit."""
    volumes: tuple[CompoundVolume, ...]
    buffer_volume: float
    total_compound_volume: float
    final_volume: float
    volume_unit: VolumeUnit

    @property
    def per_compound_volume(self) -> dict[str, float]:
        return {v.id: v.volume for v in self.volumes}

    @property
    def over_allocated(self) -> bool:
        """True when the stocks alone exceed the final volume (buffer clamped to 0)."""
        return self.total_compound_volume > self.final_volume


def solve_mixture(
    compounds: Sequence[Compound],
    final_conc: float,
    final_unit: ConcentrationUnit,
    final_volume: float,
    volume_unit: VolumeUnit,
    final_mass: Optional[float] = None,
) -> MixtureResult:
    """
    Calculate how much of each stock and how much buffer to mix.

    Each compound i receives the share ratio_i / sum(ratios) of the target
    molar concentration:

        target_i = ratio_i / total_ratio * final_conc_molar
        volume_i = target_i * final_vol_ml / conc_i_molar
        buffer   = max(0, final_volume - sum(volume_i))

    The target concentration is normalized with a molecular weight of 1 even
    when final_unit is mg/mL. Each compound uses its own molecular weight.

    final_mass is validated when given but does not enter the calculation.

    Raises:
        ValidationError: Empty compound list, non-positive inputs, bad ratios,
            duplicate ids, missing molecular weight on an mg/mL compound
        ComputationError: Zero molar compound concentration or non-finite result
    """
    if not compounds:
        raise ValidationError("Add at least one compound.", field="compounds")
    require_positive(final_conc, "final_concentration")
    require_positive(final_volume, "final_volume")
    if final_mass is not None:
        require_positive(final_mass, "final_mass")
    final_unit = parse_concentration_unit(final_unit, field="final_unit")
    volume_unit = parse_volume_unit(volume_unit)

    seen: set[str] = set()
    for position, compound in enumerate(compounds, start=1):
        if compound.id in seen:
            raise ValidationError(f"Duplicate compound id {compound.id!r}", field="compounds")
        seen.add(compound.id)
        if (
            compound.concentration is None
            or not math.isfinite(compound.concentration)
            or compound.concentration <= 0
        ):
            raise ValidationError(
                f"Please enter a valid concentration for compound {position}.",
                field="concentration",
            )
        if isinstance(compound.ratio, bool) or not isinstance(compound.ratio, int) or compound.ratio < 1:
            raise ValidationError(
                f"Mixing ratio for compound {position} must be a positive integer.",
                field="ratio",
            )
        unit = parse_concentration_unit(compound.unit)
        if unit is ConcentrationUnit.MG_PER_ML:
            if compound.molecular_weight is None:
                raise ValidationError(
                    f"Please enter a molecular weight for compound {position}.",
                    field="molecular_weight",
                )
            require_positive(compound.molecular_weight, "molecular_weight")

    total_vol_ml = to_millilitres(final_volume, volume_unit)
    total_ratio = sum(c.ratio for c in compounds)
    final_molar = to_molar(final_conc, final_unit, 1.0)

    volumes: list[CompoundVolume] = []
    total_calculated = 0.0
    for compound in compounds:
        conc_molar = to_molar(compound.concentration, compound.unit, compound.molecular_weight)
        if conc_molar == 0:
            raise ComputationError(
                f"Concentration of compound {compound.id!r} is too small to compute.",
                field="concentration",
            )
        target_molar = (compound.ratio / total_ratio) * final_molar
        volume = from_millilitres((target_molar * total_vol_ml) / conc_molar, volume_unit)
        if not math.isfinite(volume):
            raise ComputationError("Mixture result is not a finite number.")
        volumes.append(CompoundVolume(id=compound.id, volume=volume))
        total_calculated += volume

    buffer_volume = max(0.0, final_volume - total_calculated)

    return MixtureResult(
        volumes=tuple(volumes),
        buffer_volume=buffer_volume,
        total_compound_volume=total_calculated,
        final_volume=final_volume,
        volume_unit=volume_unit,
    )
