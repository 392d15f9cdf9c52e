"""
Unit tests for the mixture (complexing) solver and the compound row list.
"""

import pytest

from calculations.errors import ValidationError
from calculations.formatting import format_mixture
from calculations.mixture import (
    Compound,
    CompoundList,
    CompoundRow,
    solve_mixture,
)
from calculations.units import ConcentrationUnit, VolumeUnit

M = ConcentrationUnit.MOL_PER_L
MM = ConcentrationUnit.MILLIMOLAR
MG_ML = ConcentrationUnit.MG_PER_ML
ML = VolumeUnit.MILLILITRE
UL = VolumeUnit.MICROLITRE


# ─── solve_mixture ────────────────────────────────────────────────────────────

class TestSolveMixture:
    """Tests for ratio-weighted stock allocation and buffer top-up."""

    def test_two_compounds_equal_ratio(self):
        """A, B at 1 mol/L, ratio 1:1, target 0.5 mol/L in 100 mL -> 25 + 25 + 50 buffer"""
        compounds = [Compound("a", 1.0, M), Compound("b", 1.0, M)]
        result = solve_mixture(compounds, 0.5, M, 100.0, ML)
        assert result.per_compound_volume == {"a": pytest.approx(25.0), "b": pytest.approx(25.0)}
        assert round(result.buffer_volume, 2) == 50.00
        assert result.total_compound_volume == pytest.approx(50.0)
        assert not result.over_allocated

    def test_ratio_weighting(self):
        """Ratio 3:1 splits the target concentration 75% / 25%."""
        compounds = [Compound("a", 1.0, M, ratio=3), Compound("b", 1.0, M, ratio=1)]
        result = solve_mixture(compounds, 0.4, M, 100.0, ML)
        assert result.per_compound_volume["a"] == pytest.approx(30.0)
        assert result.per_compound_volume["b"] == pytest.approx(10.0)
        assert result.buffer_volume == pytest.approx(60.0)

    def test_single_compound_is_plain_dilution(self):
        result = solve_mixture([Compound("only", 10.0, M)], 1.0, M, 100.0, ML)
        assert result.per_compound_volume["only"] == pytest.approx(10.0)
        assert result.buffer_volume == pytest.approx(90.0)

    def test_compound_units_are_normalized(self):
        """A 100 mM stock and a 1 mol/L stock contribute in proportion to strength."""
        compounds = [Compound("a", 100.0, MM), Compound("b", 1.0, M)]
        result = solve_mixture(compounds, 20.0, MM, 10.0, ML)
        # each needs 10 mM in 10 mL
        assert result.per_compound_volume["a"] == pytest.approx(1.0)
        assert result.per_compound_volume["b"] == pytest.approx(0.1)

    def test_compound_uses_own_molecular_weight(self):
        """90 mg/mL at MW 180 is 0.5 mol/L."""
        compounds = [Compound("a", 90.0, MG_ML, molecular_weight=180.0)]
        result = solve_mixture(compounds, 0.05, M, 100.0, ML)
        assert result.per_compound_volume["a"] == pytest.approx(10.0)

    def test_mg_per_ml_target_uses_unit_molecular_weight(self):
        """Target in mg/mL is normalized with MW 1, whatever the compounds' MW."""
        compounds = [Compound("a", 1.0, M)]
        result = solve_mixture(compounds, 0.1, MG_ML, 100.0, ML)
        # 0.1 mg/mL / 1 g/mol -> 0.1 mol/L
        assert result.per_compound_volume["a"] == pytest.approx(10.0)

    def test_microlitre_output(self):
        compounds = [Compound("a", 1.0, M), Compound("b", 1.0, M)]
        result = solve_mixture(compounds, 0.5, M, 1000.0, UL)
        assert result.per_compound_volume["a"] == pytest.approx(250.0)
        assert result.buffer_volume == pytest.approx(500.0)
        assert result.volume_unit is UL

    def test_output_order_follows_input(self):
        compounds = [Compound(cid, 1.0, M) for cid in ("z", "a", "m")]
        result = solve_mixture(compounds, 0.3, M, 30.0, ML)
        assert [v.id for v in result.volumes] == ["z", "a", "m"]
        assert list(result.per_compound_volume) == ["z", "a", "m"]

    def test_buffer_clamped_at_zero(self):
        """Stocks weaker than the target share: buffer is 0, never negative."""
        compounds = [Compound("a", 0.1, M), Compound("b", 0.1, M)]
        result = solve_mixture(compounds, 1.0, M, 100.0, ML)
        assert result.total_compound_volume == pytest.approx(1000.0)
        assert result.buffer_volume == 0.0
        assert result.over_allocated

    @pytest.mark.parametrize("stock", [1e-6, 1e-3, 0.05, 0.5, 5.0])
    def test_buffer_never_negative(self, stock):
        compounds = [Compound("a", stock, M, ratio=2), Compound("b", stock, MM, ratio=5)]
        result = solve_mixture(compounds, 0.25, M, 10.0, ML)
        assert result.buffer_volume >= 0

    def test_exact_fill_is_not_over_allocated(self):
        result = solve_mixture([Compound("a", 1.0, M)], 1.0, M, 10.0, ML)
        assert result.buffer_volume == pytest.approx(0.0)
        assert not result.over_allocated

    def test_final_mass_is_accepted(self):
        result = solve_mixture([Compound("a", 1.0, M)], 0.5, M, 10.0, ML, final_mass=12.5)
        assert result.per_compound_volume["a"] == pytest.approx(5.0)

    def test_display_follows_given_order(self):
        compounds = [Compound("a", 1.0, M), Compound("b", 1.0, M, ratio=3)]
        result = solve_mixture(compounds, 0.4, M, 100.0, ML)
        assert format_mixture(result, ["b", "a"]) == (
            "Compound 1: 30.00 mL\nCompound 2: 10.00 mL\nBuffer: 60.00 mL"
        )

    def test_display_rejects_unknown_compound_id(self):
        result = solve_mixture([Compound("a", 1.0, M)], 0.5, M, 10.0, ML)
        with pytest.raises(KeyError):
            format_mixture(result, ["a", "missing"])


class TestSolveMixtureValidation:
    """Invalid mixtures fail as a whole before any arithmetic."""

    def test_empty_compound_list(self):
        with pytest.raises(ValidationError) as exc_info:
            solve_mixture([], 1.0, M, 100.0, ML)
        assert exc_info.value.field == "compounds"

    @pytest.mark.parametrize("conc", [0.0, -1.0, float("nan"), float("inf"), None])
    def test_bad_compound_concentration(self, conc):
        compounds = [Compound("a", 1.0, M), Compound("b", conc, M)]
        with pytest.raises(ValidationError) as exc_info:
            solve_mixture(compounds, 0.5, M, 100.0, ML)
        assert exc_info.value.field == "concentration"
        assert "compound 2" in exc_info.value.message

    def test_missing_molecular_weight(self):
        compounds = [Compound("a", 10.0, MG_ML)]
        with pytest.raises(ValidationError) as exc_info:
            solve_mixture(compounds, 0.5, M, 100.0, ML)
        assert exc_info.value.field == "molecular_weight"

    def test_non_positive_molecular_weight(self):
        compounds = [Compound("a", 10.0, MG_ML, molecular_weight=-3.0)]
        with pytest.raises(ValidationError) as exc_info:
            solve_mixture(compounds, 0.5, M, 100.0, ML)
        assert exc_info.value.field == "molecular_weight"

    @pytest.mark.parametrize("ratio", [0, -2, 1.5, True])
    def test_bad_ratio(self, ratio):
        compounds = [Compound("a", 1.0, M, ratio=ratio)]
        with pytest.raises(ValidationError) as exc_info:
            solve_mixture(compounds, 0.5, M, 100.0, ML)
        assert exc_info.value.field == "ratio"

    def test_duplicate_ids(self):
        compounds = [Compound("a", 1.0, M), Compound("a", 2.0, M)]
        with pytest.raises(ValidationError) as exc_info:
            solve_mixture(compounds, 0.5, M, 100.0, ML)
        assert exc_info.value.field == "compounds"

    @pytest.mark.parametrize("final_conc, final_volume, field", [
        (0.0, 100.0, "final_concentration"),
        (0.5, -100.0, "final_volume"),
    ])
    def test_bad_targets(self, final_conc, final_volume, field):
        with pytest.raises(ValidationError) as exc_info:
            solve_mixture([Compound("a", 1.0, M)], final_conc, M, final_volume, ML)
        assert exc_info.value.field == field

    def test_bad_final_mass(self):
        with pytest.raises(ValidationError) as exc_info:
            solve_mixture([Compound("a", 1.0, M)], 0.5, M, 10.0, ML, final_mass=0.0)
        assert exc_info.value.field == "final_mass"


# ─── CompoundList ─────────────────────────────────────────────────────────────

class TestCompoundList:
    """Tests for the form-owned compound rows."""

    def test_starts_with_one_default_row(self):
        rows = CompoundList()
        assert len(rows) == 1
        row = rows.snapshot()[0]
        assert row.unit is M
        assert row.ratio == 1
        assert row.concentration == ""

    def test_add_creates_unique_ids(self):
        rows = CompoundList()
        added = [rows.add() for _ in range(3)]
        ids = [row.id for row in rows.snapshot()]
        assert len(rows) == 4
        assert len(set(ids)) == 4
        assert ids[1:] == [row.id for row in added]

    def test_remove_by_id(self):
        rows = CompoundList()
        second = rows.add()
        third = rows.add()
        assert rows.remove(second.id)
        assert [row.id for row in rows.snapshot()][1:] == [third.id]

    def test_ids_stable_after_removal(self):
        """Removing a row does not renumber or re-identify the others."""
        rows = CompoundList([CompoundRow(id="a"), CompoundRow(id="b"), CompoundRow(id="c")])
        rows.remove("a")
        assert [row.id for row in rows.snapshot()] == ["b", "c"]
        assert rows.get("c") is not None
        assert rows.get("a") is None

    def test_never_empties_below_one(self):
        rows = CompoundList()
        only = rows.snapshot()[0]
        assert not rows.remove(only.id)
        assert len(rows) == 1

    def test_remove_unknown_id(self):
        rows = CompoundList()
        rows.add()
        assert not rows.remove("missing")
        assert len(rows) == 2

    def test_snapshot_is_independent(self):
        rows = CompoundList([CompoundRow(id="a", concentration="1")])
        snapshot = rows.snapshot()
        rows.get("a").concentration = "2"
        assert snapshot[0].concentration == "1"

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValidationError):
            CompoundList([CompoundRow(id="a"), CompoundRow(id="a")])
