"""
Tests for the Modifier Calculator.
"""
import pytest

from nutrient_doser.schemas.dosing_schemas import GrowStage, NutrientProduct, NutrientSymptom, RootBallSize
from nutrient_doser.services.modifier_calculator import calculate_modifiers, clamp_modifier

S = NutrientSymptom
P = NutrientProduct


class TestModifiers:
    """Per-product adjustments from symptoms and root ball size."""

    def test_no_symptoms_all_zero(self):
        modifiers = calculate_modifiers([], GrowStage.VEGETATIVE)
        assert modifiers == {P.PART_A: 0.0, P.PART_B: 0.0, P.EPSOM: 0.0}

    def test_magnesium_deficiency_raises_epsom(self):
        modifiers = calculate_modifiers([S.MG_DEFICIENCY], GrowStage.VEGETATIVE)
        assert modifiers[P.EPSOM] == pytest.approx(0.25)
        assert modifiers[P.PART_A] == 0.0

    def test_small_root_ball_applies_to_every_product(self):
        modifiers = calculate_modifiers([S.MG_DEFICIENCY], GrowStage.FLOWER, RootBallSize.SMALL)
        assert modifiers[P.PART_A] == pytest.approx(-0.15)
        assert modifiers[P.PART_B] == pytest.approx(-0.15)
        assert modifiers[P.EPSOM] == pytest.approx(0.10)

    def test_accumulated_modifiers_clamped(self):
        modifiers = calculate_modifiers([S.N_TOXICITY, S.CA_TOXICITY], GrowStage.VEGETATIVE)
        assert modifiers[P.PART_B] == pytest.approx(-0.30)

    def test_root_ball_and_symptoms_clamped_together(self):
        modifiers = calculate_modifiers([S.N_TOXICITY, S.CA_TOXICITY], GrowStage.VEGETATIVE, RootBallSize.SMALL)
        assert modifiers[P.PART_B] == pytest.approx(-0.30)

    def test_bud_set_nitrogen_toxicity_reduces_bloom(self):
        modifiers = calculate_modifiers([S.N_TOXICITY], GrowStage.BUD_SET)
        assert modifiers == {P.BLOOM: pytest.approx(-0.10), P.EPSOM: 0.0}

    def test_late_flower_nitrogen_toxicity_reduces_finish(self):
        modifiers = calculate_modifiers([S.N_TOXICITY], GrowStage.LATE_FLOWER)
        assert modifiers[P.FINISH] == pytest.approx(-0.20)

    def test_message_only_entries_leave_modifiers_untouched(self):
        modifiers = calculate_modifiers([S.MG_DEFICIENCY, S.FE_DEFICIENCY], GrowStage.PROPAGATION)
        assert all(value == 0.0 for value in modifiers.values())

    def test_flush_stage_has_no_products(self):
        assert calculate_modifiers([S.FE_DEFICIENCY], GrowStage.FLUSH) == {}


class TestSuppression:
    """Flush and underfeeding verdicts suppress symptom modifiers."""

    def test_severe_toxicity_suppresses_modifiers(self):
        symptoms = [S.N_TOXICITY, S.P_TOXICITY, S.K_TOXICITY, S.MG_DEFICIENCY]
        modifiers = calculate_modifiers(symptoms, GrowStage.FLOWER)
        assert all(value == 0.0 for value in modifiers.values())

    def test_conflict_suppresses_modifiers(self):
        modifiers = calculate_modifiers([S.MG_DEFICIENCY, S.MG_TOXICITY], GrowStage.VEGETATIVE)
        assert all(value == 0.0 for value in modifiers.values())

    def test_underfeeding_keeps_root_ball_modifier(self):
        symptoms = [S.N_DEFICIENCY, S.MG_DEFICIENCY, S.K_DEFICIENCY]
        modifiers = calculate_modifiers(symptoms, GrowStage.VEGETATIVE, RootBallSize.SMALL)
        assert all(value == pytest.approx(-0.15) for value in modifiers.values())


class TestClamp:

    @pytest.mark.parametrize("value,expected", [
        (0.45, 0.30),
        (-0.5, -0.30),
        (0.1, 0.1),
        (0.0, 0.0),
    ])
    def test_clamp_modifier(self, value, expected):
        assert clamp_modifier(value) == pytest.approx(expected)

    @pytest.mark.parametrize("stage", list(GrowStage))
    def test_every_stage_within_band(self, stage):
        modifiers = calculate_modifiers(
            [S.N_TOXICITY, S.CA_TOXICITY, S.S_DEFICIENCY], stage, RootBallSize.SMALL
        )
        assert all(-0.30 <= value <= 0.30 for value in modifiers.values())
