"""
Tests for the Transition / Luxury-Uptake Advisor.
"""
import pytest

from nutrient_doser.schemas.dosing_schemas import GrowStage, LuxuryUptake, PPMScale, WarningCategory
from nutrient_doser.services.reference_tables import get_stage_profile
from nutrient_doser.services.target_resolver import resolve_target_concentration
from nutrient_doser.services.transition_advisor import advise_transition


class TestTransitionAdvice:
    """Step-down recommendations after a hot feed."""

    def test_within_margin_no_advice(self):
        advice = advise_transition(1300, GrowStage.FLOWER)

        assert advice.multiplier == 1.0
        assert advice.advisory is None
        assert advice.warning is None
        assert not advice.recommends_luxury_uptake

    def test_exactly_at_margin_no_advice(self):
        advice = advise_transition(1350, GrowStage.FLOWER)
        assert advice.multiplier == 1.0

    def test_moderate_overfeed(self):
        advice = advise_transition(1500, GrowStage.FLOWER)

        assert advice.multiplier == pytest.approx(1.25)
        assert advice.ratio == pytest.approx(1.25)
        assert advice.recommends_luxury_uptake
        assert "1.25" in advice.advisory
        assert "luxury uptake" in advice.advisory
        assert advice.warning is None

    def test_multiplier_capped(self):
        advice = advise_transition(3000, GrowStage.FLOWER)

        assert advice.ratio == pytest.approx(2.5)
        assert advice.multiplier == pytest.approx(1.8)
        assert advice.warning is not None
        assert advice.warning.priority == 2
        assert advice.warning.category == WarningCategory.NOTICE

    def test_just_below_cap_keeps_exact_multiplier(self):
        # 2155 / 1200 = 1.7958; below the cap, so no high-ratio notice
        advice = advise_transition(2155, GrowStage.FLOWER)

        assert advice.multiplier == 2155 / 1200
        assert advice.multiplier < 1.8
        assert advice.warning is None

    def test_reaching_cap_warns(self):
        advice = advise_transition(2160, GrowStage.FLOWER)

        assert advice.multiplier == 1.8
        assert advice.warning is not None

    def test_exact_ratio_drives_next_target(self):
        advice = advise_transition(1300, GrowStage.FLOWER, is_first_water_of_stage=True)
        target, _ = resolve_target_concentration(
            get_stage_profile(GrowStage.FLOWER),
            PPMScale.PPM_500,
            luxury=LuxuryUptake(enabled=True, multiplier=advice.multiplier),
        )

        assert advice.ratio == 1300 / 1100
        # 1200 * 1.1818... = 1418.18
        assert target == 1418

    def test_first_water_uses_previous_stage(self):
        advice = advise_transition(1300, GrowStage.FLOWER, is_first_water_of_stage=True)

        assert advice.reference_stage == GrowStage.BUD_SET
        assert advice.reference_concentration == 1100
        assert advice.multiplier == 1300 / 1100

    def test_propagation_is_its_own_predecessor(self):
        advice = advise_transition(800, GrowStage.PROPAGATION, is_first_water_of_stage=True)

        assert advice.reference_stage == GrowStage.PROPAGATION
        assert advice.multiplier == pytest.approx(1.6)

    def test_flush_reference_is_zero(self):
        advice = advise_transition(1500, GrowStage.FLUSH)

        assert advice.reference_concentration == 0
        assert advice.multiplier == 1.0
        assert advice.advisory is None

    def test_first_water_of_flush_compares_late_flower(self):
        advice = advise_transition(1500, GrowStage.FLUSH, is_first_water_of_stage=True)

        assert advice.reference_stage == GrowStage.LATE_FLOWER
        assert advice.multiplier == 1500 / 900

    def test_seven_hundred_scale(self):
        advice = advise_transition(2000, GrowStage.VEGETATIVE, scale=PPMScale.PPM_700)

        assert advice.reference_concentration == 1680
        assert advice.multiplier == 2000 / 1680
