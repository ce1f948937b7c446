"""
Tests for the Dosing Resolver.

Formula: grams = base_grams_per_gallon x scale_factor x (1 + modifier) x gallons,
scale_factor = (target - source_water) / stage_full_strength.
"""
import pytest

from nutrient_doser.schemas.dosing_schemas import GrowStage, NutrientProduct, PPMScale
from nutrient_doser.services.dosing_resolver import calculate_scale_factor, resolve_dosing
from nutrient_doser.services.reference_tables import get_ppm_per_gram

P = NutrientProduct


class TestScaleFactor:

    def test_scale_factor(self):
        assert calculate_scale_factor(1050, 1200) == pytest.approx(0.875)

    @pytest.mark.parametrize("full_strength", [0, -100])
    def test_zero_reference_guard(self, full_strength):
        assert calculate_scale_factor(800, full_strength) == 0.0


class TestResolveDosing:
    """Per-product grams and ppm contributions."""

    def test_vegetative_five_gallons(self):
        result = resolve_dosing(GrowStage.VEGETATIVE, 1200, 150, 5.0)

        assert result.scale_factor == pytest.approx(0.875)
        assert result.doses[P.PART_A].grams == pytest.approx(16.58)
        assert result.doses[P.PART_B].grams == pytest.approx(11.025, abs=0.006)
        assert result.doses[P.EPSOM].grams == pytest.approx(5.51, abs=0.01)
        assert result.doses[P.PART_A].ppm_contributed == pytest.approx(507.4, abs=0.1)
        assert result.total_ppm == pytest.approx(1050)
        assert result.final_ppm == pytest.approx(1200)
        assert not result.needs_dilution

    def test_full_strength_one_gallon_matches_base_grams(self):
        result = resolve_dosing(GrowStage.FLOWER, 1200, 0, 1.0)

        assert result.scale_factor == pytest.approx(1.0)
        assert result.doses[P.PART_A].grams == pytest.approx(3.79)
        assert result.doses[P.PART_B].grams == pytest.approx(2.52)
        assert result.doses[P.EPSOM].grams == pytest.approx(1.26)

    def test_modifier_scales_single_product(self):
        result = resolve_dosing(GrowStage.FLOWER, 1200, 0, 1.0, modifiers={P.EPSOM: 0.25})

        # 1.26 x 1.25 = 1.575 g, rounded to two decimals in binary floating point
        assert result.doses[P.EPSOM].grams in (1.57, 1.58)
        assert result.doses[P.PART_A].grams == pytest.approx(3.79)

    def test_products_follow_stage(self):
        bud_set = resolve_dosing(GrowStage.BUD_SET, 1100, 0, 1.0)
        late_flower = resolve_dosing(GrowStage.LATE_FLOWER, 900, 0, 1.0)

        assert set(bud_set.doses) == {P.BLOOM, P.EPSOM}
        assert set(late_flower.doses) == {P.FINISH, P.EPSOM}

    def test_propagation_epsom_is_zero(self):
        result = resolve_dosing(GrowStage.PROPAGATION, 500, 0, 3.0)

        assert result.doses[P.EPSOM].grams == 0.0
        assert result.doses[P.PART_A].grams == pytest.approx(4.8)

    def test_seven_hundred_scale_ppm_per_gram(self):
        result = resolve_dosing(GrowStage.FLOWER, 1680, 0, 1.0, scale=PPMScale.PPM_700)

        assert result.scale_factor == pytest.approx(1.0)
        assert get_ppm_per_gram(P.PART_A, PPMScale.PPM_700) == pytest.approx(214.2)
        assert result.doses[P.PART_A].ppm_contributed == pytest.approx(3.79 * 214.2, abs=0.1)

    def test_zero_volume_gives_zero_grams(self):
        result = resolve_dosing(GrowStage.VEGETATIVE, 1200, 0, 0.0)

        assert all(dose.grams == 0 for dose in result.doses.values())
        assert result.final_ppm == pytest.approx(1200)


class TestFlushAndDilution:

    @pytest.mark.parametrize("source_water", [0, 85, 400])
    def test_flush_returns_source_water(self, source_water):
        result = resolve_dosing(GrowStage.FLUSH, 900, source_water, 10.0, modifiers={P.PART_A: 0.3})

        assert result.doses == {}
        assert result.total_ppm == 0
        assert result.final_ppm == source_water

    def test_source_above_target_needs_dilution(self):
        result = resolve_dosing(GrowStage.VEGETATIVE, 1200, 1500, 1.0)

        assert result.needs_dilution
        assert result.scale_factor == pytest.approx(-0.25)
        assert result.doses[P.PART_A].grams < 0
        assert result.total_ppm == pytest.approx(-300)
        assert result.final_ppm == pytest.approx(1200)
