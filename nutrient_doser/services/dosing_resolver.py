"""
Dosing Resolver - converts a target concentration into product masses.

Formula per product (volume in gallons):
    scale_factor = (target - source_water) / stage_full_strength
    grams = base_grams_per_gallon x scale_factor x (1 + modifier) x volume
    ppm_contributed = (grams / volume) x ppm_per_gram

A target below the source water reading is not clamped: grams and
total_ppm go negative and ``needs_dilution`` is set.
"""
from typing import Dict, Optional
import logging

from nutrient_doser.schemas.dosing_schemas import (
    DosingResult,
    GrowStage,
    NutrientDose,
    NutrientProduct,
    PPMScale,
)
from nutrient_doser.services.dosing_rules import GRAMS_DECIMALS, PPM_DECIMALS
from nutrient_doser.services.reference_tables import get_ppm_per_gram, get_stage_profile

logger = logging.getLogger(__name__)


def calculate_scale_factor(nutrient_ppm: float, full_strength_ppm: float) -> float:
    """Fraction of full strength to dose; 0 when the stage has no full-strength reference."""
    if full_strength_ppm <= 0:
        return 0.0
    return nutrient_ppm / full_strength_ppm


def resolve_dosing(
    stage: GrowStage,
    target_concentration: float,
    source_water_ppm: float,
    volume_gallons: float,
    modifiers: Optional[Dict[NutrientProduct, float]] = None,
    scale: PPMScale = PPMScale.PPM_500,
) -> DosingResult:
    """
    Calculate grams and ppm contribution for every product in ``stage``.

    Args:
        stage: Active growth stage
        target_concentration: Final target ppm at ``scale``
        source_water_ppm: Source water reading at ``scale``
        volume_gallons: Water volume in gallons
        modifiers: Product -> signed modifier from the modifier calculator
        scale: Meter scale

    Returns:
        DosingResult with per-product doses and solution totals.
    """
    stage = GrowStage(stage)
    profile = get_stage_profile(stage)
    modifiers = modifiers or {}

    if stage == GrowStage.FLUSH:
        return DosingResult(
            doses={},
            scale_factor=0.0,
            total_ppm=0.0,
            final_ppm=source_water_ppm,
        )

    nutrient_ppm = target_concentration - source_water_ppm
    full_strength = profile.concentration(scale)
    scale_factor = calculate_scale_factor(nutrient_ppm, full_strength)

    doses = {}
    for product, base_grams in profile.base_grams_per_gallon.items():
        grams_per_gallon = base_grams * scale_factor * (1 + modifiers.get(product, 0.0))
        doses[product] = NutrientDose(
            grams=round(grams_per_gallon * volume_gallons, GRAMS_DECIMALS),
            ppm_contributed=round(grams_per_gallon * get_ppm_per_gram(product, scale), PPM_DECIMALS),
        )

    if nutrient_ppm < 0:
        logger.info(
            f"[Dosing] Source water {source_water_ppm} ppm exceeds target {target_concentration} ppm - "
            f"dilution needed"
        )

    logger.debug(
        f"[Dosing] {stage.value}: nutrient_ppm={nutrient_ppm} scale_factor={scale_factor:.4f} "
        f"volume={volume_gallons:.2f} gal"
    )

    return DosingResult(
        doses=doses,
        scale_factor=round(scale_factor, 4),
        total_ppm=nutrient_ppm,
        final_ppm=nutrient_ppm + source_water_ppm,
        needs_dilution=nutrient_ppm < 0,
    )
