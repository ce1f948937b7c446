"""
Modifier Calculator - per-product percentage adjustments.

Root ball size applies to every product slot. Symptom adjustments are
skipped entirely while a flush or underfeeding verdict is active. Every
modifier is clamped to +/-30% after accumulation.
"""
from typing import Dict, Iterable, Optional
import logging

from nutrient_doser.schemas.dosing_schemas import (
    GrowStage,
    NutrientProduct,
    NutrientSymptom,
    RootBallSize,
)
from nutrient_doser.services.dosing_rules import MODIFIER_LIMIT
from nutrient_doser.services.reference_tables import (
    ROOT_BALL_MODIFIERS,
    get_stage_profile,
    get_symptom_adjustment,
)
from nutrient_doser.services.symptom_analyzer import SymptomAnalysis, analyze_symptoms

logger = logging.getLogger(__name__)


def clamp_modifier(value: float) -> float:
    return max(-MODIFIER_LIMIT, min(MODIFIER_LIMIT, value))


def calculate_modifiers(
    symptoms: Iterable[NutrientSymptom],
    stage: GrowStage,
    root_ball_size: RootBallSize = RootBallSize.NORMAL,
    analysis: Optional[SymptomAnalysis] = None,
) -> Dict[NutrientProduct, float]:
    """
    Calculate the signed modifier for every product dosed in ``stage``.

    Args:
        symptoms: Selected symptom flags
        stage: Active growth stage
        root_ball_size: Small root balls get a uniform reduction
        analysis: Verdicts from the symptom analyzer; computed here when omitted

    Returns:
        Dict of product -> modifier in [-0.30, +0.30]
    """
    stage = GrowStage(stage)
    profile = get_stage_profile(stage)
    selected = [s for s in NutrientSymptom if s in set(symptoms)]
    if analysis is None:
        analysis = analyze_symptoms(selected, stage)

    baseline = ROOT_BALL_MODIFIERS[RootBallSize(root_ball_size)]
    modifiers = {product: baseline for product in profile.products}

    if analysis.suppresses_modifiers:
        logger.debug(f"[Modifiers] {stage.value}: symptom modifiers suppressed by flush/underfeed verdict")
    else:
        for symptom in selected:
            entry = get_symptom_adjustment(stage, symptom)
            if entry.product is None or entry.adjustment == 0:
                continue
            modifiers[entry.product] += entry.adjustment

    return {product: round(clamp_modifier(value), 4) for product, value in modifiers.items()}
