"""
Transition / Luxury-Uptake Advisor.

Compares the last feed against the stage baseline (or the previous stage's
baseline on the first water of a new stage). When the last feed ran more
than 150 ppm hot, recommends a luxury uptake multiplier capped at 1.8 so
the concentration steps down instead of dropping abruptly.

The advisor only reports; applying the multiplier is up to the caller.
"""
import logging

from nutrient_doser.schemas.dosing_schemas import (
    DosingWarning,
    GrowStage,
    PPMScale,
    TransitionAdvice,
    WarningCategory,
)
from nutrient_doser.services.dosing_rules import LUXURY_UPTAKE_MARGIN_PPM, LUXURY_UPTAKE_MAX_MULTIPLIER
from nutrient_doser.services.reference_tables import STAGE_LABELS, get_stage_profile, previous_stage

logger = logging.getLogger(__name__)


def advise_transition(
    last_feed_ppm: float,
    stage: GrowStage,
    is_first_water_of_stage: bool = False,
    scale: PPMScale = PPMScale.PPM_500,
) -> TransitionAdvice:
    """
    Recommend a luxury uptake multiplier from the last recorded feed.

    Args:
        last_feed_ppm: Concentration of the previous feed at ``scale``
        stage: Active growth stage
        is_first_water_of_stage: Compare against the previous stage's baseline
        scale: Meter scale

    Returns:
        TransitionAdvice; multiplier is 1 and advisory empty when no step-down is needed.
    """
    stage = GrowStage(stage)
    reference_stage = previous_stage(stage) if is_first_water_of_stage else stage
    reference = get_stage_profile(reference_stage).concentration(scale)

    advice = TransitionAdvice(
        reference_stage=reference_stage,
        reference_concentration=reference,
        last_feed_concentration=last_feed_ppm,
    )

    if reference <= 0 or last_feed_ppm <= reference + LUXURY_UPTAKE_MARGIN_PPM:
        return advice

    ratio = last_feed_ppm / reference
    multiplier = min(ratio, LUXURY_UPTAKE_MAX_MULTIPLIER)
    advice.ratio = ratio
    advice.multiplier = multiplier
    advice.advisory = (
        f"Last feed was {last_feed_ppm:g} ppm, {ratio:.2f}x the {STAGE_LABELS[reference_stage]} "
        f"baseline of {reference} ppm. Enable luxury uptake scaling at {multiplier:.2f}x "
        f"to step the feed down gradually."
    )
    logger.info(f"[Transition] {stage.value}: last feed ratio {ratio:.2f} -> multiplier {multiplier:.2f}")

    if advice.multiplier >= LUXURY_UPTAKE_MAX_MULTIPLIER:
        advice.warning = DosingWarning(
            message=(
                f"Last feed ran {ratio:.2f}x the baseline. Luxury uptake is capped at "
                f"{LUXURY_UPTAKE_MAX_MULTIPLIER}x; check runoff for salt buildup before feeding this hot again."
            ),
            priority=2,
            category=WarningCategory.NOTICE,
        )

    return advice
