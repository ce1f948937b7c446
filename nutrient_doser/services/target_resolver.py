"""
Target Concentration Resolver.

Order of operations is fixed; each step feeds the next:
1. Stage baseline at the requested scale
2. Luxury uptake scaling (skipped for exempt stages)
3. Enrichment scaling, clamped to the stage ceiling
4. Underfeeding correction (+200 ppm)
"""
import math
from typing import Optional, Tuple
import logging

from nutrient_doser.schemas.dosing_schemas import LuxuryUptake, PPMAdjustmentTrace, PPMScale
from nutrient_doser.services.dosing_rules import ENRICHMENT_FACTOR, UNDERFEED_PPM_BOOST
from nutrient_doser.services.reference_tables import StageProfile

logger = logging.getLogger(__name__)


def _floor_ppm(value: float) -> int:
    # 1200 * 1.2 evaluates to 1439.999...; round away float noise before flooring
    return math.floor(round(value, 6))


def apply_luxury_uptake(value: int, profile: StageProfile, luxury: LuxuryUptake) -> int:
    if profile.exempt_from_luxury_uptake:
        return value
    if luxury.enabled and luxury.multiplier > 1:
        return _floor_ppm(value * luxury.multiplier)
    return value


def apply_enrichment(value: int, profile: StageProfile, scale: PPMScale, enrichment_enabled: bool) -> int:
    ceiling = profile.enrichment_ceiling(scale)
    if not enrichment_enabled or ceiling is None or value >= ceiling:
        return value
    return min(ceiling, _floor_ppm(value * ENRICHMENT_FACTOR))


def resolve_target_concentration(
    profile: StageProfile,
    scale: PPMScale,
    enrichment_enabled: bool = False,
    luxury: Optional[LuxuryUptake] = None,
    is_underfeeding: bool = False,
) -> Tuple[int, PPMAdjustmentTrace]:
    """
    Compute the target concentration for a stage.

    Args:
        profile: Active stage profile
        scale: Meter scale (500 or 700)
        enrichment_enabled: CO2 enrichment active
        luxury: Caller-held luxury uptake state
        is_underfeeding: Underfeeding verdict from the symptom analyzer

    Returns:
        Tuple of (target ppm, trace of each intermediate value)
    """
    luxury = luxury or LuxuryUptake()

    base = profile.concentration(scale)
    luxury_scaled = apply_luxury_uptake(base, profile, luxury)
    enrichment_scaled = apply_enrichment(luxury_scaled, profile, scale, enrichment_enabled)
    corrected = enrichment_scaled + UNDERFEED_PPM_BOOST if is_underfeeding else enrichment_scaled

    logger.debug(
        f"[TargetResolver] {profile.stage.value}@{int(scale)}: base={base} luxury={luxury_scaled} "
        f"enrichment={enrichment_scaled} final={corrected}"
    )

    trace = PPMAdjustmentTrace(
        base=base,
        luxury_scaled=luxury_scaled,
        enrichment_scaled=enrichment_scaled,
        underfeed_corrected=corrected,
    )
    return corrected, trace
