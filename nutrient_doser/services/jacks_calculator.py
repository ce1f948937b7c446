"""
Jack's 3-2-1 Calculator Service.

Single stateless entry point for the dosing pipeline:
1. Symptom Analyzer (warnings + flush / underfeeding verdicts)
2. Target Concentration Resolver (luxury, enrichment, underfeed correction)
3. Manual target override, when supplied
4. Transition Advisor (only when a last feed is known)
5. Modifier Calculator
6. Dosing Resolver (grams per product for the requested volume)

Identical requests always produce identical responses; nothing is cached
or mutated between calls.
"""
from typing import Any, Dict, Union
import logging

from nutrient_doser.schemas.dosing_schemas import DosingRequest, DosingResponse
from nutrient_doser.services.dosing_resolver import resolve_dosing
from nutrient_doser.services.modifier_calculator import calculate_modifiers
from nutrient_doser.services.reference_tables import get_stage_profile
from nutrient_doser.services.symptom_analyzer import analyze_symptoms
from nutrient_doser.services.target_resolver import resolve_target_concentration
from nutrient_doser.services.transition_advisor import advise_transition
from nutrient_doser.services.units import to_gallons

logger = logging.getLogger(__name__)


class JacksCalculator:
    """
    Calculator for Jack's 3-2-1 dry nutrient doses.

    Methodology:
    1. Classify symptoms into prioritized warnings
    2. Resolve the stage target concentration
    3. Compute per-product modifiers from symptoms and root ball size
    4. Scale the stage's base grams per gallon to the target and volume
    """

    def calculate(self, request: DosingRequest) -> DosingResponse:
        """
        Perform a complete dose calculation.

        Args:
            request: Validated dosing request

        Returns:
            DosingResponse with doses, warnings, target trace and modifiers.
        """
        profile = get_stage_profile(request.stage)
        scale = request.ppm_scale

        analysis = analyze_symptoms(request.symptoms, request.stage)

        target, trace = resolve_target_concentration(
            profile,
            scale,
            enrichment_enabled=request.enrichment_enabled,
            luxury=request.luxury_uptake,
            is_underfeeding=analysis.is_underfeeding,
        )

        if request.target_concentration is not None:
            trace.override = int(request.target_concentration)
            target = trace.override
            logger.debug(f"[JacksCalculator] Manual target {target} replaces resolved {trace.underfeed_corrected}")

        transition = None
        if request.last_feed_ppm is not None:
            transition = advise_transition(
                request.last_feed_ppm,
                request.stage,
                is_first_water_of_stage=request.is_first_water_of_stage,
                scale=scale,
            )

        modifiers = calculate_modifiers(
            request.symptoms,
            request.stage,
            root_ball_size=request.root_ball_size,
            analysis=analysis,
        )

        volume_gallons = to_gallons(request.volume, request.volume_unit)
        dosing = resolve_dosing(
            request.stage,
            target,
            request.source_water_ppm,
            volume_gallons,
            modifiers=modifiers,
            scale=scale,
        )

        logger.info(
            f"[JacksCalculator] {profile.label}@{int(scale)}: target={target} ppm, "
            f"final={dosing.final_ppm} ppm, {len(analysis.warnings)} warnings"
        )

        return DosingResponse(
            stage=request.stage,
            ppm_scale=scale,
            warnings=analysis.warnings,
            dosing=dosing,
            target_concentration=target,
            trace=trace,
            modifiers=modifiers,
            ph_range=profile.ph_range,
            transition=transition,
        )


# Singleton instance
jacks_calculator = JacksCalculator()


def compute_dosing(request: Union[DosingRequest, Dict[str, Any]]) -> DosingResponse:
    """Run the dosing pipeline for a request model or a raw request dict."""
    if not isinstance(request, DosingRequest):
        request = DosingRequest.model_validate(request)
    return jacks_calculator.calculate(request)
