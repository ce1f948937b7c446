"""
Symptom Analyzer - classifies observed symptoms into prioritized warnings.

RULES (evaluated in order, first two are hard overrides):
1. Deficiency + toxicity selected for the same ion -> single conflict
   warning, nothing else is reported
2. Stage-specific advisories from the symptom tables
3. 3+ toxicity symptoms -> single flush warning, nothing else is reported
4. 3+ deficiency symptoms -> underfeeding warning (+200 ppm at same ratios)
5. Static antagonism (lockout) notices

Warnings are returned sorted by priority; ties keep insertion order.
"""
from dataclasses import dataclass, field
from typing import Iterable, List
import logging

from nutrient_doser.schemas.dosing_schemas import (
    DosingWarning,
    GrowStage,
    NutrientSymptom,
    WarningCategory,
)
from nutrient_doser.services.dosing_rules import (
    SEVERE_TOXICITY_MIN_SYMPTOMS,
    UNDERFEEDING_MIN_SYMPTOMS,
    UNDERFEED_PPM_BOOST,
)
from nutrient_doser.services.reference_tables import (
    STAGE_LABELS,
    get_antagonism_warning,
    get_symptom_adjustment,
)

logger = logging.getLogger(__name__)

ION_NAMES = {
    "N": "Nitrogen",
    "P": "Phosphorus",
    "K": "Potassium",
    "Ca": "Calcium",
    "Mg": "Magnesium",
    "S": "Sulfur",
    "Fe": "Iron",
}

# Ions that carry both a deficiency and a toxicity flag
CONFLICT_PAIRS = (
    ("N", NutrientSymptom.N_DEFICIENCY, NutrientSymptom.N_TOXICITY),
    ("P", NutrientSymptom.P_DEFICIENCY, NutrientSymptom.P_TOXICITY),
    ("K", NutrientSymptom.K_DEFICIENCY, NutrientSymptom.K_TOXICITY),
    ("Ca", NutrientSymptom.CA_DEFICIENCY, NutrientSymptom.CA_TOXICITY),
    ("Mg", NutrientSymptom.MG_DEFICIENCY, NutrientSymptom.MG_TOXICITY),
)


@dataclass
class SymptomAnalysis:
    """Warnings plus the verdicts that steer the rest of the pipeline."""
    warnings: List[DosingWarning] = field(default_factory=list)
    has_conflict: bool = False
    is_severe_toxicity: bool = False
    is_underfeeding: bool = False

    @property
    def is_flush(self) -> bool:
        """Both a conflict and severe toxicity end in a flush recommendation."""
        return self.has_conflict or self.is_severe_toxicity

    @property
    def suppresses_modifiers(self) -> bool:
        return self.is_flush or self.is_underfeeding


def _warning(message: str, priority: int, category: WarningCategory) -> DosingWarning:
    return DosingWarning(message=message, priority=priority, category=category)


def find_conflicting_ions(symptoms: Iterable[NutrientSymptom]) -> List[str]:
    """Return ions flagged as both deficient and toxic."""
    selected = set(symptoms)
    return [ion for ion, deficiency, toxicity in CONFLICT_PAIRS if deficiency in selected and toxicity in selected]


def analyze_symptoms(symptoms: Iterable[NutrientSymptom], stage: GrowStage) -> SymptomAnalysis:
    """
    Classify selected symptoms for ``stage``.

    Args:
        symptoms: Selected symptom flags (treated as a set)
        stage: Active growth stage

    Returns:
        SymptomAnalysis with sorted warnings and the conflict, severe
        toxicity and underfeeding verdicts.
    """
    stage = GrowStage(stage)
    selected = [s for s in NutrientSymptom if s in set(symptoms)]
    if not selected:
        return SymptomAnalysis()

    # 1. Conflicting evidence overrides everything
    conflicting = find_conflicting_ions(selected)
    if conflicting:
        names = ", ".join(ION_NAMES[ion] for ion in conflicting)
        logger.info(f"[SymptomAnalyzer] Conflicting symptoms for {names} - recommending flush")
        return SymptomAnalysis(
            warnings=[_warning(
                f"Conflicting symptoms selected for {names}: the same nutrient cannot be both deficient "
                f"and in excess. Flush the medium with plain pH-adjusted water, then refeed at the "
                f"stage's baseline strength and re-evaluate.",
                1,
                WarningCategory.CONFLICT,
            )],
            has_conflict=True,
        )

    warnings: List[DosingWarning] = []
    stage_label = STAGE_LABELS[stage]

    # 2. Stage-specific advisories
    for symptom in selected:
        entry = get_symptom_adjustment(stage, symptom)
        if entry.message:
            warnings.append(_warning(entry.message, 3, WarningCategory.STAGE_CONFLICT))
        if entry.requires_supplement:
            ion_name = ION_NAMES[symptom.ion]
            warnings.append(_warning(
                f"{ion_name} deficiency cannot be corrected with the {stage_label} base formula. "
                f"Use an external {ion_name.lower()} supplement instead of adjusting base nutrients.",
                2,
                WarningCategory.STAGE_CONFLICT,
            ))

    # 3. Severe toxicity stops further processing
    toxicities = [s for s in selected if s.is_toxicity]
    if len(toxicities) >= SEVERE_TOXICITY_MIN_SYMPTOMS:
        logger.info(f"[SymptomAnalyzer] {len(toxicities)} toxicity symptoms - severe toxicity, flush required")
        return SymptomAnalysis(
            warnings=[_warning(
                f"Severe toxicity: {len(toxicities)} nutrients show excess. Flush the medium with "
                f"plain pH-adjusted water before feeding again.",
                1,
                WarningCategory.FLUSH,
            )],
            is_severe_toxicity=True,
        )

    # 4. Broad deficiency means the whole feed is too weak
    is_underfeeding = False
    deficiencies = [s for s in selected if s.is_deficiency]
    if len(deficiencies) >= UNDERFEEDING_MIN_SYMPTOMS:
        is_underfeeding = True
        logger.info(f"[SymptomAnalyzer] {len(deficiencies)} deficiency symptoms - underfeeding")
        warnings.append(_warning(
            f"Multiple deficiencies ({len(deficiencies)}) point to underfeeding. Raise the target by "
            f"{UNDERFEED_PPM_BOOST} ppm and keep the mix ratios unchanged instead of tuning single nutrients.",
            3,
            WarningCategory.SEVERE,
        ))

    # 5. Lockout notices
    for symptom in selected:
        notice = get_antagonism_warning(symptom)
        if notice:
            warnings.append(_warning(notice, 4, WarningCategory.ANTAGONISM))

    warnings.sort(key=lambda w: w.priority)
    return SymptomAnalysis(warnings=warnings, is_underfeeding=is_underfeeding)
