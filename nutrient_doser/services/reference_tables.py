"""
Reference tables for the Jack's 3-2-1 dosing engine.

Holds the static agronomic data every pipeline stage reads:
- Stage profiles (target ppm at both meter scales, dosed products,
  enrichment ceiling, pH optimum, mix ratio, base grams per gallon)
- PPM contributed per gram per gallon of each product
- Root ball size modifiers
- Symptom adjustment tables, generated from a base table plus per-stage
  overrides and checked for full stage x symptom coverage at import time
- Stage-independent antagonism (lockout) notices

All tables are immutable; nothing here is mutated after import.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple
import logging

from nutrient_doser.schemas.dosing_schemas import (
    GrowStage,
    NutrientSymptom,
    NutrientProduct,
    PPMScale,
    RootBallSize,
)
from nutrient_doser.services.dosing_rules import PPM_700_RATIO, SMALL_ROOT_BALL_MODIFIER

logger = logging.getLogger(__name__)


class ReferenceTableError(Exception):
    """Raised when the reference tables are incomplete or inconsistent."""
    pass


# =============================================================================
# STAGE PROFILES
# =============================================================================

STAGE_ORDER: Tuple[GrowStage, ...] = (
    GrowStage.PROPAGATION,
    GrowStage.VEGETATIVE,
    GrowStage.BUD_SET,
    GrowStage.FLOWER,
    GrowStage.LATE_FLOWER,
    GrowStage.FLUSH,
)

STAGE_LABELS = {
    GrowStage.PROPAGATION: "Propagation",
    GrowStage.VEGETATIVE: "Vegetative",
    GrowStage.BUD_SET: "Bud Set",
    GrowStage.FLOWER: "Flower",
    GrowStage.LATE_FLOWER: "Late Flower",
    GrowStage.FLUSH: "Flush",
}

# Symptom adjustments target a product role; each stage maps roles to the
# product that fills it (None when the stage has no such product).
ROLE_PRIMARY = "primary"
ROLE_CALCIUM_NITRATE = "calcium_nitrate"
ROLE_MAGNESIUM = "magnesium"


@dataclass(frozen=True)
class StageProfile:
    """Immutable feeding profile for one growth stage."""
    stage: GrowStage
    ppm_500: int
    ppm_700: int
    base_grams_per_gallon: Mapping[NutrientProduct, float]
    roles: Mapping[str, Optional[NutrientProduct]]
    ph_range: Tuple[float, float]
    mix_ratio: Mapping[NutrientProduct, int] = field(default_factory=dict)
    enrichment_ceiling_500: Optional[int] = None
    enrichment_ceiling_700: Optional[int] = None
    exempt_from_luxury_uptake: bool = False

    @property
    def label(self) -> str:
        return STAGE_LABELS[self.stage]

    @property
    def products(self) -> Tuple[NutrientProduct, ...]:
        """Products dosed in this stage, in display order."""
        return tuple(self.base_grams_per_gallon.keys())

    def concentration(self, scale: PPMScale) -> int:
        """Full-strength target concentration at ``scale``."""
        return self.ppm_700 if PPMScale(scale) == PPMScale.PPM_700 else self.ppm_500

    def enrichment_ceiling(self, scale: PPMScale) -> Optional[int]:
        if PPMScale(scale) == PPMScale.PPM_700:
            return self.enrichment_ceiling_700
        return self.enrichment_ceiling_500

    def to_dict(self) -> Dict:
        return {
            "stage": self.stage.value,
            "label": self.label,
            "ppm_500": self.ppm_500,
            "ppm_700": self.ppm_700,
            "products": [p.value for p in self.products],
            "base_grams_per_gallon": {p.value: g for p, g in self.base_grams_per_gallon.items()},
            "enrichment_ceiling_500": self.enrichment_ceiling_500,
            "enrichment_ceiling_700": self.enrichment_ceiling_700,
            "ph_range": list(self.ph_range),
            "mix_ratio": {p.value: r for p, r in self.mix_ratio.items()},
        }


def _profile(stage: GrowStage, ppm_500: int, grams: Dict[NutrientProduct, float], roles: Dict[str, Optional[NutrientProduct]], ph_range: Tuple[float, float], mix_ratio: Dict[NutrientProduct, int], ceiling_500: Optional[int] = None, exempt: bool = False) -> StageProfile:
    return StageProfile(
        stage=stage,
        ppm_500=ppm_500,
        ppm_700=round(ppm_500 * PPM_700_RATIO),
        base_grams_per_gallon=MappingProxyType(grams),
        roles=MappingProxyType(roles),
        ph_range=ph_range,
        mix_ratio=MappingProxyType(mix_ratio),
        enrichment_ceiling_500=ceiling_500,
        enrichment_ceiling_700=round(ceiling_500 * PPM_700_RATIO) if ceiling_500 else None,
        exempt_from_luxury_uptake=exempt,
    )


_A, _B, _E = NutrientProduct.PART_A, NutrientProduct.PART_B, NutrientProduct.EPSOM
_BLOOM, _FINISH = NutrientProduct.BLOOM, NutrientProduct.FINISH

_THREE_PART_ROLES = {ROLE_PRIMARY: _A, ROLE_CALCIUM_NITRATE: _B, ROLE_MAGNESIUM: _E}

STAGE_PROFILES: Mapping[GrowStage, StageProfile] = MappingProxyType({
    GrowStage.PROPAGATION: _profile(
        GrowStage.PROPAGATION, 500,
        # Epsom is left out of the seedling formula
        {_A: 1.60, _B: 1.52, _E: 0.0},
        _THREE_PART_ROLES,
        (5.8, 6.2),
        {_A: 1, _B: 1, _E: 0},
        exempt=True,
    ),
    GrowStage.VEGETATIVE: _profile(
        GrowStage.VEGETATIVE, 1200,
        {_A: 3.79, _B: 2.52, _E: 1.26},
        _THREE_PART_ROLES,
        (5.8, 6.2),
        {_A: 3, _B: 2, _E: 1},
        ceiling_500=1400,
    ),
    GrowStage.BUD_SET: _profile(
        GrowStage.BUD_SET, 1100,
        {_BLOOM: 6.00, _E: 1.26},
        {ROLE_PRIMARY: _BLOOM, ROLE_CALCIUM_NITRATE: None, ROLE_MAGNESIUM: _E},
        (5.9, 6.3),
        {_BLOOM: 5, _E: 1},
        ceiling_500=1300,
    ),
    GrowStage.FLOWER: _profile(
        GrowStage.FLOWER, 1200,
        {_A: 3.79, _B: 2.52, _E: 1.26},
        _THREE_PART_ROLES,
        (6.0, 6.4),
        {_A: 3, _B: 2, _E: 1},
        ceiling_500=1500,
    ),
    GrowStage.LATE_FLOWER: _profile(
        GrowStage.LATE_FLOWER, 900,
        {_FINISH: 5.00, _E: 1.26},
        {ROLE_PRIMARY: _FINISH, ROLE_CALCIUM_NITRATE: None, ROLE_MAGNESIUM: _E},
        (6.0, 6.5),
        {_FINISH: 4, _E: 1},
    ),
    GrowStage.FLUSH: _profile(
        GrowStage.FLUSH, 0,
        {},
        {ROLE_PRIMARY: None, ROLE_CALCIUM_NITRATE: None, ROLE_MAGNESIUM: None},
        (6.0, 6.5),
        {},
        exempt=True,
    ),
})

# PPM added per gram per gallon, 500 scale
PPM_PER_GRAM_500: Mapping[NutrientProduct, float] = MappingProxyType({
    NutrientProduct.PART_A: 153.0,
    NutrientProduct.PART_B: 167.0,
    NutrientProduct.EPSOM: 159.0,
    NutrientProduct.BLOOM: 150.0,
    NutrientProduct.FINISH: 140.0,
})

ROOT_BALL_MODIFIERS: Mapping[RootBallSize, float] = MappingProxyType({
    RootBallSize.SMALL: SMALL_ROOT_BALL_MODIFIER,
    RootBallSize.NORMAL: 0.0,
})


# =============================================================================
# SYMPTOM ADJUSTMENT TABLES
# =============================================================================

@dataclass(frozen=True)
class SymptomAdjustment:
    """Stage-specific response to one symptom."""
    adjustment: float = 0.0
    product: Optional[NutrientProduct] = None
    message: Optional[str] = None
    requires_supplement: bool = False


@dataclass(frozen=True)
class _BaseEntry:
    adjustment: float
    role: Optional[str]
    message: Optional[str] = None
    requires_supplement: bool = False


_S = NutrientSymptom

SYMPTOM_BASE_TABLE: Mapping[NutrientSymptom, _BaseEntry] = MappingProxyType({
    _S.N_DEFICIENCY: _BaseEntry(0.15, ROLE_CALCIUM_NITRATE),
    _S.N_TOXICITY: _BaseEntry(-0.20, ROLE_CALCIUM_NITRATE),
    _S.P_DEFICIENCY: _BaseEntry(0.10, ROLE_PRIMARY),
    _S.P_TOXICITY: _BaseEntry(-0.15, ROLE_PRIMARY),
    _S.K_DEFICIENCY: _BaseEntry(0.15, ROLE_PRIMARY),
    _S.K_TOXICITY: _BaseEntry(-0.15, ROLE_PRIMARY),
    _S.CA_DEFICIENCY: _BaseEntry(0.10, ROLE_CALCIUM_NITRATE),
    _S.CA_TOXICITY: _BaseEntry(-0.15, ROLE_CALCIUM_NITRATE),
    _S.MG_DEFICIENCY: _BaseEntry(0.25, ROLE_MAGNESIUM),
    _S.MG_TOXICITY: _BaseEntry(-0.25, ROLE_MAGNESIUM),
    _S.S_DEFICIENCY: _BaseEntry(0.10, ROLE_MAGNESIUM),
    _S.FE_DEFICIENCY: _BaseEntry(
        0.0, None,
        "Iron is not adjustable through the base formula.",
        requires_supplement=True,
    ),
})

_NO_CALCIUM_SOURCE = "This stage's formula has no calcium source."

STAGE_SYMPTOM_OVERRIDES: Mapping[GrowStage, Mapping[NutrientSymptom, SymptomAdjustment]] = MappingProxyType({
    GrowStage.PROPAGATION: {
        _S.MG_DEFICIENCY: SymptomAdjustment(
            message="Epsom is not dosed during propagation; seedlings draw magnesium from the starter media.",
        ),
        _S.MG_TOXICITY: SymptomAdjustment(
            message="Epsom is not dosed during propagation; check the starter media for excess magnesium.",
        ),
        _S.S_DEFICIENCY: SymptomAdjustment(
            message="Epsom is not dosed during propagation; sulfur usually recovers after transplant.",
        ),
    },
    GrowStage.BUD_SET: {
        _S.N_DEFICIENCY: SymptomAdjustment(
            message="Bloom is low in nitrogen; mild lower-leaf yellowing is expected during bud set.",
        ),
        _S.N_TOXICITY: SymptomAdjustment(adjustment=-0.10, product=NutrientProduct.BLOOM),
        _S.CA_DEFICIENCY: SymptomAdjustment(message=_NO_CALCIUM_SOURCE, requires_supplement=True),
        _S.CA_TOXICITY: SymptomAdjustment(
            message="Bloom adds no calcium; excess calcium is coming from source water or media.",
        ),
    },
    GrowStage.LATE_FLOWER: {
        _S.N_DEFICIENCY: SymptomAdjustment(
            message="Nitrogen fade is expected in late flower; do not raise nitrogen before harvest.",
        ),
        _S.N_TOXICITY: SymptomAdjustment(
            adjustment=-0.20,
            product=NutrientProduct.FINISH,
            message="Late flower should run lean on nitrogen; consider starting the flush early.",
        ),
        _S.CA_DEFICIENCY: SymptomAdjustment(message=_NO_CALCIUM_SOURCE, requires_supplement=True),
        _S.CA_TOXICITY: SymptomAdjustment(
            message="Finish adds no calcium; excess calcium is coming from source water or media.",
        ),
    },
    GrowStage.FLUSH: {
        _S.FE_DEFICIENCY: SymptomAdjustment(
            message="Iron fade during the flush is expected as the plant draws down reserves.",
        ),
    },
})


def _resolve_base_entry(profile: StageProfile, entry: _BaseEntry) -> SymptomAdjustment:
    product = profile.roles.get(entry.role) if entry.role else None
    if product is None:
        # Placeholder: no product fills this role in the stage
        return SymptomAdjustment(message=entry.message, requires_supplement=entry.requires_supplement)
    return SymptomAdjustment(
        adjustment=entry.adjustment,
        product=product,
        message=entry.message,
        requires_supplement=entry.requires_supplement,
    )


def build_symptom_tables(
    profiles: Mapping[GrowStage, StageProfile] = STAGE_PROFILES,
    base_table: Mapping[NutrientSymptom, _BaseEntry] = SYMPTOM_BASE_TABLE,
    overrides: Mapping[GrowStage, Mapping[NutrientSymptom, SymptomAdjustment]] = STAGE_SYMPTOM_OVERRIDES,
) -> Mapping[GrowStage, Mapping[NutrientSymptom, SymptomAdjustment]]:
    """
    Generate the stage x symptom adjustment table.

    Raises:
        ReferenceTableError: if a stage or symptom has no entry, or an entry
            adjusts a product the stage does not dose.
    """
    missing_symptoms = [s.value for s in NutrientSymptom if s not in base_table]
    if missing_symptoms:
        raise ReferenceTableError(f"Base symptom table missing: {', '.join(missing_symptoms)}")

    tables = {}
    for stage in GrowStage:
        profile = profiles.get(stage)
        if profile is None:
            raise ReferenceTableError(f"No stage profile for {stage.value}")

        stage_overrides = overrides.get(stage, {})
        table = {}
        for symptom in NutrientSymptom:
            if symptom in stage_overrides:
                entry = stage_overrides[symptom]
            else:
                entry = _resolve_base_entry(profile, base_table[symptom])

            if entry.product is not None and entry.product not in profile.products:
                raise ReferenceTableError(
                    f"{stage.value}/{symptom.value} adjusts {entry.product.value}, "
                    f"which is not dosed in this stage"
                )
            table[symptom] = entry
        tables[stage] = MappingProxyType(table)

    logger.debug(f"[ReferenceTables] Built {len(tables)} stage tables x {len(NutrientSymptom)} symptoms")
    return MappingProxyType(tables)


SYMPTOM_TABLES = build_symptom_tables()


# =============================================================================
# ANTAGONISM NOTICES (stage independent)
# =============================================================================

ANTAGONISM_WARNINGS: Mapping[NutrientSymptom, str] = MappingProxyType({
    _S.N_TOXICITY: "Excess nitrogen can antagonize potassium and calcium uptake.",
    _S.P_TOXICITY: "Excess phosphorus can lock out zinc and iron.",
    _S.K_TOXICITY: "Excess potassium can lock out calcium and magnesium.",
    _S.CA_TOXICITY: "Excess calcium can lock out magnesium and potassium.",
    _S.MG_TOXICITY: "Excess magnesium can lock out calcium and potassium.",
    _S.FE_DEFICIENCY: "Iron deficiency is often a pH lockout; verify root-zone pH before supplementing.",
})


# =============================================================================
# LOOKUPS
# =============================================================================

def get_stage_profile(stage: GrowStage) -> StageProfile:
    """Return the profile for ``stage``. Unknown stages raise ``KeyError``."""
    return STAGE_PROFILES[stage]


def get_symptom_adjustment(stage: GrowStage, symptom: NutrientSymptom) -> SymptomAdjustment:
    return SYMPTOM_TABLES[GrowStage(stage)][NutrientSymptom(symptom)]


def get_antagonism_warning(symptom: NutrientSymptom) -> Optional[str]:
    return ANTAGONISM_WARNINGS.get(symptom)


def get_ppm_per_gram(product: NutrientProduct, scale: PPMScale) -> float:
    """PPM added per gram per gallon of ``product`` read at ``scale``."""
    ppm = PPM_PER_GRAM_500[product]
    if PPMScale(scale) == PPMScale.PPM_700:
        return ppm * PPM_700_RATIO
    return ppm


def previous_stage(stage: GrowStage) -> GrowStage:
    """Stage fed before ``stage``; Propagation is its own predecessor."""
    index = STAGE_ORDER.index(GrowStage(stage))
    return STAGE_ORDER[max(0, index - 1)]


def next_stage(stage: GrowStage) -> GrowStage:
    """Stage fed after ``stage``; Flush is its own successor."""
    index = STAGE_ORDER.index(GrowStage(stage))
    return STAGE_ORDER[min(len(STAGE_ORDER) - 1, index + 1)]


def list_stage_profiles() -> List[Dict]:
    """Get all stage profiles as plain dicts, in feeding order."""
    return [STAGE_PROFILES[stage].to_dict() for stage in STAGE_ORDER]
