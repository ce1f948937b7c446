"""
Pydantic schemas for the Jack's 3-2-1 dosing engine.
Includes the calculation request/response contracts and shared enums.
"""
import math
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Tuple, Any
from enum import Enum


# ==================== ENUMS ====================

class GrowStage(str, Enum):
    """Growth stages in feeding order."""
    PROPAGATION = "propagation"
    VEGETATIVE = "vegetative"
    BUD_SET = "bud_set"
    FLOWER = "flower"
    LATE_FLOWER = "late_flower"
    FLUSH = "flush"


class NutrientSymptom(str, Enum):
    """Observed deficiency / toxicity flags.

    N, P, K, Ca and Mg carry both flags; S and Fe only have a deficiency flag.
    """
    N_DEFICIENCY = "n_deficiency"
    N_TOXICITY = "n_toxicity"
    P_DEFICIENCY = "p_deficiency"
    P_TOXICITY = "p_toxicity"
    K_DEFICIENCY = "k_deficiency"
    K_TOXICITY = "k_toxicity"
    CA_DEFICIENCY = "ca_deficiency"
    CA_TOXICITY = "ca_toxicity"
    MG_DEFICIENCY = "mg_deficiency"
    MG_TOXICITY = "mg_toxicity"
    S_DEFICIENCY = "s_deficiency"
    FE_DEFICIENCY = "fe_deficiency"

    @property
    def ion(self) -> str:
        return self.value.split("_")[0].capitalize()

    @property
    def is_deficiency(self) -> bool:
        return self.value.endswith("_deficiency")

    @property
    def is_toxicity(self) -> bool:
        return self.value.endswith("_toxicity")


class PPMScale(int, Enum):
    """TDS meter conversion factor."""
    PPM_500 = 500
    PPM_700 = 700


class RootBallSize(str, Enum):
    """Root ball size relative to container."""
    SMALL = "small"
    NORMAL = "normal"


class NutrientProduct(str, Enum):
    """Dry products dosed by the calculator."""
    PART_A = "part_a"
    PART_B = "part_b"
    EPSOM = "epsom"
    BLOOM = "bloom"
    FINISH = "finish"


class WarningCategory(str, Enum):
    """Warning categories, highest urgency first."""
    FLUSH = "flush"
    CONFLICT = "conflict"
    SEVERE = "severe"
    ANTAGONISM = "antagonism"
    NOTICE = "notice"
    STAGE_CONFLICT = "stage-conflict"


class VolumeUnit(str, Enum):
    """Water volume units."""
    MILLILITERS = "MILLILITERS"
    LITERS = "LITERS"
    FLUID_OUNCES = "FLUID_OUNCES"
    CUPS = "CUPS"
    GALLONS = "GALLONS"


# ==================== SHARED RESULT SCHEMAS ====================

class DosingWarning(BaseModel):
    """Prioritized warning. Priority 1 is the most urgent, 5 the least."""
    message: str
    priority: int = Field(..., ge=1, le=5)
    category: WarningCategory


class LuxuryUptake(BaseModel):
    """Luxury uptake scaling state held by the caller."""
    enabled: bool = False
    multiplier: float = Field(default=1.0, description="Scaling applied to the stage baseline when enabled")

    @field_validator("multiplier", mode="before")
    @classmethod
    def _coerce_multiplier(cls, value: Any) -> float:
        number = coerce_number(value)
        return number if number > 0 else 1.0


class NutrientDose(BaseModel):
    """Mass and concentration contribution for one product."""
    grams: float
    ppm_contributed: float


class DosingResult(BaseModel):
    """Per-product doses plus solution totals."""
    doses: Dict[NutrientProduct, NutrientDose] = Field(default_factory=dict)
    scale_factor: float = 0.0
    total_ppm: float = Field(..., description="Nutrient-only concentration (target minus source water)")
    final_ppm: float = Field(..., description="Total solution concentration")
    needs_dilution: bool = Field(default=False, description="Source water already exceeds the target")


class PPMAdjustmentTrace(BaseModel):
    """Staged transformation of the stage baseline, for display only."""
    base: int
    luxury_scaled: int
    enrichment_scaled: int
    underfeed_corrected: int
    override: Optional[int] = None


class TransitionAdvice(BaseModel):
    """Luxury uptake recommendation derived from the last feed."""
    reference_stage: GrowStage
    reference_concentration: int
    last_feed_concentration: float
    multiplier: float = 1.0
    ratio: Optional[float] = None
    advisory: Optional[str] = None
    warning: Optional[DosingWarning] = None

    @property
    def recommends_luxury_uptake(self) -> bool:
        return self.multiplier > 1.0


# ==================== REQUEST / RESPONSE ====================

def coerce_number(value: Any) -> float:
    """Return ``value`` as a finite float, or 0 for blank / invalid input."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


class DosingRequest(BaseModel):
    """Request schema for a Jack's 3-2-1 dose calculation."""
    stage: GrowStage
    ppm_scale: PPMScale = Field(default=PPMScale.PPM_500, description="Meter scale used for every concentration")
    enrichment_enabled: bool = Field(default=False, description="CO2 enrichment active in the room")

    volume: float = Field(default=1.0, description="Water volume to dose")
    volume_unit: VolumeUnit = Field(default=VolumeUnit.GALLONS)
    source_water_ppm: float = Field(default=0.0, description="Source water reading at ppm_scale")

    symptoms: List[NutrientSymptom] = Field(default_factory=list, description="Observed symptoms (duplicates ignored)")
    root_ball_size: RootBallSize = Field(default=RootBallSize.NORMAL)
    luxury_uptake: LuxuryUptake = Field(default_factory=LuxuryUptake)

    # Caller-editable target; None means use the resolved target
    target_concentration: Optional[float] = Field(None, description="Manual target override")

    last_feed_ppm: Optional[float] = Field(None, description="Concentration of the previous feed")
    is_first_water_of_stage: bool = False

    @field_validator("volume", "source_water_ppm", mode="before")
    @classmethod
    def _coerce_required_number(cls, value: Any) -> float:
        return coerce_number(value)

    @field_validator("target_concentration", "last_feed_ppm", mode="before")
    @classmethod
    def _coerce_optional_number(cls, value: Any) -> Optional[float]:
        # A cleared form field means "not supplied"
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return coerce_number(value)

    @field_validator("symptoms", mode="after")
    @classmethod
    def _canonical_symptoms(cls, value: List[NutrientSymptom]) -> List[NutrientSymptom]:
        # Symptoms are a set; keep declaration order so warning order is stable
        selected = set(value)
        return [symptom for symptom in NutrientSymptom if symptom in selected]


class DosingResponse(BaseModel):
    """Response schema for a Jack's 3-2-1 dose calculation."""
    stage: GrowStage
    ppm_scale: PPMScale
    warnings: List[DosingWarning]
    dosing: DosingResult
    target_concentration: int
    trace: PPMAdjustmentTrace
    modifiers: Dict[NutrientProduct, float]
    ph_range: Tuple[float, float]
    transition: Optional[TransitionAdvice] = None
