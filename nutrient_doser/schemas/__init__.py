from nutrient_doser.schemas.dosing_schemas import (
    GrowStage,
    NutrientSymptom,
    PPMScale,
    RootBallSize,
    NutrientProduct,
    WarningCategory,
    VolumeUnit,
    DosingWarning,
    LuxuryUptake,
    NutrientDose,
    DosingResult,
    PPMAdjustmentTrace,
    TransitionAdvice,
    DosingRequest,
    DosingResponse,
)
