"""Volume conversions used when dosing per gallon."""
from nutrient_doser.schemas.dosing_schemas import VolumeUnit

ML_PER_UNIT = {
    VolumeUnit.MILLILITERS: 1.0,
    VolumeUnit.LITERS: 1000.0,
    VolumeUnit.FLUID_OUNCES: 29.5735,
    VolumeUnit.CUPS: 236.588,
    VolumeUnit.GALLONS: 3785.41,
}

UNIT_LABELS = {
    VolumeUnit.MILLILITERS: "mL",
    VolumeUnit.LITERS: "L",
    VolumeUnit.FLUID_OUNCES: "fl oz",
    VolumeUnit.CUPS: "cups",
    VolumeUnit.GALLONS: "gal",
}


def convert_volume(value: float, from_unit: VolumeUnit, to_unit: VolumeUnit) -> float:
    """Convert ``value`` between volume units via milliliters."""
    from_unit, to_unit = VolumeUnit(from_unit), VolumeUnit(to_unit)
    if from_unit == to_unit:
        return value
    ml_value = value * ML_PER_UNIT[from_unit]
    return ml_value / ML_PER_UNIT[to_unit]


def to_gallons(value: float, unit: VolumeUnit) -> float:
    return convert_volume(value, unit, VolumeUnit.GALLONS)


def format_measurement(value: float, unit: VolumeUnit) -> str:
    """Format a volume rounded to 2 decimals with its unit label, e.g. ``'5.0 gal'``."""
    label = UNIT_LABELS[VolumeUnit(unit)]
    return f"{round(value, 2)} {label}"
