"""
Feed log records for computed doses.

Builds the plain record the hosting application stores after a dose is
mixed. Nothing here persists anything; the caller owns storage.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from nutrient_doser.schemas.dosing_schemas import DosingRequest, DosingResponse, NutrientProduct, VolumeUnit
from nutrient_doser.services.units import ML_PER_UNIT, convert_volume

# Epsom is logged as the "Part C" column
PRODUCT_LOG_KEYS = {
    NutrientProduct.PART_A: "part_a_ppm",
    NutrientProduct.PART_B: "part_b_ppm",
    NutrientProduct.EPSOM: "part_c_ppm",
    NutrientProduct.BLOOM: "bloom_ppm",
    NutrientProduct.FINISH: "finish_ppm",
}

PRODUCT_NAMES = {
    NutrientProduct.PART_A: "Part A (5-12-26)",
    NutrientProduct.PART_B: "Part B (Calcium Nitrate)",
    NutrientProduct.EPSOM: "Epsom Salt",
    NutrientProduct.BLOOM: "Bloom (10-30-20)",
    NutrientProduct.FINISH: "Finish (0-12-26)",
}


def build_feed_log(
    request: DosingRequest,
    response: DosingResponse,
    log_date: Optional[Union[date, datetime]] = None,
    notes: str = "",
) -> Dict[str, Any]:
    """
    Build a FEEDING log record from a computed dose.

    Args:
        request: The request the dose was computed from
        response: The computed dose
        log_date: Date of the feeding; defaults to today
        notes: Free-text grower notes

    Returns:
        Plain dict safe to serialize as JSON. Products not dosed in the
        stage log ``None`` for their ppm key.
    """
    log_date = log_date or date.today()
    water_amount_ml = convert_volume(request.volume, request.volume_unit, VolumeUnit.MILLILITERS)

    record = {
        "date": log_date.isoformat(),
        "type": "FEEDING",
        "stage": response.stage.value,
        "water_amount_ml": round(water_amount_ml, 1),
        "water_ppm": request.source_water_ppm,
    }
    for product, key in PRODUCT_LOG_KEYS.items():
        dose = response.dosing.doses.get(product)
        record[key] = dose.ppm_contributed if dose else None

    record["nutrients"] = [
        {"name": PRODUCT_NAMES[product], "grams": dose.grams}
        for product, dose in response.dosing.doses.items()
    ]
    record["final_ppm"] = response.dosing.final_ppm
    record["target_ppm"] = response.target_concentration
    record["ppm_scale"] = int(response.ppm_scale)
    record["notes"] = notes or ""
    return record


def water_amount_in(record: Dict[str, Any], unit: VolumeUnit) -> float:
    """Read a log record's water amount back in ``unit``."""
    return record.get("water_amount_ml", 0.0) / ML_PER_UNIT[VolumeUnit(unit)]
