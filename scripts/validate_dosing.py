#!/usr/bin/env python3
"""
Jack's 3-2-1 Dosing Validation Script
Runs randomized requests through the pipeline and checks the properties
every response must hold.
"""
import sys
import os
import random
import json
import logging
from typing import Dict, List, Any

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from nutrient_doser.schemas.dosing_schemas import (
    DosingRequest,
    GrowStage,
    NutrientSymptom,
    PPMScale,
    RootBallSize,
    VolumeUnit,
    WarningCategory,
)
from nutrient_doser.services.dosing_rules import MODIFIER_LIMIT
from nutrient_doser.services.jacks_calculator import compute_dosing
from nutrient_doser.services.symptom_analyzer import find_conflicting_ions

logger = logging.getLogger("validate_dosing")

SOURCE_WATERS = [0, 0, 35, 80, 150, 220, 400, 1500]
VOLUMES = [
    (1, VolumeUnit.GALLONS),
    (5, VolumeUnit.GALLONS),
    (20, VolumeUnit.GALLONS),
    (10, VolumeUnit.LITERS),
    (64, VolumeUnit.FLUID_OUNCES),
    (4, VolumeUnit.CUPS),
    (500, VolumeUnit.MILLILITERS),
]


def random_request(rng: random.Random) -> DosingRequest:
    volume, unit = rng.choice(VOLUMES)
    symptoms = rng.sample(list(NutrientSymptom), rng.randint(0, 5))
    last_feed = rng.choice([None, None, 600, 1100, 1500, 2400, 3200])
    return DosingRequest(
        stage=rng.choice(list(GrowStage)),
        ppm_scale=rng.choice(list(PPMScale)),
        enrichment_enabled=rng.random() < 0.4,
        volume=volume,
        volume_unit=unit,
        source_water_ppm=rng.choice(SOURCE_WATERS),
        symptoms=symptoms,
        root_ball_size=rng.choice(list(RootBallSize)),
        luxury_uptake={"enabled": rng.random() < 0.3, "multiplier": rng.choice([1.0, 1.2, 1.5, 1.8])},
        last_feed_ppm=last_feed,
        is_first_water_of_stage=rng.random() < 0.3,
    )


def check_response(request: DosingRequest) -> List[str]:
    """Return the list of property violations for one request."""
    issues = []
    first = compute_dosing(request)
    second = compute_dosing(request)
    if first.model_dump_json() != second.model_dump_json():
        issues.append("Non-deterministic output")

    for product, value in first.modifiers.items():
        if abs(value) > MODIFIER_LIMIT + 1e-9:
            issues.append(f"Modifier out of band: {product.value}={value}")

    if request.stage == GrowStage.FLUSH:
        if any(dose.grams != 0 for dose in first.dosing.doses.values()):
            issues.append("Flush stage produced a dose")
        if first.dosing.final_ppm != request.source_water_ppm:
            issues.append("Flush stage changed final ppm")

    if find_conflicting_ions(request.symptoms):
        categories = [w.category for w in first.warnings]
        if categories != [WarningCategory.CONFLICT]:
            issues.append(f"Conflict did not short-circuit: {[c.value for c in categories]}")

    priorities = [w.priority for w in first.warnings]
    if priorities != sorted(priorities):
        issues.append("Warnings not sorted by priority")

    return issues


def run_validation(num_tests: int = 500, seed: int = 42) -> Dict[str, Any]:
    rng = random.Random(seed)
    stats = {
        "total_tests": num_tests,
        "successful": 0,
        "failed": 0,
        "needs_dilution": 0,
        "transition_advice": 0,
        "by_stage": {stage.value: 0 for stage in GrowStage},
    }
    anomalies = []

    for i in range(num_tests):
        request = random_request(rng)
        stats["by_stage"][request.stage.value] += 1
        try:
            issues = check_response(request)
            response = compute_dosing(request)
        except Exception as e:
            stats["failed"] += 1
            anomalies.append({"test_id": i + 1, "issue": "Calculation error", "error": str(e)})
            continue

        if response.dosing.needs_dilution:
            stats["needs_dilution"] += 1
        if response.transition and response.transition.recommends_luxury_uptake:
            stats["transition_advice"] += 1

        if issues:
            stats["failed"] += 1
            anomalies.append({
                "test_id": i + 1,
                "issues": issues,
                "request": request.model_dump(mode="json"),
            })
        else:
            stats["successful"] += 1

    stats["anomalies"] = len(anomalies)
    return {"stats": stats, "anomalies": anomalies}


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    validation = run_validation(num_tests=500, seed=42)
    print(json.dumps(validation, indent=2))

    if validation["stats"]["failed"]:
        logger.error(f"{validation['stats']['failed']} scenarios violated dosing properties")
        sys.exit(1)
