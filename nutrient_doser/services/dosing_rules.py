"""
Deterministic dosing rules and thresholds for the Jack's 3-2-1 calculator.

This module centralizes constants so the dosing pipeline can remain
deterministic, auditable, and consistent across services and tests.
"""

ENRICHMENT_FACTOR = 1.20
UNDERFEED_PPM_BOOST = 200

MODIFIER_LIMIT = 0.30
SMALL_ROOT_BALL_MODIFIER = -0.15

LUXURY_UPTAKE_MARGIN_PPM = 150
LUXURY_UPTAKE_MAX_MULTIPLIER = 1.8

SEVERE_TOXICITY_MIN_SYMPTOMS = 3
UNDERFEEDING_MIN_SYMPTOMS = 3

# 700-scale meters read the same solution 1.4x higher than 500-scale meters
PPM_700_RATIO = 700 / 500

GRAMS_DECIMALS = 2
PPM_DECIMALS = 1
