"""Jack's 3-2-1 nutrient dosing engine."""
from nutrient_doser.services.jacks_calculator import JacksCalculator, compute_dosing, jacks_calculator

__version__ = "1.0.0"
