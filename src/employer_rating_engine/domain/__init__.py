"""Domain modules for the rating engine."""

from .discrepancy import DiscrepancyResult, detect_discrepancy
from .profile_validation import ValidationIssue, ValidationResult, validate_profile
from .weighting import FinalRating, InputsSnapshot, calculate_rating
from .weighting_profiles import WeightingProfile

__all__ = [
    "DiscrepancyResult",
    "FinalRating",
    "InputsSnapshot",
    "ValidationIssue",
    "ValidationResult",
    "WeightingProfile",
    "calculate_rating",
    "detect_discrepancy",
    "validate_profile",
]
