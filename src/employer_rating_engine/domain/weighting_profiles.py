"""Domain model for versioned weighting profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal

ProfileScope = Literal["personal", "role_template", "global"]
DecayCurve = Literal["exponential", "linear"]
ConfidenceLevel = Literal["very_low", "low", "medium", "high"]

PROFILE_SCOPES: tuple[ProfileScope, ...] = ("personal", "role_template", "global")
DECAY_CURVES: tuple[DecayCurve, ...] = ("exponential", "linear")

# Ordered lowest to highest; tier arithmetic relies on this ordering.
CONFIDENCE_LEVELS: tuple[ConfidenceLevel, ...] = ("very_low", "low", "medium", "high")


def _empty_categories() -> tuple[str, ...]:
    return ()


@dataclass(frozen=True)
class MinDataRequirements:
    """Minimum evidence needed before a track is treated as informative."""

    min_compliance_assessments: int = 3
    min_expertise_assessments: int = 1
    max_data_age_days: int = 365
    required_compliance_categories: tuple[str, ...] = field(default_factory=_empty_categories)
    required_expertise_categories: tuple[str, ...] = field(default_factory=_empty_categories)


@dataclass(frozen=True)
class ConfidenceThresholds:
    """Cut points partitioning a 0-1 confidence score into tiers."""

    high_min: float = 0.8
    medium_min: float = 0.6
    low_min: float = 0.4
    very_low_max: float = 0.2


@dataclass(frozen=True)
class DecaySettings:
    """Recency weighting curve for one track."""

    curve: DecayCurve = "exponential"
    half_life_days: float = 180.0
    minimum_weight: float = 0.1


@dataclass(frozen=True)
class ScoreBands:
    """Traffic-light cut points on the 0-100 score scale."""

    green_min: float = 80.0
    amber_min: float = 50.0


@dataclass(frozen=True)
class WeightingProfile:
    """One immutable version of a named weighting profile."""

    profile_id: str
    name: str
    version: int
    scope: ProfileScope
    owner_id: str | None
    project_data_weight: float
    organiser_expertise_weight: float
    compliance_category_weights: MappingProxyType[str, float]
    expertise_category_weights: MappingProxyType[str, float]
    min_data_requirements: MinDataRequirements = field(default_factory=MinDataRequirements)
    confidence_thresholds: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)
    compliance_decay: DecaySettings = field(default_factory=DecaySettings)
    expertise_decay: DecaySettings = field(
        default_factory=lambda: DecaySettings(half_life_days=90.0)
    )
    score_bands: ScoreBands = field(default_factory=ScoreBands)
    min_acceptable_confidence: ConfidenceLevel = "low"
    confidence_adjustment: int = 0
    severity_discount: float = 0.1
    max_expertise_per_category: int = 5
    default_organiser_multiplier: float = 1.0
    archived: bool = False
    # Set when an invalid version was stored deliberately; the engine then
    # computes with it instead of rejecting it.
    validation_override_reason: str | None = None

    @property
    def required_compliance_categories(self) -> tuple[str, ...]:
        """Required Track 1 categories, defaulting to every weighted category."""
        required = self.min_data_requirements.required_compliance_categories
        return required or tuple(sorted(self.compliance_category_weights))

    @property
    def required_expertise_categories(self) -> tuple[str, ...]:
        """Required Track 2 categories, defaulting to every weighted category."""
        required = self.min_data_requirements.required_expertise_categories
        return required or tuple(sorted(self.expertise_category_weights))

    def to_snapshot(self) -> dict[str, object]:
        """Return a JSON-compatible snapshot for audit entries and catalogues."""
        requirements = self.min_data_requirements
        thresholds = self.confidence_thresholds
        return {
            "profile_id": self.profile_id,
            "name": self.name,
            "version": self.version,
            "scope": self.scope,
            "owner_id": self.owner_id,
            "project_data_weight": self.project_data_weight,
            "organiser_expertise_weight": self.organiser_expertise_weight,
            "compliance_category_weights": dict(self.compliance_category_weights),
            "expertise_category_weights": dict(self.expertise_category_weights),
            "min_data_requirements": {
                "min_compliance_assessments": requirements.min_compliance_assessments,
                "min_expertise_assessments": requirements.min_expertise_assessments,
                "max_data_age_days": requirements.max_data_age_days,
                "required_compliance_categories": list(
                    requirements.required_compliance_categories
                ),
                "required_expertise_categories": list(requirements.required_expertise_categories),
            },
            "confidence_thresholds": {
                "high_min": thresholds.high_min,
                "medium_min": thresholds.medium_min,
                "low_min": thresholds.low_min,
                "very_low_max": thresholds.very_low_max,
            },
            "compliance_decay": _decay_snapshot(self.compliance_decay),
            "expertise_decay": _decay_snapshot(self.expertise_decay),
            "score_bands": {
                "green_min": self.score_bands.green_min,
                "amber_min": self.score_bands.amber_min,
            },
            "min_acceptable_confidence": self.min_acceptable_confidence,
            "confidence_adjustment": self.confidence_adjustment,
            "severity_discount": self.severity_discount,
            "max_expertise_per_category": self.max_expertise_per_category,
            "default_organiser_multiplier": self.default_organiser_multiplier,
            "archived": self.archived,
            "validation_override_reason": self.validation_override_reason,
        }


def _decay_snapshot(settings: DecaySettings) -> dict[str, object]:
    return {
        "curve": settings.curve,
        "half_life_days": settings.half_life_days,
        "minimum_weight": settings.minimum_weight,
    }


@dataclass(frozen=True)
class WeightingProfileCatalog:
    """Every stored version of every profile plus the default profile ID."""

    schema_version: int
    default_profile: str
    profiles: tuple[WeightingProfile, ...]

    def versions_of(self, profile_id: str) -> tuple[WeightingProfile, ...]:
        return tuple(
            sorted(
                (profile for profile in self.profiles if profile.profile_id == profile_id),
                key=lambda profile: profile.version,
            )
        )

    def profile_ids(self) -> tuple[str, ...]:
        return tuple(sorted({profile.profile_id for profile in self.profiles}))
