"""Loading, strict validation and versioned management of weighting profiles."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from ..domain.profile_validation import ValidationIssue, ValidationResult, validate_profile
from ..domain.weighting_profiles import (
    ConfidenceThresholds,
    DecaySettings,
    MinDataRequirements,
    ScoreBands,
    WeightingProfile,
    WeightingProfileCatalog,
)
from ..exceptions import (
    ProfileAlreadyExistsError,
    ProfileArchivedError,
    ProfileCatalogFileNotFoundError,
    ProfileCatalogValidationError,
    ProfileInvalidError,
    ProfileNotFoundError,
    ProfileVersionNotFoundError,
    ValidationOverrideError,
)
from ..observability import get_logger
from ..protocols import FileSystem
from .audit import AuditLog

_SCHEMA_VERSION = 1

# Keys an edit may not touch; identity and lifecycle are owned by the registry.
_IMMUTABLE_KEYS = frozenset({"profile_id", "version", "archived", "validation_override_reason"})
# Category maps are replaced wholesale so an edit can drop a category.
_REPLACED_SECTIONS = frozenset({"compliance_category_weights", "expertise_category_weights"})


class _MinDataRequirementsModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    min_compliance_assessments: int = 3
    min_expertise_assessments: int = 1
    max_data_age_days: int = 365
    required_compliance_categories: tuple[str, ...] = ()
    required_expertise_categories: tuple[str, ...] = ()


class _ConfidenceThresholdsModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    high_min: float = 0.8
    medium_min: float = 0.6
    low_min: float = 0.4
    very_low_max: float = 0.2


class _DecaySettingsModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    curve: Literal["exponential", "linear"] = "exponential"
    half_life_days: float = 180.0
    minimum_weight: float = 0.1


class _ScoreBandsModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    green_min: float = 80.0
    amber_min: float = 50.0


class _WeightingProfileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    profile_id: str
    name: str
    version: int = 1
    scope: Literal["personal", "role_template", "global"]
    owner_id: str | None = None
    project_data_weight: float
    organiser_expertise_weight: float
    compliance_category_weights: dict[str, float]
    expertise_category_weights: dict[str, float]
    min_data_requirements: _MinDataRequirementsModel = _MinDataRequirementsModel()
    confidence_thresholds: _ConfidenceThresholdsModel = _ConfidenceThresholdsModel()
    compliance_decay: _DecaySettingsModel = _DecaySettingsModel()
    expertise_decay: _DecaySettingsModel = _DecaySettingsModel(half_life_days=90.0)
    score_bands: _ScoreBandsModel = _ScoreBandsModel()
    min_acceptable_confidence: Literal["very_low", "low", "medium", "high"] = "low"
    confidence_adjustment: int = 0
    severity_discount: float = 0.1
    max_expertise_per_category: int = 5
    default_organiser_multiplier: float = 1.0
    archived: bool = False
    validation_override_reason: str | None = None

    @field_validator("profile_id", "name")
    @classmethod
    def _validate_non_empty(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @field_validator("version")
    @classmethod
    def _validate_version(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("compliance_category_weights", "expertise_category_weights")
    @classmethod
    def _validate_category_keys(cls, value: dict[str, float]) -> dict[str, float]:
        cleaned: dict[str, float] = {}
        for key, weight in value.items():
            key_text = key.strip()
            if not key_text:
                raise ValueError("category names must not be empty")
            cleaned[key_text] = weight
        return cleaned


class _WeightingProfileCatalogModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    default_profile: str
    profiles: tuple[_WeightingProfileModel, ...]

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError(f"unsupported schema version (expected {_SCHEMA_VERSION})")
        return value

    @model_validator(mode="after")
    def _validate_profiles(self) -> _WeightingProfileCatalogModel:
        if not self.profiles:
            raise ValueError("catalogue must contain at least one profile")
        keys = [(profile.profile_id, profile.version) for profile in self.profiles]
        if len(set(keys)) != len(keys):
            raise ValueError("profile versions must be unique")
        if self.default_profile not in {profile.profile_id for profile in self.profiles}:
            raise ValueError("default_profile must name a profile in the catalogue")
        return self


@dataclass(frozen=True)
class ProfileRef:
    """Selects a profile version; ``version=None`` means the latest."""

    profile_id: str
    version: int | None = None


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def _structure_issues(exc: ValidationError) -> tuple[ValidationIssue, ...]:
    return tuple(
        ValidationIssue(
            field=".".join(str(part) for part in error.get("loc", ())) or "<root>",
            code="structure",
            message=str(error.get("msg", "invalid value")),
        )
        for error in exc.errors()
    )


def _to_domain_profile(model: _WeightingProfileModel) -> WeightingProfile:
    requirements = model.min_data_requirements
    thresholds = model.confidence_thresholds
    return WeightingProfile(
        profile_id=model.profile_id,
        name=model.name,
        version=model.version,
        scope=model.scope,
        owner_id=model.owner_id,
        project_data_weight=model.project_data_weight,
        organiser_expertise_weight=model.organiser_expertise_weight,
        compliance_category_weights=MappingProxyType(dict(model.compliance_category_weights)),
        expertise_category_weights=MappingProxyType(dict(model.expertise_category_weights)),
        min_data_requirements=MinDataRequirements(
            min_compliance_assessments=requirements.min_compliance_assessments,
            min_expertise_assessments=requirements.min_expertise_assessments,
            max_data_age_days=requirements.max_data_age_days,
            required_compliance_categories=requirements.required_compliance_categories,
            required_expertise_categories=requirements.required_expertise_categories,
        ),
        confidence_thresholds=ConfidenceThresholds(
            high_min=thresholds.high_min,
            medium_min=thresholds.medium_min,
            low_min=thresholds.low_min,
            very_low_max=thresholds.very_low_max,
        ),
        compliance_decay=_to_decay_settings(model.compliance_decay),
        expertise_decay=_to_decay_settings(model.expertise_decay),
        score_bands=ScoreBands(
            green_min=model.score_bands.green_min,
            amber_min=model.score_bands.amber_min,
        ),
        min_acceptable_confidence=model.min_acceptable_confidence,
        confidence_adjustment=model.confidence_adjustment,
        severity_discount=model.severity_discount,
        max_expertise_per_category=model.max_expertise_per_category,
        default_organiser_multiplier=model.default_organiser_multiplier,
        archived=model.archived,
        validation_override_reason=model.validation_override_reason,
    )


def _to_decay_settings(model: _DecaySettingsModel) -> DecaySettings:
    return DecaySettings(
        curve=model.curve,
        half_life_days=model.half_life_days,
        minimum_weight=model.minimum_weight,
    )


def profile_from_payload(payload: Mapping[str, object]) -> WeightingProfile:
    """Build a typed profile from an untyped payload.

    Only the payload's shape is checked here; semantic rules are applied by
    ``validate_profile``. Structural problems raise ProfileInvalidError.
    """
    try:
        model = _WeightingProfileModel.model_validate(dict(payload))
    except ValidationError as exc:
        name = payload.get("name")
        raise ProfileInvalidError(
            name if isinstance(name, str) and name else "<unnamed>",
            _structure_issues(exc),
        ) from exc
    return _to_domain_profile(model)


def validate_profile_payload(payload: Mapping[str, object]) -> ValidationResult:
    """Validate a payload from a profile editor without raising."""
    try:
        profile = profile_from_payload(payload)
    except ProfileInvalidError as exc:
        return ValidationResult(errors=exc.issues, warnings=())
    return validate_profile(profile)


def load_profile_catalog(*, path: Path, fs: FileSystem) -> WeightingProfileCatalog:
    """Load and validate a weighting profile catalogue from JSON.

    Every stored version must pass ``validate_profile`` unless it was stored
    with an override reason.
    """
    if not fs.exists(path):
        raise ProfileCatalogFileNotFoundError(str(path))

    payload = fs.read_text(path)
    try:
        model = _WeightingProfileCatalogModel.model_validate_json(payload)
    except ValidationError as exc:
        raise ProfileCatalogValidationError(str(path), _format_validation_error(exc)) from exc

    profiles = tuple(_to_domain_profile(profile) for profile in model.profiles)
    for profile in profiles:
        if profile.validation_override_reason:
            continue
        result = validate_profile(profile)
        if not result.is_valid:
            first = result.errors[0]
            raise ProfileCatalogValidationError(
                str(path),
                f"{profile.profile_id} v{profile.version} {first.field}: {first.message}",
            )

    return WeightingProfileCatalog(
        schema_version=model.schema_version,
        default_profile=model.default_profile,
        profiles=profiles,
    )


def save_profile_catalog(catalog: WeightingProfileCatalog, *, path: Path, fs: FileSystem) -> None:
    fs.write_json(
        {
            "schema_version": catalog.schema_version,
            "default_profile": catalog.default_profile,
            "profiles": [profile.to_snapshot() for profile in catalog.profiles],
        },
        path,
    )


def resolve_profile(
    catalog: WeightingProfileCatalog,
    ref: ProfileRef | None = None,
) -> WeightingProfile:
    """Resolve one profile version, defaulting to the latest catalogue default."""
    profile_id = (ref.profile_id if ref else "").strip() or catalog.default_profile
    versions = catalog.versions_of(profile_id)
    if not versions:
        raise ProfileNotFoundError(profile_id, catalog.profile_ids())
    if ref is None or ref.version is None:
        return versions[-1]
    for profile in versions:
        if profile.version == ref.version:
            return profile
    raise ProfileVersionNotFoundError(profile_id, ref.version)


def _merge_changes(base: dict[str, object], changes: Mapping[str, object]) -> dict[str, object]:
    merged = dict(base)
    for key, value in changes.items():
        current = merged.get(key)
        if key in _REPLACED_SECTIONS:
            merged[key] = value
        elif isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = {**current, **value}
        else:
            merged[key] = value
    return merged


class ProfileRegistry:
    """Versioned, audited store of weighting profiles.

    Versions are immutable: an edit appends ``version + 1``. Every mutation
    writes an audit entry and, when a persister is configured, saves the
    catalogue.
    """

    def __init__(
        self,
        catalog: WeightingProfileCatalog,
        *,
        audit_log: AuditLog,
        persist: Callable[[WeightingProfileCatalog], None] | None = None,
    ) -> None:
        self._catalog = catalog
        self._audit_log = audit_log
        self._persist = persist
        self._lock = threading.RLock()
        self._logger = get_logger("employer_rating_engine.profiles")

    @property
    def catalog(self) -> WeightingProfileCatalog:
        with self._lock:
            return self._catalog

    def get(self, ref: ProfileRef | None = None) -> WeightingProfile:
        return resolve_profile(self.catalog, ref)

    def latest_version(self, profile_id: str) -> int:
        return self.get(ProfileRef(profile_id)).version

    def versions(self, profile_id: str) -> tuple[WeightingProfile, ...]:
        versions = self.catalog.versions_of(profile_id)
        if not versions:
            raise ProfileNotFoundError(profile_id, self.catalog.profile_ids())
        return versions

    def create(
        self,
        profile: WeightingProfile,
        *,
        actor: str,
        reason: str,
        override_reason: str | None = None,
    ) -> WeightingProfile:
        """Store version 1 of a new profile."""
        with self._lock:
            if profile.profile_id in self._catalog.profile_ids():
                raise ProfileAlreadyExistsError(profile.profile_id)
            stored = self._checked(
                replace(profile, version=1, archived=False), actor, override_reason
            )
            self._store(stored)
            self._audit_log.record(
                "profile_created",
                actor=actor,
                subject_id=stored.profile_id,
                before=None,
                after=stored.to_snapshot(),
                reason=reason,
            )
        self._logger.info("Created weighting profile %s v%s", stored.profile_id, stored.version)
        return stored

    def edit(
        self,
        profile_id: str,
        changes: Mapping[str, object],
        *,
        actor: str,
        reason: str,
        override_reason: str | None = None,
    ) -> WeightingProfile:
        """Apply changes to the latest version and store them as a new version."""
        with self._lock:
            current = self.get(ProfileRef(profile_id))
            if current.archived:
                raise ProfileArchivedError(current.profile_id, current.version)
            forbidden = sorted(_IMMUTABLE_KEYS & set(changes))
            if forbidden:
                raise ProfileInvalidError(
                    current.name,
                    [
                        ValidationIssue(
                            field=key,
                            code="structure",
                            message="managed by the registry and cannot be edited",
                        )
                        for key in forbidden
                    ],
                )
            payload = _merge_changes(current.to_snapshot(), changes)
            payload["version"] = current.version + 1
            payload["validation_override_reason"] = None
            stored = self._checked(profile_from_payload(payload), actor, override_reason)
            self._store(stored)
            self._audit_log.record(
                "profile_edited",
                actor=actor,
                subject_id=stored.profile_id,
                before=current.to_snapshot(),
                after=stored.to_snapshot(),
                reason=reason,
            )
        self._logger.info("Edited weighting profile %s to v%s", stored.profile_id, stored.version)
        return stored

    def archive(self, profile_id: str, *, actor: str, reason: str) -> WeightingProfile:
        """Archive every version of a profile; archived profiles cannot rate."""
        with self._lock:
            versions = self.versions(profile_id)
            latest = versions[-1]
            archived = {profile.version: replace(profile, archived=True) for profile in versions}
            self._catalog = replace(
                self._catalog,
                profiles=tuple(
                    archived[profile.version] if profile.profile_id == profile_id else profile
                    for profile in self._catalog.profiles
                ),
            )
            self._save()
            self._audit_log.record(
                "profile_archived",
                actor=actor,
                subject_id=profile_id,
                before=latest.to_snapshot(),
                after=archived[latest.version].to_snapshot(),
                reason=reason,
            )
        self._logger.info("Archived weighting profile %s", profile_id)
        return archived[latest.version]

    def _checked(
        self,
        profile: WeightingProfile,
        actor: str,
        override_reason: str | None,
    ) -> WeightingProfile:
        result = validate_profile(profile)
        if result.is_valid:
            return replace(profile, validation_override_reason=None)
        if override_reason is None:
            raise ProfileInvalidError(profile.name, result.errors)
        if not override_reason.strip():
            raise ValidationOverrideError()
        self._audit_log.record(
            "validation_override",
            actor=actor,
            subject_id=profile.profile_id,
            before=None,
            after=result.to_snapshot(),
            reason=override_reason.strip(),
        )
        self._logger.warning(
            "Stored invalid weighting profile %s v%s by override: %s",
            profile.profile_id,
            profile.version,
            override_reason.strip(),
        )
        return replace(profile, validation_override_reason=override_reason.strip())

    def _store(self, profile: WeightingProfile) -> None:
        self._catalog = replace(self._catalog, profiles=(*self._catalog.profiles, profile))
        self._save()

    def _save(self) -> None:
        if self._persist is not None:
            self._persist(self._catalog)


def open_profile_registry(*, path: Path, fs: FileSystem, audit_log: AuditLog) -> ProfileRegistry:
    """Load the catalogue at ``path`` and persist every change back to it."""
    catalog = load_profile_catalog(path=path, fs=fs)

    def _persist(updated: WeightingProfileCatalog) -> None:
        save_profile_catalog(updated, path=path, fs=fs)

    return ProfileRegistry(catalog, audit_log=audit_log, persist=_persist)
