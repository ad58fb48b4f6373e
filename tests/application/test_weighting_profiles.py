"""Tests for weighting profile schema validation, loading and resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from employer_rating_engine.application.weighting_profiles import (
    ProfileRef,
    load_profile_catalog,
    profile_from_payload,
    resolve_profile,
    validate_profile_payload,
)
from employer_rating_engine.domain.weighting_profiles import WeightingProfileCatalog
from employer_rating_engine.exceptions import (
    ProfileCatalogFileNotFoundError,
    ProfileCatalogValidationError,
    ProfileInvalidError,
    ProfileNotFoundError,
    ProfileVersionNotFoundError,
)
from tests.fakes import InMemoryFileSystem
from tests.support.builders import catalog_payload, profile_payload

CATALOG_PATH = Path("data/reference/weighting_profiles.json")


def _load(fs: InMemoryFileSystem, payload: dict[str, object]) -> WeightingProfileCatalog:
    fs.write_json(payload, CATALOG_PATH)
    return load_profile_catalog(path=CATALOG_PATH, fs=fs)


def test_load_profile_catalog_applies_defaults() -> None:
    catalog = _load(InMemoryFileSystem(), catalog_payload())

    profile = resolve_profile(catalog)
    assert profile.profile_id == "balanced"
    assert profile.version == 1
    assert profile.min_data_requirements.min_compliance_assessments == 3
    assert profile.expertise_decay.half_life_days == 90.0
    assert profile.compliance_decay.half_life_days == 180.0
    assert profile.min_acceptable_confidence == "low"
    assert dict(profile.compliance_category_weights) == {
        "cbus_status": 0.4,
        "eba_status": 0.3,
        "safety_incidents": 0.3,
    }


def test_load_profile_catalog_fails_when_file_missing() -> None:
    with pytest.raises(ProfileCatalogFileNotFoundError):
        load_profile_catalog(path=CATALOG_PATH, fs=InMemoryFileSystem())


def test_load_profile_catalog_rejects_invalid_stored_profile() -> None:
    payload = catalog_payload(
        profile_payload(project_data_weight=0.7, organiser_expertise_weight=0.5)
    )

    with pytest.raises(ProfileCatalogValidationError) as excinfo:
        _load(InMemoryFileSystem(), payload)

    assert "balanced v1 organiser_expertise_weight" in str(excinfo.value)


def test_load_profile_catalog_accepts_overridden_invalid_profile() -> None:
    payload = catalog_payload(
        profile_payload(
            project_data_weight=0.7,
            organiser_expertise_weight=0.5,
            validation_override_reason="Trial requested by the organising committee",
        )
    )

    catalog = _load(InMemoryFileSystem(), payload)

    assert resolve_profile(catalog).validation_override_reason is not None


@pytest.mark.parametrize(
    "payload",
    [
        catalog_payload(profile_payload(surprise="field")),
        catalog_payload(profile_payload(), profile_payload()),
        catalog_payload(profile_payload(), default="missing"),
        {**catalog_payload(), "schema_version": 2},
        {**catalog_payload(), "profiles": []},
    ],
    ids=["extra-key", "duplicate-version", "unknown-default", "schema-version", "empty"],
)
def test_load_profile_catalog_rejects_bad_shape(payload: dict[str, object]) -> None:
    with pytest.raises(ProfileCatalogValidationError):
        _load(InMemoryFileSystem(), payload)


def test_resolve_profile_selects_latest_or_requested_version() -> None:
    catalog = _load(
        InMemoryFileSystem(),
        catalog_payload(
            profile_payload(version=2, name="Balanced v2"),
            profile_payload(version=1),
            profile_payload(profile_id="organiser-led", name="Organiser led"),
        ),
    )

    assert resolve_profile(catalog).version == 2
    assert resolve_profile(catalog, ProfileRef("balanced", 1)).version == 1
    assert resolve_profile(catalog, ProfileRef("organiser-led")).name == "Organiser led"
    assert resolve_profile(catalog, ProfileRef("", 1)).profile_id == "balanced"


def test_resolve_profile_reports_unknown_profile_and_version() -> None:
    catalog = _load(InMemoryFileSystem(), catalog_payload())

    with pytest.raises(ProfileNotFoundError) as excinfo:
        resolve_profile(catalog, ProfileRef("nope"))
    assert excinfo.value.available == ("balanced",)

    with pytest.raises(ProfileVersionNotFoundError):
        resolve_profile(catalog, ProfileRef("balanced", 9))


def test_profile_from_payload_reports_structure_issues() -> None:
    payload = profile_payload(scope="planet", project_data_weight="heavy")

    with pytest.raises(ProfileInvalidError) as excinfo:
        profile_from_payload(payload)

    assert excinfo.value.profile_name == "Balanced"
    assert {issue.code for issue in excinfo.value.issues} == {"structure"}
    assert {issue.field for issue in excinfo.value.issues} == {"scope", "project_data_weight"}


def test_validate_profile_payload_never_raises() -> None:
    structural = validate_profile_payload({"name": "Half-typed"})
    semantic = validate_profile_payload(
        profile_payload(project_data_weight=0.7, organiser_expertise_weight=0.5)
    )

    assert not structural.is_valid
    assert {issue.code for issue in semantic.errors} == {"weight_sum"}
