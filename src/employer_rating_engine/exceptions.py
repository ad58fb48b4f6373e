"""Custom exceptions for the Employer Rating Engine.

These exceptions provide clear error handling and enable testing of error paths.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .domain.profile_validation import ValidationIssue


class RatingEngineError(Exception):
    """Base exception for all rating engine errors."""

    pass


class ProfileInvalidError(RatingEngineError):
    """Raised when a weighting profile fails hard validation.

    This is a configuration error - the caller must fix the profile.
    """

    def __init__(self, profile_name: str, issues: Sequence[ValidationIssue]) -> None:
        self.profile_name = profile_name
        self.issues = tuple(issues)
        details = "; ".join(f"{issue.field}: {issue.message}" for issue in self.issues)
        super().__init__(f"Weighting profile '{profile_name}' is invalid: {details}")


class ProfileArchivedError(RatingEngineError):
    """Raised when an archived profile is used for a new calculation."""

    def __init__(self, profile_id: str, version: int) -> None:
        self.profile_id = profile_id
        self.version = version
        super().__init__(
            f"Weighting profile '{profile_id}' v{version} is archived and cannot be used."
        )


class ProfileNotFoundError(RatingEngineError):
    """Raised when a profile identifier is not present in the catalogue."""

    def __init__(self, profile_id: str, available: tuple[str, ...]) -> None:
        self.profile_id = profile_id
        self.available = available
        available_text = ", ".join(available) if available else "<none>"
        super().__init__(
            f"Weighting profile '{profile_id}' was not found. Available: {available_text}"
        )


class ProfileAlreadyExistsError(RatingEngineError):
    """Raised when creating a profile whose identifier is already taken."""

    def __init__(self, profile_id: str) -> None:
        self.profile_id = profile_id
        super().__init__(
            f"Weighting profile '{profile_id}' already exists; edit it to create a new version."
        )


class ProfileVersionNotFoundError(RatingEngineError):
    """Raised when a specific profile version does not exist."""

    def __init__(self, profile_id: str, version: int) -> None:
        self.profile_id = profile_id
        self.version = version
        super().__init__(f"Weighting profile '{profile_id}' has no version {version}.")


class ProfileCatalogFileNotFoundError(RatingEngineError):
    """Raised when the weighting profile catalogue file is missing."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Weighting profile catalogue not found: {path}")


class ProfileCatalogValidationError(RatingEngineError):
    """Raised when the weighting profile catalogue has an invalid shape."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Weighting profile catalogue {path} is invalid ({detail}).")


class ValidationOverrideError(RatingEngineError):
    """Raised when a validation override is attempted without a reason."""

    def __init__(self) -> None:
        super().__init__(
            "Forcing an invalid weighting profile requires an override reason; "
            "silent bypass of validation is not permitted."
        )


class EmployerNotFoundError(RatingEngineError):
    """Raised when the assessment repository has no record of an employer."""

    def __init__(self, employer_id: str) -> None:
        self.employer_id = employer_id
        super().__init__(f"Employer '{employer_id}' was not found.")


class CalculationTimeoutError(RatingEngineError):
    """Raised when a single-employer calculation exceeds its time budget.

    Timeouts are retryable; batch runs record them per employer.
    """

    def __init__(self, employer_id: str, timeout_seconds: float) -> None:
        self.employer_id = employer_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Rating calculation for employer '{employer_id}' exceeded "
            f"{timeout_seconds:g} seconds."
        )


class AssessmentDataError(RatingEngineError):
    """Raised when stored assessment rows cannot be parsed."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"Invalid assessment data in {source}: {detail}")


class ConfigFileNotFoundError(RatingEngineError):
    """Raised when an explicit config file path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(RatingEngineError):
    """Raised when a config file is not valid TOML."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file {path} could not be parsed ({detail}).")


class ConfigFileValidationError(RatingEngineError):
    """Raised when a config file fails schema validation."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file {path} is invalid ({detail}).")
