"""Column contracts for the CSV files the engine reads and writes.

These define the expected columns at each storage boundary, enabling validation
and clear documentation of data contracts.
"""

from __future__ import annotations

# employers.csv
EMPLOYER_COLUMNS = ("employer_id", "name")

# compliance_assessments.csv (Track 1)
COMPLIANCE_ASSESSMENT_COLUMNS = (
    "assessment_id",
    "employer_id",
    "assessment_type",  # category key, e.g. cbus_status
    "score",  # raw -100..100
    "confidence_level",  # very_low | low | medium | high
    "assessment_date",  # ISO 8601; naive values are read as UTC
    "severity_level",  # optional, 1-5 for negative findings
    "project_id",  # optional
)
COMPLIANCE_REQUIRED_COLUMNS = frozenset(COMPLIANCE_ASSESSMENT_COLUMNS) - {
    "severity_level",
    "project_id",
}

# expertise_assessments.csv (Track 2)
EXPERTISE_ASSESSMENT_COLUMNS = (
    "assessment_id",
    "employer_id",
    "assessor_id",
    "overall_score",  # raw -100..100
    "category_scores",  # JSON object of category -> raw score
    "confidence_level",
    "assessment_date",
    "rationale",  # optional free text
)
EXPERTISE_REQUIRED_COLUMNS = frozenset(EXPERTISE_ASSESSMENT_COLUMNS) - {"rationale"}

# organisers.csv: historical reliability of assessors
ORGANISER_COLUMNS = ("organiser_id", "confidence_multiplier")

# ratings.csv: appended, newest last
RATING_COLUMNS = (
    "employer_id",
    "calculation_date",
    "final_score",  # empty when insufficient data
    "final_rating_band",
    "project_based_rating",
    "expertise_based_rating",
    "overall_confidence",
    "data_completeness",
    "discrepancy_detected",
    "discrepancy_severity",
    "discrepancy_explanation",
    "profile_id",
    "weighting_profile_version",
    "compliance_ids",  # JSON list
    "expertise_ids",  # JSON list
    "track_results",  # JSON list of two track snapshots
    "insufficient_data",
    "superseded_profile",
)

# audit_log.csv: appended, never rewritten
AUDIT_LOG_COLUMNS = (
    "entry_id",
    "kind",
    "actor",
    "timestamp",
    "subject_id",
    "before",  # JSON object or empty
    "after",  # JSON object or empty
    "reason",
)


def validate_columns(df_columns: list[str], required: frozenset[str], source_name: str) -> None:
    """Validate that DataFrame has required columns.

    Args:
        df_columns: List of column names from DataFrame.
        required: Set of required column names.
        source_name: Name of the file or table for error messages.

    Raises:
        ValueError: If required columns are missing.
    """
    missing = required - set(df_columns)
    if missing:
        raise ValueError(f"{source_name}: Missing required columns: {sorted(missing)}")
