"""Core data models for the audit sampling engine."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

TestType = Literal["SUBSTANTIVE", "CONTROL"]
SamplingMethod = Literal["SRS", "SYSTEMATIC", "MUS", "STRATIFIED"]
RiskLevel = Literal["low", "moderate", "high"]
RiskWeighting = Literal["disabled", "moderate", "high"]
ThresholdMode = Literal[
    "disabled", "performance-materiality", "total-materiality", "custom"
]
SampleType = Literal["TARGETED", "RESIDUAL"]

SAMPLING_METHODS: tuple[str, ...] = ("SRS", "SYSTEMATIC", "MUS", "STRATIFIED")
CONFIDENCE_LEVELS: tuple[int, ...] = (90, 95, 99)
RISK_LEVELS: tuple[str, ...] = ("low", "moderate", "high")


class RiskMatrix(BaseModel):
    """Sample-size multipliers keyed by qualitative risk level."""

    low: float
    moderate: float
    high: float


def default_risk_matrix() -> RiskMatrix:
    return RiskMatrix(low=0.8, moderate=1.0, high=1.3)


class SamplingParameters(BaseModel):
    """Audit configuration driving one sampling run.

    Only types are enforced here. Business rules (materiality relationships,
    allowed confidence levels, positive seed...) are reported by
    ``validator.validate_parameters`` so that an invalid configuration can
    still be constructed, inspected and explained to the user.
    """

    fiscal_year: int
    test_type: TestType = "SUBSTANTIVE"
    method: SamplingMethod = "MUS"
    population_size: int
    population_sum: float
    materiality: float | None = None
    performance_materiality: float | None = None
    expected_misstatement: float | None = None
    confidence_level: int = 95
    risk_level: RiskLevel = "moderate"
    tolerable_deviation_rate: float | None = None
    expected_deviation_rate: float | None = None
    threshold_mode: ThresholdMode = "disabled"
    threshold_amount: float | None = None
    confidence_factor: float = 1.0
    strata_bounds: list[float] | None = None
    min_per_stratum: int = 2
    risk_weighting: RiskWeighting = "disabled"
    risk_matrix: RiskMatrix = Field(default_factory=default_risk_matrix)
    seed: int


class Transaction(BaseModel):
    """One ledger line of the population. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    transaction_date: date | None = None
    account_number: str | None = None
    account_name: str | None = None
    description: str | None = None
    amount: float
    risk_score: float | None = None
    voucher_number: str | None = None

    @field_validator("risk_score")
    @classmethod
    def validate_risk_score(cls, value: float | None) -> float | None:
        """Ensure the risk score lies within [0, 1]."""

        if value is not None and not 0.0 <= value <= 1.0:
            raise ValueError("risk_score must be between 0 and 1")
        return value

    @property
    def amount_abs(self) -> float:
        return abs(self.amount)


class SampleItem(Transaction):
    """A transaction annotated with how it entered the sample."""

    sample_type: SampleType
    stratum_index: int | None = None
    selection_method: str | None = None
    rank: int | None = None


class Stratum(BaseModel):
    """Amount-bounded partition of the residual population."""

    index: int
    lower_bound: float
    upper_bound: float | None = None
    transactions: list[Transaction] = Field(default_factory=list)
    allocated_sample_size: int = 0
    min_sample_size: int = 0
    weight_factor: float = 1.0

    @property
    def size(self) -> int:
        return len(self.transactions)

    @property
    def total_amount(self) -> float:
        return sum(t.amount_abs for t in self.transactions)

    @property
    def floor(self) -> int:
        """Smallest allocation the stratum may receive."""
        return min(self.min_sample_size, self.size)


class SamplePlan(BaseModel):
    """Summary of the plan suitable for audit documentation."""

    recommended_sample_size: int
    actual_sample_size: int
    coverage_percentage: float
    method: str
    test_type: TestType
    generated_at: datetime
    param_hash: str
    seed: int


class SampleSet(BaseModel):
    """Three-way partition of the selected items."""

    targeted: list[SampleItem] = Field(default_factory=list)
    residual: list[SampleItem] = Field(default_factory=list)
    total: list[SampleItem] = Field(default_factory=list)


class CalculationTrace(BaseModel):
    """Intermediate sample-size figures."""

    n_base: int
    risk_factor: float
    final_n: int


class SamplingMetadata(BaseModel):
    threshold_used: float | None = None
    strata_bounds: list[float] | None = None
    risk_matrix_used: RiskMatrix
    calculations: CalculationTrace


class SamplingResult(BaseModel):
    """Sole output of the sampling engine."""

    plan: SamplePlan
    samples: SampleSet
    strata: list[Stratum] | None = None
    metadata: SamplingMetadata
    warnings: list[str] = Field(default_factory=list)


class DataQualityReport(BaseModel):
    """Data quality metrics tracked while loading a population."""

    total_rows_raw: int
    total_rows_loaded: int
    missing_transaction_id: int
    missing_amount: int
    missing_transaction_date: int
    missing_account_number: int
    missing_description: int
    invalid_amount_format: int
    invalid_date_format: int
    invalid_risk_score: int
    duplicate_transaction_ids: int
    excluded_rows: int
    zero_amounts: int = 0
    notes: str = ""


class EventCode(str, Enum):
    """Enumeration of structured logging event codes."""

    RUN_START = "RUN_START"
    RAW_LOADED = "RAW_LOADED"
    QUALITY_REPORT = "QUALITY_REPORT"
    POPULATION_LOADED = "POPULATION_LOADED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    PARAMETER_WARNING = "PARAMETER_WARNING"
    THRESHOLD_SPLIT = "THRESHOLD_SPLIT"
    SAMPLE_SIZE_CALCULATED = "SAMPLE_SIZE_CALCULATED"
    SAMPLING_DONE = "SAMPLING_DONE"
    REPORT_WRITTEN = "REPORT_WRITTEN"
    RUN_SUMMARY = "RUN_SUMMARY"


class RunSummary(BaseModel):
    """Aggregate run results and timings persisted as JSON."""

    run_id: str
    started_at_utc: datetime
    finished_at_utc: datetime
    duration_seconds: float
    loading_seconds: float
    sampling_seconds: float
    reporting_seconds: float
    parameters: dict
    data_quality: dict
    plan: dict
    warnings: list[str] = Field(default_factory=list)
    sample_size: int
    output_excel: str
    output_json: str
    version: str = "1.0.0"
