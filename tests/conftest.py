"""Shared pytest fixtures for sampling engine tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from audit_sampling.models import SamplingParameters, Transaction


def make_transaction(
    txn_id: str,
    amount: float,
    risk_score: float | None = None,
) -> Transaction:
    """Build a minimal transaction for tests."""
    return Transaction(
        transaction_id=txn_id,
        transaction_date=date(2024, 1, 1),
        account_number="3000",
        account_name="Sales",
        description=f"Transaction {txn_id}",
        amount=amount,
        risk_score=risk_score,
    )


@pytest.fixture()
def standard_population() -> list[Transaction]:
    """100 transactions with amounts 1000, 2000, ..., 100000."""
    return [
        make_transaction(f"t{i + 1}", (i + 1) * 1000.0, min(1.0, i / 100))
        for i in range(100)
    ]


@pytest.fixture()
def default_params(
    standard_population: list[Transaction],
) -> SamplingParameters:
    """Valid substantive MUS parameters for the standard population."""
    return SamplingParameters(
        fiscal_year=2024,
        test_type="SUBSTANTIVE",
        method="MUS",
        population_size=len(standard_population),
        population_sum=sum(t.amount_abs for t in standard_population),
        materiality=100000.0,
        performance_materiality=75000.0,
        expected_misstatement=10000.0,
        confidence_level=95,
        risk_level="moderate",
        threshold_mode="disabled",
        min_per_stratum=2,
        risk_weighting="disabled",
        seed=12345,
    )


@pytest.fixture()
def sample_csv(tmp_path: Path) -> Path:
    """CSV population with mixed signs, aliases and broken rows."""
    p = tmp_path / "population.csv"
    rows = [
        "id,date,account_no,account_name,description,amount,risk_score",
        "T1,2024-01-05,3000,Sales,Invoice 1,100,0.1",
        "T2,2024-01-06,3000,Sales,Credit note,-250,",
        "T3,2024-01-07,3000,Sales,Zero line,0,",
        "T4,2024-01-08,3000,Sales,Large invoice,\"999,999\",0.9",
        "T5,2024-01-09,3000,Sales,Broken amount,bad,",
        "T6,31.13.2024,3000,Sales,Bad date,50,",
        "T7,2024-01-10,3000,Sales,Normal,75,",
        "T8,2024-01-11,3000,Sales,Normal,80,",
        "T9,2024-01-12,3000,Sales,Bad risk,90,1.5",
        "T10,2024-01-13,3000,Sales,Normal,110,",
    ]
    p.write_text("\n".join(rows))
    return p


@pytest.fixture()
def timestamp() -> datetime:
    return datetime(2024, 12, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def run_id() -> str:
    return "test-run-id"
