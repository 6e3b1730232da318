"""Population loading: ledger CSV rows to ``Transaction`` objects."""

from __future__ import annotations

import csv
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import ValidationError

from .logging_setup import get_logger
from .models import DataQualityReport, EventCode, Transaction

log = get_logger("loader")

EXCLUSION_WARNING_RATIO = 0.2

ISSUE_FIELDS = (
    "missing_transaction_id",
    "missing_amount",
    "missing_transaction_date",
    "missing_account_number",
    "missing_description",
    "invalid_amount_format",
    "invalid_date_format",
    "invalid_risk_score",
    "duplicate_transaction_ids",
    "zero_amounts",
)

DATE_FORMATS = [
    "%Y-%m-%d",
    "%d.%m.%Y",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d/%m/%Y %H:%M",
    "%m/%d/%Y %H:%M",
]

COLUMN_ALIASES = {
    "transactionid": "transaction_id",
    "transaction_id": "transaction_id",
    "trx_id": "transaction_id",
    "id": "transaction_id",
    "amount": "amount",
    "value": "amount",
    "belop": "amount",
    "debit": "debit",
    "debit_amount": "debit",
    "credit": "credit",
    "credit_amount": "credit",
    "date": "transaction_date",
    "transaction_date": "transaction_date",
    "effective_date": "transaction_date",
    "account": "account_number",
    "account_no": "account_number",
    "account_number": "account_number",
    "account_name": "account_name",
    "description": "description",
    "text": "description",
    "risk": "risk_score",
    "risk_score": "risk_score",
    "voucher": "voucher_number",
    "voucher_no": "voucher_number",
    "voucher_number": "voucher_number",
}


def load_raw_data(file_path: Path) -> list[dict[str, str]]:
    """Load raw CSV data into a list of dictionaries.

    Args:
        file_path (Path): Path to the population CSV file.

    Returns:
        list[dict[str, str]]: Raw CSV rows keyed by column header.

    Raises:
        FileNotFoundError: If the provided file path does not exist.
        csv.Error: If the CSV reader encounters malformed input.
    """
    with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        rows = list(reader)
    log.info(EventCode.RAW_LOADED.value, rows=len(rows), path=str(file_path))
    return rows


class ParsedField(NamedTuple):
    """Result of parsing one cell: the value and a ``valid``, ``missing`` or
    ``invalid`` status."""

    value: Any
    status: str


def load_population(
    input_path: Path,
) -> tuple[list[Transaction], DataQualityReport]:
    """Load a population file and produce a quality report.

    Args:
        input_path (Path): Path to the population CSV file.

    Returns:
        tuple[list[Transaction], DataQualityReport]: Loaded transactions and
        the associated quality metrics.
    """
    raw_rows = load_raw_data(input_path)
    counts: Counter[str] = Counter()
    transactions = [
        txn
        for idx, raw in enumerate(raw_rows)
        if (txn := _process_row(idx, raw, counts)) is not None
    ]
    id_counts = Counter(t.transaction_id for t in transactions)
    counts["duplicate_transaction_ids"] = sum(
        n - 1 for n in id_counts.values() if n > 1
    )
    report = _build_quality_report(len(raw_rows), len(transactions), counts)

    log.info(
        EventCode.POPULATION_LOADED.value,
        raw_rows=len(raw_rows),
        loaded_rows=len(transactions),
        duplicates=report.duplicate_transaction_ids,
    )
    return transactions, report


def _process_row(
    idx: int,
    raw_row: dict[str, str],
    counts: Counter[str],
) -> Transaction | None:
    """Turn one raw row into a transaction, tallying quality issues.

    Args:
        idx (int): Row index within the population file.
        raw_row (dict[str, str]): Raw CSV row dictionary.
        counts (Counter[str]): Issue tally keyed by report field name.

    Returns:
        Transaction | None: Transaction when the row is usable, otherwise
        ``None``.
    """
    row = _normalize_row(raw_row)

    amount = _row_amount(row)
    txn_date = _parse_date(row.get("transaction_date", ""))
    risk = _parse_amount(row.get("risk_score", ""))
    fields = {
        name: _clean_string(row.get(name))
        for name in (
            "transaction_id",
            "account_number",
            "account_name",
            "description",
            "voucher_number",
        )
    }

    for name in ("transaction_id", "account_number", "description"):
        if fields[name] is None:
            counts[f"missing_{name}"] += 1
    if amount.status == "missing":
        counts["missing_amount"] += 1
    elif amount.status == "invalid":
        counts["invalid_amount_format"] += 1
    elif amount.value == 0:
        counts["zero_amounts"] += 1
    if txn_date.status != "valid":
        counts["missing_transaction_date"] += 1
    if txn_date.status == "invalid":
        counts["invalid_date_format"] += 1

    if amount.value is None:
        return None
    if risk.status == "invalid":
        counts["invalid_risk_score"] += 1
        return None

    fields["transaction_id"] = fields["transaction_id"] or f"row-{idx + 1}"
    try:
        return Transaction(
            **fields,
            transaction_date=txn_date.value,
            amount=amount.value,
            risk_score=risk.value,
        )
    except ValidationError as e:
        # out-of-range risk scores are the only field pydantic rejects here
        counts["invalid_risk_score"] += 1
        log.warning(EventCode.VALIDATION_FAILED.value, row=idx, error=str(e))
        return None


def _row_amount(row: dict[str, str]) -> ParsedField:
    """Signed amount from an ``amount`` column or ``debit``/``credit`` pair."""
    if "amount" in row:
        return _parse_amount(row["amount"])

    debit = _parse_amount(row.get("debit", ""))
    credit = _parse_amount(row.get("credit", ""))
    if "invalid" in (debit.status, credit.status):
        return ParsedField(None, "invalid")
    if debit.value is None and credit.value is None:
        return ParsedField(None, "missing")
    return ParsedField((debit.value or 0.0) - (credit.value or 0.0), "valid")


def _normalize_row(row: dict[str, str]) -> dict[str, str]:
    """Key a raw row by canonical column names using configured aliases."""
    normalized = {}
    for key, value in row.items():
        if key is None:
            # surplus cells beyond the header row
            continue
        canonical = _canonical_name(key)
        normalized[COLUMN_ALIASES.get(canonical, canonical)] = value or ""
    return normalized


def _canonical_name(value: str) -> str:
    """Lower-case a header and replace punctuation with underscores."""
    return "".join(
        ch if ch.isalnum() else "_" for ch in value.strip().lower()
    )


def _clean_string(value: str | None) -> str | None:
    """Strip a cell, mapping blanks and the literal 'none' to ``None``."""
    if value is None:
        return None
    cleaned = value.strip()
    return None if cleaned.lower() in ("", "none") else cleaned


def _parse_amount(value: str) -> ParsedField:
    """Parse numeric text that may carry thousands separators.

    Args:
        value (str): Cell text such as ``"1,250.00"`` or ``"-75"``.

    Returns:
        ParsedField: Float value, or ``None`` with a ``missing``/``invalid``
        status.
    """
    cleaned = (value or "").replace(",", "").replace(" ", "")
    if not cleaned:
        return ParsedField(None, "missing")
    try:
        return ParsedField(float(cleaned), "valid")
    except ValueError:
        return ParsedField(None, "invalid")


def _parse_date(value: str) -> ParsedField:
    """Parse a date against ``DATE_FORMATS`` in order."""
    text = (value or "").strip()
    if not text:
        return ParsedField(None, "missing")

    for fmt in DATE_FORMATS:
        try:
            return ParsedField(datetime.strptime(text, fmt).date(), "valid")
        except ValueError:
            continue
    return ParsedField(None, "invalid")


def _build_quality_report(
    total_raw: int,
    total_loaded: int,
    counts: Counter[str],
) -> DataQualityReport:
    """Assemble the ``DataQualityReport`` from the tallied issues.

    Args:
        total_raw (int): Rows read from the file.
        total_loaded (int): Rows turned into transactions.
        counts (Counter[str]): Issue tally keyed by report field name.

    Returns:
        DataQualityReport: Report describing population quality.
    """
    excluded = total_raw - total_loaded
    notes = ""
    if total_raw and excluded / total_raw > EXCLUSION_WARNING_RATIO:
        notes = "Warning: more than 20% of rows were excluded."

    report = DataQualityReport(
        total_rows_raw=total_raw,
        total_rows_loaded=total_loaded,
        excluded_rows=excluded,
        notes=notes,
        **{name: counts[name] for name in ISSUE_FIELDS},
    )

    log.info(EventCode.QUALITY_REPORT.value, report=report.model_dump())
    return report
