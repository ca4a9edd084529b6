"""
Statement ingestion: locate the export, read it, and extract typed records.
"""
import logging
from pathlib import Path
from typing import Iterator, Optional

from pydantic import ValidationError

from errors import RecordParseError, StatementNotFoundError, StatementReadError
from models import (
  BuyRecord,
  CashTopUpRecord,
  DividendRecord,
  ExtractionReport,
  FeeRecord,
  SellRecord,
  TransactionKind,
  TransactionRecord,
)
from validators import StatementRow

logger = logging.getLogger(__name__)

DELIMITER = ","

# Record field -> statement column, used to name the failing cell
SOURCE_COLUMNS = {
  "ticker": "Ticker",
  "quantity": "Quantity",
  "price_per_unit": "Price per share",
  "total_amount": "Total Amount",
}


def classify_row_type(row_type: str) -> Optional[TransactionKind]:
  """
  Map a statement Type value to a transaction kind.
  BUY is checked before SELL, so 'BUY/SELL' reads as a buy.
  """
  if "BUY" in row_type:
    return TransactionKind.BUY
  if "SELL" in row_type:
    return TransactionKind.SELL
  if row_type == "DIVIDEND":
    return TransactionKind.DIVIDEND
  if row_type == "ROBO MANAGEMENT FEE":
    return TransactionKind.FEE
  if row_type == "CASH TOP-UP":
    return TransactionKind.CASH_TOP_UP
  return None


def build_record(
  kind: TransactionKind,
  row: StatementRow,
  line_number: int,
  settlement_currency: str = "EUR",
) -> TransactionRecord:
  """
  Build the typed record for a classified row.
  Raises RecordParseError when a required value cannot be parsed.
  """
  try:
    if kind == TransactionKind.BUY:
      return BuyRecord(
        line_number=line_number,
        ticker=row.ticker,
        quantity=row.quantity,
        price_per_unit=row.price_per_share,
        total_amount=row.total_amount,
      )
    if kind == TransactionKind.SELL:
      return SellRecord(
        line_number=line_number,
        ticker=row.ticker,
        quantity=row.quantity,
        price_per_unit=row.price_per_share,
        total_amount=row.total_amount,
      )
    if kind == TransactionKind.DIVIDEND:
      return DividendRecord(
        line_number=line_number,
        ticker=row.ticker,
        total_amount=row.total_amount,
      )
    if kind == TransactionKind.FEE:
      return FeeRecord(line_number=line_number, total_amount=row.total_amount)
    return CashTopUpRecord(
      line_number=line_number,
      ticker=settlement_currency,
      quantity=row.total_amount,
      total_amount=row.total_amount,
    )
  except ValidationError as e:
    first = e.errors()[0]
    field = str(first["loc"][0]) if first.get("loc") else "row"
    if kind == TransactionKind.CASH_TOP_UP and field == "quantity":
      field = "total_amount"
    column = SOURCE_COLUMNS.get(field, field)
    raise RecordParseError(
      line_number, row.type, column, first.get("input")
    ) from e


def extract_records(
  text: str,
  report: ExtractionReport = None,
  settlement_currency: str = "EUR",
) -> Iterator[TransactionRecord]:
  """
  Parse statement text into transaction records.

  The first non-empty line is the header; later lines are matched to it by
  column name. Lines are split on commas without quote handling. Rows with
  an unknown Type, and BUY/SELL rows without a ticker, are dropped.

  Args:
    text: Whole statement content.
    report: Optional counters updated as rows are consumed.
    settlement_currency: Pseudo-asset ticker used for cash top-ups.
  """
  if report is None:
    report = ExtractionReport()

  lines = text.lstrip("\ufeff").strip().splitlines()
  if not lines:
    logger.warning("Statement is empty; no records extracted")
    return

  header = lines[0].split(DELIMITER)

  for line_number, line in enumerate(lines[1:], start=2):
    if not line.strip():
      continue
    report.rows_processed += 1

    values = line.split(DELIMITER)
    row = StatementRow.model_validate(dict(zip(header, values)))

    kind = classify_row_type(row.type)
    if kind is None:
      report.rows_dropped += 1
      logger.debug(f"Line {line_number}: dropped unrecognized type {row.type!r}")
      continue

    if kind in (TransactionKind.BUY, TransactionKind.SELL) and not row.has_ticker:
      report.rows_dropped += 1
      logger.debug(f"Line {line_number}: dropped {row.type} row without ticker")
      continue

    record = build_record(kind, row, line_number, settlement_currency)
    report.count(kind)
    yield record

  logger.info(
    f"Extracted {report.records_emitted}/{report.rows_processed} rows"
    + (f" from {report.file_name}" if report.file_name else "")
  )


def read_statement(file_path) -> str:
  """Read a whole statement file into memory."""
  try:
    with open(file_path, "r", encoding="utf-8-sig") as f:
      return f.read()
  except UnicodeDecodeError as e:
    raise StatementReadError(file_path, f"not valid UTF-8 ({e.reason})") from e
  except OSError as e:
    raise StatementReadError(file_path, e.strerror or str(e)) from e


def locate_statement(directory) -> Path:
  """
  Find the statement CSV in a directory.
  Only one statement is processed per run; with several candidates the
  first in name order is used.
  """
  directory = Path(directory)
  if not directory.is_dir():
    raise StatementNotFoundError(
      directory, f"Documents folder not found: {directory}"
    )

  candidates = sorted(
    p for p in directory.iterdir() if p.is_file() and p.name.endswith(".csv")
  )
  if not candidates:
    raise StatementNotFoundError(directory)

  if len(candidates) > 1:
    logger.warning(
      f"Found {len(candidates)} CSV files in {directory}; using {candidates[0].name}"
    )

  logger.info(f"Using statement file: {candidates[0]}")
  return candidates[0]
