"""
Run sequence shared by the console entry point and the HTTP app.
"""
import logging
from pathlib import Path

from pydantic import BaseModel

from aggregation import aggregate
from config.settings import Settings, TickerIdentifierMap
from errors import MappingGapError, MissingMappingError
from ingestion import extract_records, locate_statement, read_statement
from models import AggregationResult, ExtractionReport

logger = logging.getLogger(__name__)


class PortfolioRun(BaseModel):
  """Outcome of processing one statement."""

  result: AggregationResult
  extraction: ExtractionReport
  settlement_currency: str = "EUR"


def require_mapping(ticker_map: TickerIdentifierMap):
  """Refuse to start without any ticker mapping."""
  if ticker_map is None or ticker_map.is_empty:
    raise MissingMappingError()


def check_identifiers(result: AggregationResult, ticker_map: TickerIdentifierMap):
  """Raise MappingGapError listing every open position without an identifier."""
  missing = ticker_map.missing(result.positions.keys())
  if missing:
    raise MappingGapError(missing)


def compute_portfolio(
  text: str,
  ticker_map: TickerIdentifierMap,
  settlement_currency: str = "EUR",
  file_name: str = None,
) -> PortfolioRun:
  """
  Extract, aggregate and validate identifiers for statement text.
  """
  require_mapping(ticker_map)

  extraction = ExtractionReport(file_name=file_name)
  records = extract_records(text, extraction, settlement_currency)
  result = aggregate(records, settlement_currency)

  check_identifiers(result, ticker_map)

  return PortfolioRun(
    result=result,
    extraction=extraction,
    settlement_currency=settlement_currency,
  )


def run_from_settings(settings: Settings) -> PortfolioRun:
  """
  Process the statement found in the configured directory.
  The mapping is checked before the file system is touched.
  """
  require_mapping(settings.ticker_map)

  statement_path: Path = locate_statement(settings.statement_dir)
  text = read_statement(statement_path)
  logger.info(f"Processing {statement_path.name} ({len(text)} bytes)")

  return compute_portfolio(
    text,
    settings.ticker_map,
    settings.settlement_currency,
    file_name=statement_path.name,
  )
