"""
Console and JSON rendering of aggregation results.
"""
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import List

from config.settings import TICKER_PREFIX, TickerIdentifierMap
from errors import MappingGapError
from models import AggregationResult, PositionResult

QUANTITY_PLACES = Decimal("0.00000001")
MONEY_PLACES = Decimal("0.01")


def _fixed(value: Decimal, places: Decimal) -> str:
  value = Decimal(value)
  with localcontext() as ctx:
    # quantize needs room for every integer digit plus the requested places
    ctx.prec = max(ctx.prec, value.adjusted() - places.as_tuple().exponent + 2)
    return format(value.quantize(places, rounding=ROUND_HALF_UP), "f")


def format_quantity(value: Decimal) -> str:
  """Quantity with 8 decimals, e.g. '8.10661844'."""
  return _fixed(value, QUANTITY_PLACES)


def format_price(value: Decimal) -> str:
  """Amount with 2 decimals, half-up: 76.035 -> '76.04'."""
  return _fixed(value, MONEY_PLACES)


def format_position_line(
  identifier: str, position: PositionResult, currency: str = "EUR"
) -> str:
  return (
    f"{identifier} - {format_quantity(position.remaining_quantity)} - "
    f"{format_price(position.average_price)} {currency}"
  )


def render_report(
  result: AggregationResult,
  ticker_map: TickerIdentifierMap,
  currency: str = "EUR",
) -> str:
  """Full console report: one line per open position, then the summary."""
  lines: List[str] = [
    "Average purchase prices:",
    "========================",
  ]

  for ticker, position in result.positions.items():
    lines.append(
      format_position_line(ticker_map.identifier_for(ticker), position, currency)
    )

  summary = result.summary
  lines.extend([
    "",
    "Summary:",
    "========",
    f"Total invested:      {format_price(summary.total_injected)} {currency}",
    f"Total sold:          {format_price(summary.total_sold)} {currency}",
    f"Net contributions:   {format_price(summary.net_contributions)} {currency}",
    f"Total dividends:     {format_price(summary.total_dividends)} {currency}",
    f"Total fees:          {format_price(summary.total_fees)} {currency}",
  ])
  return "\n".join(lines)


def render_mapping_hint(error: MappingGapError) -> str:
  """Lines to paste into a .env file to close mapping gaps."""
  lines = ["Missing ISIN mappings:"]
  for ticker in error.missing_tickers:
    lines.append(f"  - {TICKER_PREFIX}{ticker}=<ISIN_CODE>")
  return "\n".join(lines)


def report_payload(run, ticker_map: TickerIdentifierMap) -> dict:
  """JSON-serializable report for a PortfolioRun."""
  currency = run.settlement_currency
  summary = run.result.summary

  positions = []
  for ticker, position in run.result.positions.items():
    positions.append({
      "ticker": ticker,
      "identifier": ticker_map.identifier_for(ticker),
      "remaining_quantity": format_quantity(position.remaining_quantity),
      "average_price": format_price(position.average_price),
    })

  return {
    "currency": currency,
    "positions": positions,
    "summary": {
      "total_injected": format_price(summary.total_injected),
      "total_sold": format_price(summary.total_sold),
      "net_contributions": format_price(summary.net_contributions),
      "total_dividends": format_price(summary.total_dividends),
      "total_fees": format_price(summary.total_fees),
    },
    "extraction": {
      "file_name": run.extraction.file_name,
      "rows_processed": run.extraction.rows_processed,
      "records_emitted": run.extraction.records_emitted,
      "rows_dropped": run.extraction.rows_dropped,
      "drop_rate": f"{run.extraction.drop_rate:.2f}%",
      "kind_counts": run.extraction.kind_counts,
    },
  }
