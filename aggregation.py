"""
Fold transaction records into open positions and cash-flow totals.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable

from errors import MalformedInputError
from models import (
  AggregationResult,
  PortfolioSummary,
  PositionResult,
  TickerStats,
  TransactionKind,
  TransactionRecord,
)

logger = logging.getLogger(__name__)


def aggregate(
  records: Iterable[TransactionRecord], settlement_currency: str = "EUR"
) -> AggregationResult:
  """
  Aggregate records into positions and a portfolio summary.

  Average price is total bought amount over total bought quantity; sells
  reduce the remaining quantity only. Tickers with nothing left are omitted.

  Raises:
    MalformedInputError: a ticker has stats but no bought quantity.
  """
  ticker_stats: Dict[str, TickerStats] = {}
  total_injected = Decimal(0)
  total_sold = Decimal(0)
  total_dividends = Decimal(0)
  total_fees = Decimal(0)

  for record in records:
    kind = record.kind

    if kind == TransactionKind.CASH_TOP_UP:
      total_injected += record.total_amount
      continue

    if kind == TransactionKind.DIVIDEND:
      total_dividends += record.total_amount
      continue

    if kind == TransactionKind.FEE:
      total_fees += abs(record.total_amount)
      continue

    # A buy of the settlement currency itself is a deposit
    if kind == TransactionKind.BUY and record.ticker == settlement_currency:
      total_injected += record.total_amount
      continue

    stats = ticker_stats.setdefault(record.ticker, TickerStats())

    if kind == TransactionKind.BUY:
      stats.bought_quantity += record.quantity
      stats.total_bought_amount += record.total_amount
    elif kind == TransactionKind.SELL:
      stats.sold_quantity += record.quantity
      total_sold += record.total_amount

  positions = {}
  for ticker, stats in ticker_stats.items():
    if stats.bought_quantity <= 0:
      raise MalformedInputError(ticker)

    remaining = stats.remaining_quantity
    if remaining > 0:
      positions[ticker] = PositionResult(
        ticker=ticker,
        remaining_quantity=remaining,
        average_price=stats.total_bought_amount / stats.bought_quantity,
      )
    elif remaining < 0:
      logger.warning(
        f"{ticker}: sold {stats.sold_quantity} but bought only "
        f"{stats.bought_quantity}; position omitted"
      )

  summary = PortfolioSummary(
    total_injected=total_injected,
    total_sold=total_sold,
    total_dividends=total_dividends,
    total_fees=total_fees,
  )
  logger.info(
    f"Aggregated {len(ticker_stats)} tickers into {len(positions)} open positions"
  )
  return AggregationResult(positions=positions, summary=summary)
