"""
Pydantic models for statement records and aggregation results.
"""
from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


CURRENCY_MARKERS = ("€", "EUR ")


def strip_currency(value):
  """
  Remove a currency marker from a monetary string.
  'EUR 12.50' -> '12.50', '-€0.12' -> '-0.12'
  """
  if not isinstance(value, str):
    return value
  for marker in CURRENCY_MARKERS:
    value = value.replace(marker, "", 1)
  return value.strip()


def _strip_text(value):
  if isinstance(value, str):
    return value.strip()
  return value


class TransactionKind(str, Enum):
  """Recognized transaction kinds."""

  BUY = "BUY"
  SELL = "SELL"
  DIVIDEND = "DIVIDEND"
  FEE = "FEE"
  CASH_TOP_UP = "CASH_TOP_UP"


class _Record(BaseModel):
  """Shared configuration for immutable records."""

  model_config = ConfigDict(frozen=True)

  line_number: Optional[int] = None


class BuyRecord(_Record):
  kind: Literal[TransactionKind.BUY] = TransactionKind.BUY
  ticker: str = Field(min_length=1)
  quantity: Decimal
  price_per_unit: Decimal
  total_amount: Decimal

  @field_validator("quantity", mode="before")
  @classmethod
  def parse_quantity(cls, v):
    return _strip_text(v)

  @field_validator("price_per_unit", "total_amount", mode="before")
  @classmethod
  def parse_money(cls, v):
    return strip_currency(v)


class SellRecord(_Record):
  kind: Literal[TransactionKind.SELL] = TransactionKind.SELL
  ticker: str = Field(min_length=1)
  quantity: Decimal
  price_per_unit: Optional[Decimal] = None
  total_amount: Decimal

  @field_validator("quantity", mode="before")
  @classmethod
  def parse_quantity(cls, v):
    return _strip_text(v)

  @field_validator("price_per_unit", mode="before")
  @classmethod
  def parse_optional_price(cls, v):
    """Blank price cells are allowed for sells."""
    v = strip_currency(v)
    if v == "":
      return None
    return v

  @field_validator("total_amount", mode="before")
  @classmethod
  def parse_money(cls, v):
    return strip_currency(v)


class DividendRecord(_Record):
  kind: Literal[TransactionKind.DIVIDEND] = TransactionKind.DIVIDEND
  ticker: Optional[str] = None
  total_amount: Decimal

  @field_validator("total_amount", mode="before")
  @classmethod
  def parse_money(cls, v):
    return strip_currency(v)


class FeeRecord(_Record):
  """Management fee; only the magnitude of the amount is used."""

  kind: Literal[TransactionKind.FEE] = TransactionKind.FEE
  total_amount: Decimal

  @field_validator("total_amount", mode="before")
  @classmethod
  def parse_money(cls, v):
    return strip_currency(v)


class CashTopUpRecord(_Record):
  """Cash deposit, booked against the settlement currency pseudo-asset."""

  kind: Literal[TransactionKind.CASH_TOP_UP] = TransactionKind.CASH_TOP_UP
  ticker: str = "EUR"
  quantity: Decimal
  price_per_unit: Decimal = Decimal(1)
  total_amount: Decimal

  @field_validator("quantity", "total_amount", mode="before")
  @classmethod
  def parse_money(cls, v):
    return strip_currency(v)


TransactionRecord = Annotated[
  Union[BuyRecord, SellRecord, DividendRecord, FeeRecord, CashTopUpRecord],
  Field(discriminator="kind"),
]


class TickerStats(BaseModel):
  """Running totals for one ticker while records are folded in."""

  bought_quantity: Decimal = Decimal(0)
  sold_quantity: Decimal = Decimal(0)
  total_bought_amount: Decimal = Decimal(0)

  @property
  def remaining_quantity(self) -> Decimal:
    return self.bought_quantity - self.sold_quantity


class PositionResult(BaseModel):
  """Open position for a ticker."""

  model_config = ConfigDict(frozen=True)

  ticker: str
  remaining_quantity: Decimal
  average_price: Decimal


class PortfolioSummary(BaseModel):
  """Portfolio-wide cash flows in settlement currency."""

  model_config = ConfigDict(frozen=True)

  total_injected: Decimal = Decimal(0)
  total_sold: Decimal = Decimal(0)
  total_dividends: Decimal = Decimal(0)
  total_fees: Decimal = Decimal(0)

  @property
  def net_contributions(self) -> Decimal:
    """Capital injected minus capital withdrawn through sells."""
    return self.total_injected - self.total_sold


class AggregationResult(BaseModel):
  model_config = ConfigDict(frozen=True)

  positions: Dict[str, PositionResult] = Field(default_factory=dict)
  summary: PortfolioSummary = Field(default_factory=PortfolioSummary)


class ExtractionReport(BaseModel):
  """Counters collected while extracting records from a statement."""

  file_name: Optional[str] = None
  rows_processed: int = 0
  records_emitted: int = 0
  rows_dropped: int = 0
  kind_counts: Dict[str, int] = Field(default_factory=dict)

  def count(self, kind: TransactionKind):
    self.records_emitted += 1
    self.kind_counts[kind.value] = self.kind_counts.get(kind.value, 0) + 1

  @property
  def drop_rate(self) -> float:
    """Percentage of data rows that produced no record."""
    if self.rows_processed == 0:
      return 0.0
    return (self.rows_dropped / self.rows_processed) * 100
