"""
Pydantic validators for raw statement rows.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StatementRow(BaseModel):
  """
  One data line of a brokerage export, keyed by header name.
  Values stay as raw strings; numeric parsing happens once the row
  has been classified.
  """

  date: Optional[str] = Field(default=None, alias="Date")
  ticker: Optional[str] = Field(default=None, alias="Ticker")
  type: str = Field(default="", alias="Type")
  quantity: Optional[str] = Field(default=None, alias="Quantity")
  price_per_share: Optional[str] = Field(default=None, alias="Price per share")
  total_amount: Optional[str] = Field(default=None, alias="Total Amount")
  currency: Optional[str] = Field(default=None, alias="Currency")

  model_config = ConfigDict(populate_by_name=True, extra="ignore")

  @field_validator("type", mode="before")
  @classmethod
  def default_type(cls, v):
    """Missing Type cell reads as an empty type."""
    if v is None:
      return ""
    return v

  @field_validator("ticker", mode="before")
  @classmethod
  def blank_ticker(cls, v):
    """Treat empty ticker cells as absent."""
    if isinstance(v, str):
      v = v.strip()
      if not v:
        return None
    return v

  @property
  def has_ticker(self) -> bool:
    return self.ticker is not None
