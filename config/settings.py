"""
Run configuration: ticker identifier map, statement location and currency.

Settings are built once at startup and passed explicitly; they are frozen.
"""
import os
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

from errors import ConfigurationError

logger = logging.getLogger(__name__)

TICKER_PREFIX = "TICKER_"
DEFAULT_STATEMENT_DIR = "documents"
DEFAULT_CURRENCY = "EUR"


class TickerIdentifierMap(BaseModel):
  """Read-only ticker -> identifier (ISIN) lookup."""

  model_config = ConfigDict(frozen=True)

  identifiers: Dict[str, str] = Field(default_factory=dict)

  def __len__(self):
    return len(self.identifiers)

  def __contains__(self, ticker):
    return bool(self.identifiers.get(ticker))

  def identifier_for(self, ticker: str) -> Optional[str]:
    return self.identifiers.get(ticker) or None

  def missing(self, tickers: Iterable[str]) -> List[str]:
    """Tickers without an identifier, in the order given."""
    return [t for t in tickers if t not in self]

  @property
  def is_empty(self) -> bool:
    return len(self.identifiers) == 0


class Settings(BaseModel):
  """Immutable configuration for one run."""

  model_config = ConfigDict(frozen=True)

  ticker_map: TickerIdentifierMap = Field(default_factory=TickerIdentifierMap)
  statement_dir: Path = Path(DEFAULT_STATEMENT_DIR)
  settlement_currency: str = DEFAULT_CURRENCY
  log_level: str = "INFO"
  log_dir: Optional[Path] = None

  @field_validator("settlement_currency", "log_level")
  @classmethod
  def upper(cls, v):
    return v.strip().upper()


def tickers_from_env(env: Mapping[str, Optional[str]]) -> Dict[str, str]:
  """Collect TICKER_<SYMBOL>=<ID> entries from an environment mapping."""
  mapping = {}
  for key, value in env.items():
    if key.startswith(TICKER_PREFIX) and value:
      mapping[key[len(TICKER_PREFIX):]] = value.strip()
  return mapping


def tickers_from_yaml(file_path) -> Dict[str, str]:
  """
  Load a YAML mapping file of the form:

    tickers:
      VUSA: IE00B3XXRP09
  """
  path = Path(file_path)
  if not path.is_file():
    raise ConfigurationError(f"Ticker mapping file not found: {path}")

  try:
    with open(path, "r") as f:
      data = yaml.safe_load(f) or {}
  except yaml.YAMLError as e:
    raise ConfigurationError(f"Ticker mapping file {path} is not valid YAML: {e}") from e
  except (OSError, UnicodeDecodeError) as e:
    raise ConfigurationError(f"Cannot read ticker mapping file {path}: {e}") from e

  tickers = data.get("tickers", {}) if isinstance(data, dict) else None
  if not isinstance(tickers, dict):
    raise ConfigurationError(f"Ticker mapping file {path} has no 'tickers' mapping")

  return {str(k): str(v) for k, v in tickers.items() if v}


def load_ticker_map(
  environ: Mapping[str, str] = None,
  env_file=".env",
  mapping_file=None,
) -> TickerIdentifierMap:
  """
  Build the ticker map. Later sources override earlier ones:
  mapping file, then .env file, then process environment.
  """
  if environ is None:
    environ = os.environ

  identifiers = {}
  if mapping_file:
    identifiers.update(tickers_from_yaml(mapping_file))
  if env_file and Path(env_file).is_file():
    identifiers.update(tickers_from_env(dotenv_values(env_file)))
  identifiers.update(tickers_from_env(environ))

  logger.debug(f"Loaded {len(identifiers)} ticker mappings")
  return TickerIdentifierMap(identifiers=identifiers)


def load_settings(
  environ: Mapping[str, str] = None,
  env_file=".env",
  **overrides,
) -> Settings:
  """
  Build settings from the environment (and .env file), applying overrides.

  Overrides with a None value are ignored so CLI flags can be passed through
  unconditionally.
  """
  if environ is None:
    environ = os.environ

  file_env = {}
  if env_file and Path(env_file).is_file():
    file_env = {k: v for k, v in dotenv_values(env_file).items() if v is not None}

  def lookup(key, default=None):
    return environ.get(key, file_env.get(key, default))

  overrides = {k: v for k, v in overrides.items() if v is not None}
  mapping_file = overrides.pop("mapping_file", None) or lookup("IDENTIFIER_MAP_FILE")

  values = {
    "statement_dir": lookup("STATEMENT_DIR", DEFAULT_STATEMENT_DIR),
    "settlement_currency": lookup("SETTLEMENT_CURRENCY", DEFAULT_CURRENCY),
    "log_level": lookup("LOG_LEVEL", "INFO"),
    "log_dir": lookup("LOG_DIR") or None,
  }
  values.update(overrides)
  values["ticker_map"] = load_ticker_map(environ, env_file, mapping_file)

  return Settings(**values)
