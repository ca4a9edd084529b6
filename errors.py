"""
Error taxonomy for statement processing.

Each error carries the exit code the console entry point returns for it.
"""
from typing import Iterable, List, Optional


class StatementError(Exception):
  """Base class for every recoverable failure of a run."""

  exit_code = 1


class ConfigurationError(StatementError):
  """Run cannot start because configuration or input location is unusable."""

  exit_code = 2


class MissingMappingError(ConfigurationError):
  """No ticker to identifier mapping is configured."""

  exit_code = 2

  def __init__(self, message: str = None):
    super().__init__(
      message
      or "No ticker mapping found. Set TICKER_<SYMBOL>=<ISIN> entries in "
      "the environment, a .env file or a mapping file."
    )


class StatementNotFoundError(ConfigurationError):
  """Statement directory is missing or holds no CSV file."""

  exit_code = 3

  def __init__(self, directory, message: str = None):
    self.directory = directory
    super().__init__(message or f"No .csv file found in: {directory}")


class StatementReadError(ConfigurationError):
  """Statement file exists but cannot be read or decoded."""

  exit_code = 7

  def __init__(self, file_path, reason: str):
    self.file_path = file_path
    super().__init__(f"Cannot read statement {file_path}: {reason}")


class MappingGapError(StatementError):
  """Some tickers with open positions have no identifier."""

  exit_code = 4

  def __init__(self, missing_tickers: Iterable[str]):
    self.missing_tickers: List[str] = list(missing_tickers)
    super().__init__(
      f"Missing identifier mappings for: {', '.join(self.missing_tickers)}"
    )


class RecordParseError(StatementError):
  """A recognized row has a required field that cannot be parsed."""

  exit_code = 5

  def __init__(
    self,
    line_number: int,
    row_type: str,
    field: str,
    value: Optional[str] = None,
  ):
    self.line_number = line_number
    self.row_type = row_type
    self.field = field
    self.value = value
    super().__init__(
      f"Line {line_number} ({row_type}): cannot parse '{field}' "
      f"from {value!r}"
    )


class MalformedInputError(StatementError):
  """Aggregated data is inconsistent, e.g. a sell with no prior buy."""

  exit_code = 6

  def __init__(self, ticker: str, message: str = None):
    self.ticker = ticker
    super().__init__(
      message
      or f"Ticker {ticker} has sells but no bought quantity; "
      "average price is undefined"
    )
