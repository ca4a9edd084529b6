#!/usr/bin/env python3
"""
Console entry point: print average purchase prices for a brokerage statement.
"""
import sys
import json
import logging
import argparse

from config.logger_config import setup_logging
from config.settings import load_settings
from errors import MappingGapError, StatementError
from portfolio import run_from_settings
from reporting import render_mapping_hint, render_report, report_payload

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
    description="Average purchase prices and cash flows from a brokerage CSV export"
  )
  parser.add_argument(
    "--documents",
    dest="statement_dir",
    help="Directory holding the statement CSV (default: STATEMENT_DIR or ./documents)",
  )
  parser.add_argument(
    "--mapping",
    dest="mapping_file",
    help="YAML file with a 'tickers' mapping of ticker to ISIN",
  )
  parser.add_argument(
    "--env-file",
    default=".env",
    help="Dotenv file with TICKER_<SYMBOL>=<ISIN> entries (default: .env)",
  )
  parser.add_argument(
    "--currency",
    dest="settlement_currency",
    help="Settlement currency label (default: SETTLEMENT_CURRENCY or EUR)",
  )
  parser.add_argument(
    "--log-level",
    choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    help="Logging level (default: LOG_LEVEL or INFO)",
  )
  parser.add_argument(
    "--log-dir",
    help="Write per-run log files to this directory",
  )
  parser.add_argument(
    "--json",
    action="store_true",
    help="Print the report as JSON instead of text",
  )
  return parser


def main(argv=None) -> int:
  """Run the report and return the process exit status."""
  args = build_parser().parse_args(argv)

  try:
    settings = load_settings(
      env_file=args.env_file,
      statement_dir=args.statement_dir,
      mapping_file=args.mapping_file,
      settlement_currency=args.settlement_currency,
      log_level=args.log_level,
      log_dir=args.log_dir,
    )
  except StatementError as e:
    setup_logging(args.log_level)
    logger.error(str(e))
    print(f"Error: {e}", file=sys.stderr)
    return e.exit_code

  setup_logging(settings.log_level, settings.log_dir)

  try:
    run = run_from_settings(settings)
  except MappingGapError as e:
    logger.error(str(e))
    print(render_mapping_hint(e), file=sys.stderr)
    return e.exit_code
  except StatementError as e:
    logger.error(f"Error during processing: {e}")
    print(f"Error: {e}", file=sys.stderr)
    return e.exit_code

  if args.json:
    print(json.dumps(report_payload(run, settings.ticker_map), indent=2))
  else:
    print(render_report(run.result, settings.ticker_map, run.settlement_currency))

  return 0


if __name__ == "__main__":
  sys.exit(main())
