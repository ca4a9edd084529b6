"""
Flask application serving position reports for uploaded statements.
"""
import logging
from datetime import datetime

from flask import Flask, current_app, jsonify, request

from config.logger_config import setup_logging
from config.settings import Settings, load_settings
from errors import (
  MalformedInputError,
  MappingGapError,
  RecordParseError,
  StatementError,
)
from portfolio import compute_portfolio, require_mapping
from reporting import report_payload

logger = logging.getLogger(__name__)


def create_app(settings: Settings = None) -> Flask:
  """
  Build the app around an immutable Settings object.
  Startup fails with MissingMappingError when no ticker mapping exists.
  """
  if settings is None:
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_dir)

  require_mapping(settings.ticker_map)

  app = Flask(__name__)
  app.config["STATEMENT_SETTINGS"] = settings
  logger.info(f"Loaded {len(settings.ticker_map)} ticker mappings")

  @app.before_request
  def log_request():
    """Log incoming request details."""
    logger.info(
      f"REQUEST: {request.method} {request.path} | "
      f"Remote: {request.remote_addr}"
    )

  @app.after_request
  def log_response(response):
    """Log response details."""
    logger.info(
      f"RESPONSE: {request.method} {request.path} | "
      f"Status: {response.status_code} | "
      f"Size: {response.content_length or 0} bytes"
    )
    return response

  @app.errorhandler(RecordParseError)
  def handle_parse_error(error):
    logger.error(f"Record parse failure: {error}")
    return jsonify({
      "error": str(error),
      "line_number": error.line_number,
      "field": error.field,
    }), 400

  @app.errorhandler(MappingGapError)
  def handle_mapping_gap(error):
    logger.error(str(error))
    return jsonify({
      "error": "Missing identifier mappings",
      "missing_tickers": error.missing_tickers,
    }), 422

  @app.errorhandler(MalformedInputError)
  def handle_malformed(error):
    logger.error(str(error))
    return jsonify({"error": str(error), "ticker": error.ticker}), 422

  @app.errorhandler(StatementError)
  def handle_statement_error(error):
    logger.error(str(error))
    return jsonify({"error": str(error)}), 500

  @app.route("/health", methods=["GET"])
  def health():
    """Health check endpoint."""
    return jsonify({"status": "healthy", "timestamp": datetime.now().isoformat()})

  @app.route("/positions", methods=["POST"])
  def positions():
    """
    Compute positions for an uploaded statement.

    Expected multipart/form-data:
    - file: The statement CSV (required)
    """
    if "file" not in request.files:
      return jsonify({"error": "No file provided in request"}), 400

    uploaded_file = request.files["file"]
    if uploaded_file.filename == "":
      return jsonify({"error": "Empty filename"}), 400

    if not uploaded_file.filename.lower().endswith(".csv"):
      return jsonify({"error": "Statement must be a .csv file"}), 400

    try:
      text = uploaded_file.read().decode("utf-8-sig")
    except UnicodeDecodeError:
      return jsonify({"error": "Statement is not valid UTF-8"}), 400

    app_settings: Settings = current_app.config["STATEMENT_SETTINGS"]
    run = compute_portfolio(
      text,
      app_settings.ticker_map,
      app_settings.settlement_currency,
      file_name=uploaded_file.filename,
    )

    logger.info(
      f"Report computed: {uploaded_file.filename} - "
      f"{len(run.result.positions)} positions"
    )
    return jsonify(report_payload(run, app_settings.ticker_map)), 200

  return app
