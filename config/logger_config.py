"""
Logging configuration with optional per-run log files.
"""
import os
import logging
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _rotate_log_files(log_dir: Path) -> Path:
  """
  Back up the previous current log and return the path for this run.
  app_current.log is a symlink to the newest timestamped file.
  """
  log_dir.mkdir(parents=True, exist_ok=True)

  timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
  current_log_file = log_dir / "app_current.log"
  new_log_file = log_dir / f"app_{timestamp}.log"

  if current_log_file.exists() and not current_log_file.is_symlink():
    backup_timestamp = datetime.fromtimestamp(
      current_log_file.stat().st_mtime
    ).strftime("%Y%m%d_%H%M%S")
    backup_file = log_dir / f"app_{backup_timestamp}.log"
    # Only backup if the target doesn't already exist
    if not backup_file.exists():
      current_log_file.rename(backup_file)
  elif current_log_file.is_symlink():
    current_log_file.unlink()

  return new_log_file


def _link_current(log_dir: Path, log_file: Path):
  current_log_file = log_dir / "app_current.log"
  try:
    if current_log_file.exists() or current_log_file.is_symlink():
      current_log_file.unlink()
    current_log_file.symlink_to(log_file.name)
  except OSError as e:
    # Symlinks are unavailable on some filesystems; the timestamped file remains
    logging.getLogger(__name__).warning(f"Could not create log symlink: {e}")


def setup_logging(log_level: str = None, log_dir=None):
  """
  Setup logging for a run.

  Args:
    log_level: Logging level (DEBUG, INFO, WARNING, ERROR). Defaults to
      LOG_LEVEL from the environment, then INFO.
    log_dir: Directory for per-run log files. Console only when omitted.
  """
  if log_level is None:
    log_level = os.environ.get("LOG_LEVEL", "INFO")
  log_level = log_level.upper()

  # Console output goes to stderr, keeping stdout for the report
  handlers = [logging.StreamHandler()]

  log_file = None
  if log_dir:
    log_dir = Path(log_dir)
    log_file = _rotate_log_files(log_dir)
    handlers.append(logging.FileHandler(log_file, mode="w"))

  logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format=LOG_FORMAT,
    datefmt=DATE_FORMAT,
    handlers=handlers,
    force=True,
  )

  if log_file is not None:
    _link_current(log_dir, log_file)

  logger = logging.getLogger(__name__)
  logger.debug(f"Logging initialized at level: {log_level}")
  if log_file is not None:
    logger.info(f"Log file: {log_file}")

  # Suppress noisy libraries
  logging.getLogger("werkzeug").setLevel(logging.WARNING)

  return logger
