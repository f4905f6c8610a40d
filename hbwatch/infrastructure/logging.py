import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

FILE_LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logging(debug: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """
    Setup the screen log for hbwatch.

    The screen log is always on; a file log is attached later with
    `open_log_file` once the configuration is known.

    Args:
        debug: If True, enable DEBUG level logging (encoder command lines, fragments)
        console: Optional rich Console to render into (tests pass a recording one)
    """
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(message)s',
        datefmt='[%x %X]',
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True, markup=False)],
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Screen logging initialized (debug={'ON' if debug else 'OFF'})")
    return logger


def dated_log_path(log_output: Path, now: Optional[datetime] = None) -> Path:
    """`<log_output>.<YYYY-MM-DD.HH-MM-SS>`: one log file per service start."""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d.%H-%M-%S")
    return log_output.with_name(f"{log_output.name}.{stamp}")


def open_log_file(log_output: Optional[Path], fallback: bool = False) -> Optional[Path]:
    """
    Attach a file handler to the root logger.

    Returns the opened log file, or None for screen-only logging. Raises the
    OSError when the file cannot be opened unless `fallback` is set.
    """
    logger = logging.getLogger(__name__)
    if not log_output:
        logger.info("Screen log only.")
        return None

    logger.info("Opening log file...")
    log_file = dated_log_path(Path(log_output))
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, mode="w")
    except OSError:
        if not fallback:
            raise
        logger.warning("Failed to open log file, continue with screen log only.")
        return None

    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    logger.info(f"Logging to {log_file}")
    return log_file


def close_log_files() -> None:
    """Flush and detach every file handler from the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            handler.flush()
            handler.close()
            root.removeHandler(handler)
