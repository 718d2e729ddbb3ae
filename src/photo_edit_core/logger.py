"""
Logging setup.
All modules log through loguru directly; this module only installs the sinks.
"""
import sys
from pathlib import Path
from typing import Optional
from loguru import logger


def get_log_file_path() -> str:
    """Log file under the user's home directory"""
    log_dir = Path.home() / ".photo_edit_core" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return str(log_dir / "photo_edit_core.log")


def setup_logging(level: str = "INFO", log_file: Optional[str] = None, file_output: bool = True):
    """
    Replace loguru's default handler with a console sink and a rotating file sink.

    Args:
        level: console level, DEBUG messages always go to the file
        log_file: explicit log file path, defaults to get_log_file_path()
        file_output: disable to keep logs on the console only
    """
    logger.remove()

    # No stderr when frozen as a windowed app
    if sys.stderr is not None:
        logger.add(
            sys.stderr,
            format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
            level=level,
            colorize=True
        )

    if not file_output:
        return

    try:
        path = log_file or get_log_file_path()
        logger.add(
            path,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
            level="DEBUG",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            encoding="utf-8"
        )
    except OSError as e:
        logger.warning(f"File logging disabled: {e}")
