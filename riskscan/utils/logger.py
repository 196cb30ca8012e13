import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - "
    "<level>{message}</level>"
)


def setup_logger(*, json_logs: bool = False, level: str = "INFO", log_dir: str | None = "logs") -> None:
    """Configure loguru for the scanner.

    `level` comes from settings.log_level and applies to the console only.
    The scan log under `log_dir` keeps DEBUG so a degraded analyzer can be
    traced afterwards; pass log_dir=None to log to the console alone.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        serialize=json_logs,
        format="{message}" if json_logs else CONSOLE_FORMAT,
        colorize=not json_logs,
    )

    if log_dir is None:
        return
    logger.add(
        Path(log_dir) / "riskscan_{time:YYYY-MM-DD}.log",
        rotation="20 MB",
        retention="7 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
    )
