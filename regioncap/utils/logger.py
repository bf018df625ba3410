"""
Logging for regioncap with distributed-training awareness.

The loader is usually constructed once per training process. When a job runs
under torchrun / DDP every rank builds its own loader, so by default only rank 0
emits log records. Set REGIONCAP_VERBOSE=1 to enable logging from all ranks.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

ROOT_LOGGER_NAME = "regioncap"
VERBOSE_ENV_VAR = "REGIONCAP_VERBOSE"

_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_rank() -> int:
    """
    Get the current process rank in distributed training.

    Returns:
        Process rank (0 for single GPU or main process)
    """
    rank = os.environ.get("RANK")
    if rank is not None:
        return int(rank)

    local_rank = os.environ.get("LOCAL_RANK")
    if local_rank is not None:
        return int(local_rank)

    return 0


def is_main_process() -> bool:
    """Check if current process is the main process (rank 0)."""
    return get_rank() == 0


def should_log() -> bool:
    """
    Determine if current process should log messages.

    Returns:
        True if rank 0 or verbose mode enabled
    """
    verbose = os.environ.get(VERBOSE_ENV_VAR, "0").strip().lower()
    if verbose in ("1", "true", "yes"):
        return True
    return is_main_process()


class RankFilter(logging.Filter):
    """Logging filter that blocks messages from non-main processes."""

    def filter(self, record: logging.LogRecord) -> bool:
        return should_log()


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a rank-aware logger under the ``regioncap`` hierarchy.

    Args:
        name: Logger name. Module names (``regioncap.datasets.loader``) are used
              as-is; anything else is nested under ``regioncap.``.

    Returns:
        Configured logger instance

    Examples:
        >>> from regioncap.utils import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("DataLoader loading h5 file: %s", path)  # Only logs from rank 0
    """
    _package_logger()

    if not name or name == ROOT_LOGGER_NAME:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
    elif name.startswith(ROOT_LOGGER_NAME + "."):
        logger = logging.getLogger(name)
    else:
        logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")

    has_rank_filter = any(isinstance(f, RankFilter) for f in logger.filters)
    if not has_rank_filter:
        logger.addFilter(RankFilter())

    return logger


def set_log_level(level: int | str) -> None:
    """
    Set the log level for all regioncap loggers.

    Examples:
        >>> import logging
        >>> from regioncap.utils.logger import set_log_level
        >>> set_log_level(logging.DEBUG)
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        level = resolved
    _package_logger().setLevel(level)


# ---------------------------------------------------------------------------
# File logging helpers
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class FileLoggingConfig:
    enabled: bool = True
    filename: str = "regioncap.log"


def enable_output_dir_file_logging(
    output_dir: str, cfg: Optional[FileLoggingConfig] = None
) -> str | None:
    """Mirror regioncap logs into ``output_dir/<filename>``.

    - Only activates on the main process (rank 0).
    - Idempotent: a second call for the same file returns the existing path.
    """

    if not output_dir or not is_main_process():
        return None

    if cfg is None:
        cfg = FileLoggingConfig()
    if not cfg.enabled:
        return None

    try:
        os.makedirs(output_dir, exist_ok=True)
    except OSError as exc:
        logger.warning(
            "File logging disabled: failed to create output_dir %s (%s)",
            output_dir,
            exc,
        )
        return None

    filename = cfg.filename.strip() if isinstance(cfg.filename, str) else ""
    if not filename:
        filename = FileLoggingConfig.filename
    log_path = os.path.join(output_dir, filename)

    package_logger = _package_logger()
    for h in list(package_logger.handlers):
        base = getattr(h, "baseFilename", None)
        if isinstance(base, str) and os.path.abspath(base) == os.path.abspath(log_path):
            return log_path

    try:
        handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError as exc:
        logger.warning(
            "File logging disabled: failed to open log file %s (%s)",
            log_path,
            exc,
        )
        return None

    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    package_logger.addHandler(handler)
    return log_path


logger = get_logger(__name__)
