"""
Utility modules for regioncap.
"""

from .logger import (
    get_logger,
    is_main_process,
    should_log,
    get_rank,
    set_log_level,
    enable_output_dir_file_logging,
    FileLoggingConfig,
)

__all__ = [
    "get_logger",
    "is_main_process",
    "should_log",
    "get_rank",
    "set_log_level",
    "enable_output_dir_file_logging",
    "FileLoggingConfig",
]
