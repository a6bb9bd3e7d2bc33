"""ユーティリティモジュール。"""

from .logger import LOG_LEVEL_ENV, ProgressLogger, get_log_filename, setup_logging

__all__ = ["LOG_LEVEL_ENV", "ProgressLogger", "get_log_filename", "setup_logging"]
