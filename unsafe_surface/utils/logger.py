"""ロギング設定モジュール。"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime


# ログレベルを上書きする環境変数
LOG_LEVEL_ENV = "UNSAFE_SURFACE_LOG_LEVEL"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """ロギング設定をセットアップする。

    標準出力はレポート本文に使うため、コンソールハンドラーは標準エラー出力に
    書き込む。環境変数 UNSAFE_SURFACE_LOG_LEVEL が設定されていればそちらを優先する。

    Args:
        level: ログレベル（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        log_file: ログファイルへのパス（省略可）
        format_string: カスタムフォーマット文字列（省略可）

    Returns:
        ルートロガー
    """
    # デフォルトフォーマット
    if format_string is None:
        format_string = (
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    level = os.environ.get(LOG_LEVEL_ENV) or level
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(format_string)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # 既存のハンドラーを削除
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # ファイルハンドラー（指定された場合）
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            log_path,
            encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_log_filename(prefix: str = "unsafe_surface") -> str:
    """タイムスタンプ付きのログファイル名を生成する。

    Args:
        prefix: ログファイル名のプレフィックス

    Returns:
        タイムスタンプ付きのログファイル名
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.log"


class ProgressLogger:
    """ファイル単位の解析進捗を記録するヘルパークラス。"""

    def __init__(
        self,
        total: int,
        logger: Optional[logging.Logger] = None,
        log_interval: int = 10
    ):
        """進捗ロガーを初期化する。

        Args:
            total: ファイルの総数
            logger: 使用するロガー
            log_interval: 進捗更新の間隔
        """
        self.total = total
        self.current = 0
        self.failed = 0
        self.logger = logger or logging.getLogger(__name__)
        self.log_interval = max(1, log_interval)

    def update(self, message: Optional[str] = None, failed: bool = False) -> None:
        """進捗を1件進める。

        Args:
            message: 含めるメッセージ（省略可）
            failed: このファイルの解析に失敗した場合True
        """
        self.current += 1
        if failed:
            self.failed += 1
        progress = self.current / self.total * 100 if self.total else 100.0

        if self.current % self.log_interval == 0 or self.current == self.total:
            msg = f"Progress: {self.current}/{self.total} files ({progress:.1f}%)"
            if message:
                msg += f" - {message}"
            self.logger.info(msg)

    def complete(self, message: str = "Analysis complete") -> None:
        """進捗を完了としてマークする。

        Args:
            message: 完了メッセージ
        """
        msg = f"{message}: {self.current - self.failed}/{self.total} files processed"
        if self.failed:
            msg += f", {self.failed} failed"
        self.logger.info(msg)
