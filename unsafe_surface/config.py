"""設定管理モジュール。"""

from dataclasses import dataclass
from typing import List, Dict, Optional, Any
from pathlib import Path
import os
import logging

import yaml

from .io.formats import SUPPORTED_FORMATS
from .report.aggregator import DEFAULT_TOP_GROUPS
from .utils.logger import LOG_LEVEL_ENV

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """アプリケーション設定。"""

    # 解析対象
    source_dir: str = "."
    preset: str = "generic"
    group_by: Optional[str] = None

    # レポート出力先（.csv, .md, .xlsx）。省略時はコンソールのみ
    report: Optional[str] = None
    top_groups: int = DEFAULT_TOP_GROUPS

    # 並列ワーカー数（省略時はCPU数から決める）
    max_workers: Optional[int] = None

    # ロギング設定
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_yaml(cls, file_path: str) -> "Config":
        """YAMLファイルから設定を読み込む。

        Args:
            file_path: YAML設定ファイルのパス

        Returns:
            Configインスタンス
        """
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        config = cls.from_dict(data)

        # ログレベルは環境変数が優先
        config.log_level = os.getenv(LOG_LEVEL_ENV, config.log_level)

        logger.info(f"Configuration loaded from {file_path}")
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """辞書から設定を作成する。

        未知のキーは警告を出して無視する。

        Args:
            data: 設定辞書

        Returns:
            Configインスタンス
        """
        config = cls()

        for key, value in data.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")

        return config

    def validate(self) -> List[str]:
        """設定を検証する。

        Returns:
            検証エラーのリスト（有効な場合は空）
        """
        errors = []

        if not self.source_dir or not Path(self.source_dir).is_dir():
            errors.append(f"ソースディレクトリが存在しません: {self.source_dir}")

        if not isinstance(self.top_groups, int) or self.top_groups < 1:
            errors.append(f"top_groupsは1以上の整数である必要があります: {self.top_groups}")

        if self.max_workers is not None and (
            not isinstance(self.max_workers, int) or self.max_workers < 1
        ):
            errors.append(f"max_workersは1以上の整数である必要があります: {self.max_workers}")

        if self.report and Path(self.report).suffix.lower() not in SUPPORTED_FORMATS:
            errors.append(
                f"未対応のレポート形式です: {self.report} "
                f"(対応形式: {', '.join(SUPPORTED_FORMATS)})"
            )

        return errors

    def to_dict(self) -> dict:
        """設定を辞書に変換する。

        Returns:
            辞書形式の設定
        """
        return {
            "source_dir": self.source_dir,
            "preset": self.preset,
            "group_by": self.group_by,
            "report": self.report,
            "top_groups": self.top_groups,
            "max_workers": self.max_workers,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }

    def save_yaml(self, file_path: str) -> None:
        """設定をYAMLファイルに保存。

        Args:
            file_path: 保存先パス
        """
        # 出力先ディレクトリが存在しない場合は作成
        output_path = Path(file_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        # 未設定の項目は書き出さない
        data: Dict[str, Any] = {
            key: value for key, value in self.to_dict().items() if value is not None
        }

        with open(file_path, "w", encoding="utf-8") as f:
            yaml.dump(
                data,
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False
            )

        logger.info(f"Configuration saved to {file_path}")
