"""レポート形式の判定。"""

from pathlib import Path
from typing import Optional, Union


SUPPORTED_FORMATS = (".csv", ".md", ".xlsx")


class UnsupportedReportFormat(ValueError):
    """レポートの拡張子が未対応の場合のエラー。"""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(
            message or f"Unknown report format, must be one of {', '.join(SUPPORTED_FORMATS)}: {path}"
        )
        self.path = path


def report_format(output_path: Union[str, Path]) -> str:
    """出力先の拡張子を検証して小文字で返す。

    Raises:
        UnsupportedReportFormat: 未対応の拡張子の場合
    """
    suffix = Path(output_path).suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        raise UnsupportedReportFormat(str(output_path))
    return suffix
