"""Markdown形式の集計表の出力と読み込み。"""

from typing import Dict, List, Tuple
import logging
import re

from ..models.report import ReportTable

logger = logging.getLogger(__name__)


MARKDOWN_HEADER = (
    "| Assembly | Total<br/>methods | P/Invokes | Methods with<br/>'unsafe' context "
    "| Methods with<br/>Unsafe API calls |"
)
MARKDOWN_DIVIDER = (
    "| ---------| ------------------| ----------| ----------------------------------"
    "| ----------------------------------|"
)


# エスケープされていない列区切り
_CELL_SEPARATOR = re.compile(r"(?<!\\)\|")


class ReportParseError(ValueError):
    """比較入力の表が不正な場合のエラー。"""

    def __init__(self, source: str, message: str, line_number: int = 0):
        location = f"{source}:{line_number}" if line_number else source
        super().__init__(f"Malformed report {location}: {message}")
        self.source = source
        self.line_number = line_number


def escape_cell(text: str) -> str:
    """セル内の列区切り記号をエスケープする。"""
    return text.replace("|", "\\|")


def split_cells(line: str) -> List[str]:
    """表の1行をセルに分解する（エスケープされた \\| はセル内の文字として扱う）。"""
    line = line.strip()
    if line.startswith("|"):
        line = line[1:]
    if line.endswith("|") and not line.endswith("\\|"):
        line = line[:-1]
    return _CELL_SEPARATOR.split(line)


def _row(key: str, values: List[int], bold: bool = False) -> str:
    cells = [f"**{v}**" if bold else str(v) for v in values]
    return f"| {escape_cell(key)} | " + " | ".join(cells) + " |"


def render_markdown(table: ReportTable) -> str:
    """集計表をMarkdownに変換する。

    上位グループの後に *Other*（切り捨てがある場合）と **Total** を出力する。

    Args:
        table: 集計表

    Returns:
        Markdownテキスト（末尾改行付き）
    """
    lines = [MARKDOWN_HEADER, MARKDOWN_DIVIDER]
    for group in table.ranked:
        lines.append(_row(group.key, group.as_vector()))
    if table.other is not None:
        lines.append(_row(f"*{table.other.key}*", table.other.as_vector()))
    lines.append(_row(f"**{table.total.key}**", table.total.as_vector(), bold=True))
    return "\n".join(lines) + "\n"


def parse_markdown(text: str, source: str = "<string>") -> Tuple[List[str], Dict[str, List[int]]]:
    """出力済みのMarkdown表を読み込む。

    先頭2行（ヘッダーと区切り）は読み飛ばし、各データ行をキーと数値列に
    分解する。キーの強調記号はそのまま残し、数値の強調記号は取り除く。

    Args:
        text: Markdownテキスト
        source: エラーメッセージ用の入力名

    Returns:
        (ヘッダー2行, キー -> 数値リスト) のタプル（出現順）

    Raises:
        ReportParseError: ヘッダーがない、列数が合わない、数値でない、
            キーが重複する場合
    """
    lines = text.splitlines()
    if len(lines) < 2:
        raise ReportParseError(source, "missing table header")

    header_lines = lines[:2]
    width = len(split_cells(header_lines[0])) - 1
    if width < 1:
        raise ReportParseError(source, "table header has no metric columns", 1)

    data: Dict[str, List[int]] = {}
    for line_number, line in enumerate(lines[2:], start=3):
        if not line.strip():
            continue
        parts = split_cells(line)
        key = parts[0].strip().replace("\\|", "|")
        cells = parts[1:]
        if not key or len(cells) != width:
            raise ReportParseError(
                source, f"expected a key and {width} numeric columns, got {line!r}", line_number
            )
        try:
            values = [int(cell.strip(" *")) for cell in cells]
        except ValueError:
            raise ReportParseError(source, f"non-numeric value in {line!r}", line_number)
        if key in data:
            raise ReportParseError(source, f"duplicate key {key!r}", line_number)
        data[key] = values

    logger.debug(f"Parsed {len(data)} rows from {source}")
    return header_lines, data
