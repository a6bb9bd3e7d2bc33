"""2つのMarkdownレポートの差分比較。"""

from pathlib import Path
from typing import Dict, List, Tuple, Union
import logging

from ..io.markdown_table import ReportParseError, escape_cell, parse_markdown, split_cells
from ..io.formats import UnsupportedReportFormat
from ..models.report import ComparisonRow, ComparisonTable

logger = logging.getLogger(__name__)


# 末尾に固定するキー（この順で並ぶ）
PINNED_KEYS: Dict[str, int] = {
    "misc": 1,
    "other": 2,
    "total": 3,
}


def sort_key(key: str) -> Tuple[int, str]:
    """比較表の行順を決めるキー。

    通常のキーは大文字小文字を区別しない辞書順、misc/other/totalは
    強調記号を除いて判定し、この順で末尾に置く。
    """
    pinned = PINNED_KEYS.get(key.strip("* ").lower(), 0)
    return pinned, key.upper()


def format_delta(delta: int) -> str:
    """差分の注釈を作る（増加は赤、減少は緑、0は空）。"""
    if delta > 0:
        return f"(${{\\textsf{{\\color{{red}}+{delta}}}}}$)"
    if delta < 0:
        return f"(${{\\textsf{{\\color{{green}}{delta}}}}}$)"
    return ""


class ReportDifferencer:
    """出力済みの2つの集計表を突き合わせて差分表を作る。"""

    def compare(
        self,
        base_text: str,
        diff_text: str,
        base_name: str = "base",
        diff_name: str = "diff"
    ) -> ComparisonTable:
        """2つのMarkdown表を比較する。

        片方にしかないキーは全列0として扱う。ヘッダーはbase側をそのまま使う。

        Args:
            base_text: 比較元のMarkdown
            diff_text: 比較先のMarkdown
            base_name: エラーメッセージ用の比較元名
            diff_name: エラーメッセージ用の比較先名

        Returns:
            ComparisonTable

        Raises:
            ReportParseError: どちらかの表が不正な場合
        """
        base_header, base_data = parse_markdown(base_text, base_name)
        diff_header, diff_data = parse_markdown(diff_text, diff_name)

        width = self._width(base_header)
        if self._width(diff_header) != width:
            raise ReportParseError(
                diff_name, f"column count differs from {base_name}", 1
            )

        zeros = [0] * width
        keys = sorted(set(base_data) | set(diff_data), key=sort_key)
        rows = [
            ComparisonRow(
                key=key,
                base=tuple(base_data.get(key, zeros)),
                diff=tuple(diff_data.get(key, zeros)),
            )
            for key in keys
        ]

        logger.info(
            f"Compared {len(base_data)} base rows with {len(diff_data)} diff rows, "
            f"{sum(1 for row in rows if row.has_changes())} changed"
        )
        return ComparisonTable(header_lines=list(base_header), rows=rows)

    @staticmethod
    def _width(header_lines: List[str]) -> int:
        return len(split_cells(header_lines[0])) - 1

    @staticmethod
    def render(table: ComparisonTable) -> str:
        """比較表をMarkdownに変換する。

        各セルはdiff側の値と差分注釈。
        """
        lines = list(table.header_lines)
        for row in table.rows:
            cells = []
            for value, delta in zip(row.diff, row.delta):
                annotation = format_delta(delta)
                cells.append(f"{value} {annotation}" if annotation else str(value))
            lines.append(f"| {escape_cell(row.key)} | " + " | ".join(cells) + " |")
        return "\n".join(lines) + "\n"

    def compare_files(
        self,
        base_path: Union[str, Path],
        diff_path: Union[str, Path],
        output_path: Union[str, Path]
    ) -> ComparisonTable:
        """2つの.mdファイルを比較して結果を書き込む。

        Args:
            base_path: 比較元のMarkdownレポート
            diff_path: 比較先のMarkdownレポート
            output_path: 出力先

        Returns:
            ComparisonTable

        Raises:
            UnsupportedReportFormat: 入力が.mdでない場合
            ReportParseError: 入力の表が不正な場合
        """
        base_path, diff_path = Path(base_path), Path(diff_path)
        for path in (base_path, diff_path):
            if path.suffix.lower() != ".md":
                raise UnsupportedReportFormat(str(path), "Reports must be .md files")

        table = self.compare(
            base_path.read_text(encoding="utf-8"),
            diff_path.read_text(encoding="utf-8"),
            base_name=str(base_path),
            diff_name=str(diff_path),
        )

        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(self.render(table), encoding="utf-8")
        logger.info(f"Comparison report written to {output}")
        return table
