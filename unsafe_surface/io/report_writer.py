"""集計レポートの出力（コンソール、CSV、Markdown、Excel）。"""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union
import logging

from ..models.member import MemberSafetyRecord
from ..models.report import GroupMetrics
from ..report.aggregator import (
    DEFAULT_TOP_GROUPS,
    GroupKeyFunc,
    StatisticsAggregator,
    group_all,
)
from .formats import report_format
from .excel_writer import ExcelReportWriter
from .markdown_table import render_markdown

logger = logging.getLogger(__name__)


CSV_HEADER = "Assembly, Methods, P/Invokes, With unsafe context, With Unsafe API calls"


def render_csv(groups: Sequence[GroupMetrics]) -> str:
    """全グループをCSVに変換する（Other/Totalへの畳み込みなし）。"""
    lines = [CSV_HEADER]
    for group in groups:
        values = ", ".join(str(v) for v in group.as_vector())
        lines.append(f"\"{group.key}\", {values}")
    return "\n".join(lines) + "\n"


def render_console_summary(records: Iterable[MemberSafetyRecord]) -> str:
    """コンソール向けのサマリーを作る。

    Args:
        records: 分類結果

    Returns:
        固定幅で整形した件数表示
    """
    records = list(records)
    counted = [r for r in records if not r.can_be_ignored]
    counts = [
        ("Total trivial properties:", sum(1 for r in records if r.can_be_ignored)),
        ("Total methods:", len(counted)),
        ("Total P/Invokes:", sum(1 for r in counted if r.is_pinvoke)),
        ("Total methods with 'unsafe' context:", sum(1 for r in counted if r.has_unsafe_context)),
        ("Total methods with Unsafe API calls:", sum(1 for r in counted if r.has_unsafe_api_call)),
    ]
    lines = [""]
    lines.extend(f"  {label:<37}{count:>8}" for label, count in counts)
    lines.append("")
    return "\n".join(lines)


class ReportWriter:
    """拡張子に応じて集計レポートを書き出す。"""

    def __init__(self, top_groups: int = DEFAULT_TOP_GROUPS):
        """レポートライターを初期化する。

        Args:
            top_groups: Markdown/Excelで個別に出力する上位グループ数
        """
        self.aggregator = StatisticsAggregator(top_groups=top_groups)

    @staticmethod
    def check_format(output_path: Union[str, Path]) -> str:
        """出力先の拡張子を検証する。

        解析やファイル書き込みの前に呼び出して早期に失敗させる。

        Args:
            output_path: 出力先パス

        Returns:
            小文字の拡張子

        Raises:
            UnsupportedReportFormat: 未対応の拡張子の場合
        """
        return report_format(output_path)

    def write(
        self,
        records: List[MemberSafetyRecord],
        output_path: Union[str, Path],
        group_key: Optional[GroupKeyFunc] = None
    ) -> None:
        """レポートを書き出す。

        Args:
            records: 分類結果
            output_path: 出力先（.csv, .md, .xlsx）
            group_key: グループキー関数（省略時は全体で1グループ）

        Raises:
            UnsupportedReportFormat: 未対応の拡張子の場合
        """
        suffix = self.check_format(output_path)
        group_key = group_key or group_all
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)

        if suffix == ".csv":
            groups = self.aggregator.group_metrics(records, group_key)
            output.write_text(render_csv(groups), encoding="utf-8")
        elif suffix == ".md":
            table = self.aggregator.aggregate(records, group_key)
            output.write_text(render_markdown(table), encoding="utf-8")
        else:
            table = self.aggregator.aggregate(records, group_key)
            ExcelReportWriter(output).write(table, records)

        logger.info(f"Report written to {output}")
