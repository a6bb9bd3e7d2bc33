"""分類結果のグループ別集計。"""

from typing import Callable, Iterable, List
import logging

import pandas as pd

from ..models.member import MemberSafetyRecord
from ..models.report import OTHER_KEY, TOTAL_KEY, GroupMetrics, ReportTable

logger = logging.getLogger(__name__)


GroupKeyFunc = Callable[[MemberSafetyRecord], str]

DEFAULT_TOP_GROUPS = 8

# DataFrameの列名 -> GroupMetricsのフィールド名
METRIC_COLUMNS = {
    "members": "total_members",
    "pinvokes": "pinvoke_count",
    "unsafe_context": "unsafe_context_count",
    "unsafe_apis": "unsafe_api_count",
    "unsafe": "unsafe_members",
}


class AggregationError(Exception):
    """集計結果が整合しない場合のエラー。"""
    pass


def group_all(record: MemberSafetyRecord) -> str:
    """全レコードを1グループにまとめるキー関数。"""
    return "All"


class StatisticsAggregator:
    """レコードをグループ化し、順位付けした集計表を作る。"""

    def __init__(self, top_groups: int = DEFAULT_TOP_GROUPS):
        """集計器を初期化する。

        Args:
            top_groups: 個別に出力する上位グループ数（残りはOtherに合算）
        """
        if top_groups < 1:
            raise ValueError(f"top_groups must be positive: {top_groups}")
        self.top_groups = top_groups

    @staticmethod
    def to_frame(records: Iterable[MemberSafetyRecord], group_key: GroupKeyFunc) -> pd.DataFrame:
        """レコードを集計用のDataFrameに変換する。

        自明なプロパティは全指標で0として数える（Totalの行数には影響しない）。

        Args:
            records: 分類結果
            group_key: グループキー関数

        Returns:
            1レコード1行のDataFrame
        """
        rows = []
        for record in records:
            counted = not record.can_be_ignored
            rows.append({
                "key": group_key(record),
                "members": counted,
                "pinvokes": counted and record.is_pinvoke,
                "unsafe_context": counted and record.has_unsafe_context,
                "unsafe_apis": counted and record.has_unsafe_api_call,
                "unsafe": record.is_unsafe,
            })
        return pd.DataFrame(rows, columns=["key", *METRIC_COLUMNS])

    @staticmethod
    def _metrics_from_row(key: str, row) -> GroupMetrics:
        return GroupMetrics(
            key=key,
            **{field: int(row[column]) for column, field in METRIC_COLUMNS.items()},
        )

    def group_metrics(self, records: Iterable[MemberSafetyRecord], group_key: GroupKeyFunc) -> List[GroupMetrics]:
        """グループごとのメトリクスを最初に出現した順で返す。"""
        frame = self.to_frame(records, group_key)
        if frame.empty:
            return []
        sums = frame.groupby("key", sort=False)[list(METRIC_COLUMNS)].sum()
        return [self._metrics_from_row(str(key), row) for key, row in sums.iterrows()]

    def aggregate(self, records: Iterable[MemberSafetyRecord], group_key: GroupKeyFunc) -> ReportTable:
        """グループ別の集計表を作る。

        グループはunsafeと判定されたメンバー数の降順に並べ、同数の場合は
        出現順を保つ。上位N件を個別に出力し、残りはOtherに合算する。
        Totalは全レコードから直接計算する。

        Args:
            records: 分類結果
            group_key: グループキー関数

        Returns:
            ReportTable
        """
        records = list(records)
        groups = self.group_metrics(records, group_key)

        # sortedは安定ソートなので同数のグループは出現順のまま
        ranked = sorted(groups, key=lambda g: g.unsafe_members, reverse=True)
        top = ranked[:self.top_groups]
        rest = ranked[self.top_groups:]

        other = None
        if rest:
            other = GroupMetrics(OTHER_KEY)
            for group in rest:
                other = other.merged(group, key=OTHER_KEY)

        total = self.grand_total(records)

        table = ReportTable(groups=groups, ranked=top, other=other, total=total)
        self._check_totals(table)
        logger.debug(
            f"Aggregated {len(records)} records into {len(groups)} groups "
            f"({len(rest)} folded into {OTHER_KEY})"
        )
        return table

    def grand_total(self, records: Iterable[MemberSafetyRecord]) -> GroupMetrics:
        """全レコードの合計を計算する。"""
        frame = self.to_frame(records, lambda record: TOTAL_KEY)
        if frame.empty:
            return GroupMetrics(TOTAL_KEY)
        return self._metrics_from_row(TOTAL_KEY, frame[list(METRIC_COLUMNS)].sum())

    @staticmethod
    def _check_totals(table: ReportTable) -> None:
        summed = GroupMetrics(TOTAL_KEY)
        for row in table.rows()[:-1]:
            summed = summed.merged(row)
        if summed.as_vector() != table.total.as_vector():
            message = (
                f"Group totals {summed.as_vector()} do not match grand total "
                f"{table.total.as_vector()}"
            )
            logger.error(message)
            raise AggregationError(message)
