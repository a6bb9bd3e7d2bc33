"""集計レポートのモデル。"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


OTHER_KEY = "Other"
TOTAL_KEY = "Total"


@dataclass(frozen=True)
class GroupMetrics:
    """1グループ分の集計値。

    すべての値は自明なプロパティ（can_be_ignored）を除いて数える。
    """
    key: str
    total_members: int = 0
    pinvoke_count: int = 0
    unsafe_context_count: int = 0
    unsafe_api_count: int = 0
    # 並び替え用。レポートの列には出力しない
    unsafe_members: int = 0

    def as_vector(self) -> List[int]:
        """レポート列の順に値を返す。"""
        return [
            self.total_members,
            self.pinvoke_count,
            self.unsafe_context_count,
            self.unsafe_api_count,
        ]

    def merged(self, other: "GroupMetrics", key: Optional[str] = None) -> "GroupMetrics":
        """要素ごとに加算したメトリクスを返す。

        Args:
            other: 加算するメトリクス
            key: 結果のキー（省略時は自身のキー）

        Returns:
            新しいGroupMetrics
        """
        return GroupMetrics(
            key=self.key if key is None else key,
            total_members=self.total_members + other.total_members,
            pinvoke_count=self.pinvoke_count + other.pinvoke_count,
            unsafe_context_count=self.unsafe_context_count + other.unsafe_context_count,
            unsafe_api_count=self.unsafe_api_count + other.unsafe_api_count,
            unsafe_members=self.unsafe_members + other.unsafe_members,
        )


@dataclass
class ReportTable:
    """グループ別集計の結果。

    groups は最初に出現した順の全グループ、ranked は上位Nグループ、
    other はそれ以外の合算（切り捨てがない場合はNone）。
    """
    groups: List[GroupMetrics] = field(default_factory=list)
    ranked: List[GroupMetrics] = field(default_factory=list)
    other: Optional[GroupMetrics] = None
    total: GroupMetrics = field(default_factory=lambda: GroupMetrics(TOTAL_KEY))

    def rows(self) -> List[GroupMetrics]:
        """Markdown出力の行順（上位グループ、Other、Total）を返す。"""
        rows = list(self.ranked)
        if self.other is not None:
            rows.append(self.other)
        rows.append(self.total)
        return rows

    def is_truncated(self) -> bool:
        return self.other is not None


@dataclass(frozen=True)
class ComparisonRow:
    """2つのレポート間の1行分の差分。"""
    key: str
    base: Tuple[int, ...]
    diff: Tuple[int, ...]

    @property
    def delta(self) -> Tuple[int, ...]:
        """diff - base を要素ごとに計算する。"""
        return tuple(d - b for b, d in zip(self.base, self.diff))

    def has_changes(self) -> bool:
        return any(self.delta)


@dataclass
class ComparisonTable:
    """比較レポート全体。header_lines はbase側のヘッダー2行をそのまま保持する。"""
    header_lines: List[str]
    rows: List[ComparisonRow] = field(default_factory=list)

    def changed_rows(self) -> List[ComparisonRow]:
        return [row for row in self.rows if row.has_changes()]
