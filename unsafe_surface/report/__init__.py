"""集計と差分比較。"""

from .aggregator import AggregationError, StatisticsAggregator, DEFAULT_TOP_GROUPS, group_all
from .differencer import ReportDifferencer

__all__ = [
    "AggregationError",
    "StatisticsAggregator",
    "DEFAULT_TOP_GROUPS",
    "group_all",
    "ReportDifferencer",
]
