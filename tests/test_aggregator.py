"""グループ別集計のテスト。"""

import pytest

from unsafe_surface.models import (
    DeclarationKind,
    GroupMetrics,
    MemberRef,
    MemberSafetyRecord,
    ReportTable,
)
from unsafe_surface.report import AggregationError, StatisticsAggregator, group_all


def make_record(
    file: str,
    name: str = "M",
    context: bool = False,
    api: bool = False,
    pinvoke: bool = False,
    trivial: bool = False,
    kind: DeclarationKind = DeclarationKind.ROUTINE,
) -> MemberSafetyRecord:
    return MemberSafetyRecord(
        file=file,
        member=MemberRef(kind, name, 1, 1),
        has_unsafe_context=context,
        has_unsafe_api_call=api,
        is_pinvoke=pinvoke,
        is_trivial_property=trivial,
    )


def by_file(record: MemberSafetyRecord) -> str:
    return record.file


class TestGroupMetrics:
    """GroupMetricsのテスト。"""

    def test_merged(self):
        """要素ごとの加算のテスト。"""
        a = GroupMetrics("a", 3, 1, 2, 0, 2)
        b = GroupMetrics("b", 1, 0, 1, 1, 1)
        merged = a.merged(b, key="ab")
        assert merged.key == "ab"
        assert merged.as_vector() == [4, 1, 3, 1]
        assert merged.unsafe_members == 3


class TestStatisticsAggregator:
    """StatisticsAggregatorのテスト。"""

    def test_single_group(self):
        """全体で1グループに集計するテスト。"""
        records = [
            make_record("a.cs", context=True),
            make_record("a.cs", pinvoke=True, context=True),
            make_record("b.cs", api=True),
            make_record("b.cs"),
        ]
        table = StatisticsAggregator().aggregate(records, group_all)
        assert [g.key for g in table.ranked] == ["All"]
        assert table.other is None
        assert table.total.as_vector() == [4, 1, 2, 1]

    def test_trivial_properties_are_not_counted(self):
        """自明なプロパティが全列で0として数えられるテスト。"""
        records = [
            make_record("a.cs", "P", context=True, trivial=True, kind=DeclarationKind.PROPERTY),
            make_record("a.cs", "M"),
        ]
        table = StatisticsAggregator().aggregate(records, by_file)
        assert table.total.as_vector() == [1, 0, 0, 0]
        assert table.total.unsafe_members == 0

    def test_ranking_by_unsafe_count(self):
        """unsafeメンバー数の降順、同数は出現順に並ぶテスト。"""
        records = [
            make_record("safe.cs"),
            make_record("one.cs", context=True),
            make_record("two.cs", context=True),
            make_record("two.cs", api=True),
            make_record("also_one.cs", pinvoke=True),
        ]
        table = StatisticsAggregator().aggregate(records, by_file)
        assert [g.key for g in table.ranked] == ["two.cs", "one.cs", "also_one.cs", "safe.cs"]
        # groups は出現順のまま
        assert [g.key for g in table.groups] == ["safe.cs", "one.cs", "two.cs", "also_one.cs"]

    def test_other_row(self):
        """上位N件を超えるグループがOtherに合算されるテスト。"""
        records = []
        for i in range(10):
            # file{i} は i 個のunsafeメンバーを持つ
            records.append(make_record(f"file{i}.cs", "Safe"))
            for j in range(i):
                records.append(make_record(f"file{i}.cs", f"U{j}", context=True))

        table = StatisticsAggregator(top_groups=8).aggregate(records, by_file)
        assert [g.key for g in table.ranked] == [f"file{i}.cs" for i in range(9, 1, -1)]
        assert table.is_truncated()
        assert table.other.key == "Other"
        # file1 (2メンバー、1 unsafe) と file0 (1メンバー) の合算
        assert table.other.as_vector() == [3, 0, 1, 0]
        assert table.total.as_vector() == [55, 0, 45, 0]
        assert [row.key for row in table.rows()][-2:] == ["Other", "Total"]

    def test_rows_sum_to_total(self):
        """各行の合計がTotalと一致するテスト。"""
        records = [
            make_record(f"f{i % 12}.cs", context=i % 2 == 0, api=i % 3 == 0, pinvoke=i % 5 == 0)
            for i in range(100)
        ]
        table = StatisticsAggregator(top_groups=3).aggregate(records, by_file)
        summed = [0, 0, 0, 0]
        for row in table.rows()[:-1]:
            summed = [s + v for s, v in zip(summed, row.as_vector())]
        assert summed == table.total.as_vector()
        assert table.total.total_members == 100

    def test_inconsistent_totals_raise(self):
        """各行の合計がTotalと一致しない集計表でエラーになるテスト。"""
        table = ReportTable(
            groups=[GroupMetrics("a.cs", total_members=1)],
            ranked=[GroupMetrics("a.cs", total_members=1)],
            total=GroupMetrics("Total", total_members=2),
        )
        with pytest.raises(AggregationError):
            StatisticsAggregator._check_totals(table)

    def test_empty_input(self):
        """レコードがない場合のテスト。"""
        table = StatisticsAggregator().aggregate([], group_all)
        assert table.ranked == []
        assert table.other is None
        assert table.total.as_vector() == [0, 0, 0, 0]

    def test_group_metrics_keeps_all_groups(self):
        """group_metricsが切り捨てなしで全グループを返すテスト。"""
        records = [make_record(f"f{i}.cs") for i in range(20)]
        groups = StatisticsAggregator(top_groups=2).group_metrics(records, by_file)
        assert len(groups) == 20
        assert all(g.total_members == 1 for g in groups)

    def test_invalid_top_groups(self):
        """上位グループ数が0以下の場合のテスト。"""
        with pytest.raises(ValueError):
            StatisticsAggregator(top_groups=0)
