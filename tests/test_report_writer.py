"""レポート出力のテスト。"""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from openpyxl import load_workbook

from unsafe_surface.io import (
    ReportWriter,
    UnsupportedReportFormat,
    parse_markdown,
    render_console_summary,
)
from unsafe_surface.io.markdown_table import MARKDOWN_DIVIDER, MARKDOWN_HEADER
from unsafe_surface.io.report_writer import CSV_HEADER
from unsafe_surface.models import DeclarationKind, MemberRef, MemberSafetyRecord


def make_record(file: str, name: str = "M", **flags) -> MemberSafetyRecord:
    kind = DeclarationKind.PROPERTY if flags.get("is_trivial_property") else DeclarationKind.ROUTINE
    return MemberSafetyRecord(file=file, member=MemberRef(kind, name, 3, 5), **flags)


def by_file(record: MemberSafetyRecord) -> str:
    return record.file


RECORDS = [
    make_record("a.cs", "Safe"),
    make_record("a.cs", "Ptr", has_unsafe_context=True),
    make_record("b.cs", "Native", is_pinvoke=True, has_unsafe_context=True),
    make_record("b.cs", "Cast", has_unsafe_api_call=True),
    make_record("b.cs", "Prop", is_trivial_property=True),
    make_record("c.cs", "Nested", has_unsafe_modifier_on_ancestor=True),
]


class TestConsoleSummary:
    """コンソールサマリーのテスト。"""

    def test_counts(self):
        """5つの件数が右揃えで出力されるテスト。"""
        lines = render_console_summary(RECORDS).split("\n")
        assert lines[0] == ""
        assert lines[-1] == ""
        body = lines[1:-1]
        assert len(body) == 5
        assert body[0] == "  Total trivial properties:" + " " * 12 + "       1"
        assert body[1].endswith("       5")
        assert body[2].startswith("  Total P/Invokes:")
        assert body[2].endswith("1")
        assert body[3].endswith("2")
        assert body[4].endswith("1")
        assert all(len(line) == 47 for line in body)


class TestReportWriter:
    """ReportWriterのテスト。"""

    def test_csv(self):
        """CSV出力のテスト（出現順、Other/Totalなし）。"""
        with TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "report.csv"
            ReportWriter().write(RECORDS, output, by_file)

            lines = output.read_text(encoding="utf-8").splitlines()
            assert lines == [
                CSV_HEADER,
                "\"a.cs\", 2, 0, 1, 0",
                "\"b.cs\", 2, 1, 1, 1",
                "\"c.cs\", 1, 0, 0, 0",
            ]

    def test_markdown(self):
        """Markdown出力のテスト。"""
        with TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "report.MD"
            ReportWriter(top_groups=1).write(RECORDS, output, by_file)

            text = output.read_text(encoding="utf-8")
            lines = text.splitlines()
            assert lines[0] == MARKDOWN_HEADER
            assert lines[1] == MARKDOWN_DIVIDER
            assert lines[2] == "| b.cs | 2 | 1 | 1 | 1 |"
            assert lines[3] == "| *Other* | 3 | 0 | 1 | 0 |"
            assert lines[4] == "| **Total** | **5** | **1** | **2** | **1** |"

            # 出力したレポートは比較入力として読み戻せる
            _, data = parse_markdown(text)
            assert data["**Total**"] == [5, 1, 2, 1]

    def test_markdown_without_truncation(self):
        """グループ数が上限以下の場合はOther行がないテスト。"""
        with TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "report.md"
            ReportWriter().write(RECORDS, output)
            lines = output.read_text(encoding="utf-8").splitlines()
            assert lines[2:] == [
                "| All | 5 | 1 | 2 | 1 |",
                "| **Total** | **5** | **1** | **2** | **1** |",
            ]

    def test_markdown_key_with_pipe(self):
        """キーに含まれる | がエスケープされ、読み戻せるテスト。"""
        with TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "report.md"
            records = [make_record("a|b.cs", "Ptr", has_unsafe_context=True)]
            ReportWriter().write(records, output, by_file)

            text = output.read_text(encoding="utf-8")
            assert text.splitlines()[2] == "| a\\|b.cs | 1 | 0 | 1 | 0 |"

            _, data = parse_markdown(text)
            assert data["a|b.cs"] == [1, 0, 1, 0]

    def test_xlsx(self):
        """Excel出力の3シートのテスト。"""
        with TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "nested" / "report.xlsx"
            ReportWriter().write(RECORDS, output, by_file)

            wb = load_workbook(output)
            assert wb.sheetnames == ["Assemblies", "Members", "Summary"]

            groups = wb["Assemblies"]
            assert groups["A1"].value == "Assembly"
            assert groups["A2"].value == "b.cs"
            assert groups["A5"].value == "Total"
            assert groups["A5"].font.bold
            assert [c.value for c in groups[5]][1:] == [5, 1, 2, 1]

            members = wb["Members"]
            names = [row[2] for row in members.iter_rows(min_row=2, values_only=True)]
            # unsafeなメンバーと、祖先にunsafeを持つメンバーのみ
            assert names == ["Ptr", "Native", "Cast", "Nested"]

            summary = wb["Summary"]
            labels = {summary.cell(row=r, column=1).value: summary.cell(row=r, column=2).value
                      for r in range(4, summary.max_row + 1)}
            assert labels["Methods"] == 5
            assert labels["Trivial properties"] == 1
            assert labels["Unsafe methods"] == 3

    def test_unsupported_format(self):
        """未対応の拡張子では何も書き込まないテスト。"""
        with TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "sub" / "report.json"
            with pytest.raises(UnsupportedReportFormat):
                ReportWriter().write(RECORDS, output, by_file)
            assert not output.parent.exists()

    @pytest.mark.parametrize("path", ["r.csv", "r.Md", "r.XLSX"])
    def test_check_format(self, path):
        """拡張子の大文字小文字を区別しないテスト。"""
        assert ReportWriter.check_format(path) == Path(path).suffix.lower()
