"""レポート比較とMarkdown表の読み込みのテスト。"""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from unsafe_surface.io import ReportParseError, UnsupportedReportFormat, parse_markdown
from unsafe_surface.io.markdown_table import MARKDOWN_DIVIDER, MARKDOWN_HEADER
from unsafe_surface.report import ReportDifferencer
from unsafe_surface.report.differencer import format_delta, sort_key


def table(*rows: str) -> str:
    return "\n".join([MARKDOWN_HEADER, MARKDOWN_DIVIDER, *rows]) + "\n"


BASE = table(
    "| System.Console | 10 | 2 | 3 | 1 |",
    "| System.IO | 20 | 0 | 5 | 2 |",
    "| *Other* | 4 | 0 | 1 | 0 |",
    "| **Total** | **34** | **2** | **9** | **3** |",
)

DIFF = table(
    "| System.Console | 12 | 2 | 2 | 1 |",
    "| System.Net | 5 | 1 | 1 | 0 |",
    "| *Other* | 4 | 0 | 1 | 0 |",
    "| **Total** | **21** | **3** | **4** | **1** |",
)


class TestParseMarkdown:
    """Markdown表の読み込みのテスト。"""

    def test_parse(self):
        """キーの強調記号を残し、数値の強調記号を除くテスト。"""
        header, data = parse_markdown(BASE)
        assert header == [MARKDOWN_HEADER, MARKDOWN_DIVIDER]
        assert list(data) == ["System.Console", "System.IO", "*Other*", "**Total**"]
        assert data["**Total**"] == [34, 2, 9, 3]

    def test_blank_lines_are_skipped(self):
        """空行を読み飛ばすテスト。"""
        _, data = parse_markdown(table("| A | 1 | 2 | 3 | 4 |", "", "| B | 1 | 1 | 1 | 1 |"))
        assert list(data) == ["A", "B"]

    def test_non_numeric_value(self):
        """数値でない値のテスト。"""
        with pytest.raises(ReportParseError) as excinfo:
            parse_markdown(table("| A | 1 | x | 3 | 4 |"), "broken.md")
        assert "broken.md:3" in str(excinfo.value)
        assert excinfo.value.line_number == 3

    def test_wrong_column_count(self):
        """列数が合わない行のテスト。"""
        with pytest.raises(ReportParseError):
            parse_markdown(table("| A | 1 | 2 | 3 |"))

    def test_duplicate_key(self):
        """キーが重複する場合のテスト。"""
        with pytest.raises(ReportParseError):
            parse_markdown(table("| A | 1 | 2 | 3 | 4 |", "| A | 1 | 2 | 3 | 4 |"))

    def test_escaped_pipe_in_key(self):
        """エスケープされた | を列区切りとして扱わないテスト。"""
        _, data = parse_markdown(table("| a\\|b.cs | 1 | 0 | 1 | 0 |"))
        assert data == {"a|b.cs": [1, 0, 1, 0]}

    def test_missing_header(self):
        """ヘッダーがない場合のテスト。"""
        with pytest.raises(ReportParseError):
            parse_markdown(MARKDOWN_HEADER)


class TestSortKey:
    """比較表の行順のテスト。"""

    def test_pinned_keys_last(self):
        """misc, other, totalが末尾に固定されるテスト。"""
        keys = ["**Total**", "zeta", "*Other*", "Misc", "Alpha", "beta"]
        assert sorted(keys, key=sort_key) == ["Alpha", "beta", "zeta", "Misc", "*Other*", "**Total**"]


class TestFormatDelta:
    """差分注釈のテスト。"""

    def test_increase(self):
        assert format_delta(2) == "(${\\textsf{\\color{red}+2}}$)"

    def test_decrease(self):
        assert format_delta(-1) == "(${\\textsf{\\color{green}-1}}$)"

    def test_zero(self):
        assert format_delta(0) == ""


class TestReportDifferencer:
    """ReportDifferencerのテスト。"""

    def test_compare(self):
        """キーの和集合と差分のテスト。"""
        result = ReportDifferencer().compare(BASE, DIFF)
        keys = [row.key for row in result.rows]
        assert keys == ["System.Console", "System.IO", "System.Net", "*Other*", "**Total**"]

        rows = {row.key: row for row in result.rows}
        assert rows["System.Console"].delta == (2, 0, -1, 0)
        # 片方にしかないキーは0として扱う
        assert rows["System.IO"].diff == (0, 0, 0, 0)
        assert rows["System.Net"].base == (0, 0, 0, 0)
        assert not rows["*Other*"].has_changes()
        assert len(result.changed_rows()) == 4

    def test_render(self):
        """比較結果のMarkdown出力のテスト。"""
        result = ReportDifferencer().compare(BASE, DIFF)
        lines = ReportDifferencer.render(result).splitlines()
        assert lines[:2] == [MARKDOWN_HEADER, MARKDOWN_DIVIDER]
        assert lines[2] == (
            "| System.Console | 12 (${\\textsf{\\color{red}+2}}$) | 2 | "
            "2 (${\\textsf{\\color{green}-1}}$) | 1 |"
        )
        assert lines[5] == "| *Other* | 4 | 0 | 1 | 0 |"

    def test_render_escapes_pipe_in_key(self):
        """キーに | を含む行を比較結果でもエスケープするテスト。"""
        base = table("| a\\|b.cs | 1 | 0 | 1 | 0 |")
        diff = table("| a\\|b.cs | 2 | 0 | 1 | 0 |")
        result = ReportDifferencer().compare(base, diff)
        assert [row.key for row in result.rows] == ["a|b.cs"]
        lines = ReportDifferencer.render(result).splitlines()
        assert lines[2] == "| a\\|b.cs | 2 (${\\textsf{\\color{red}+1}}$) | 0 | 1 | 0 |"

    def test_compare_identical(self):
        """同じレポート同士の比較では注釈が付かないテスト。"""
        result = ReportDifferencer().compare(BASE, BASE)
        assert result.changed_rows() == []
        assert "color" not in ReportDifferencer.render(result)

    def test_header_width_mismatch(self):
        """列数の異なるレポートの比較のテスト。"""
        narrow = "| Assembly | Total |\n| --- | --- |\n| A | 1 |\n"
        with pytest.raises(ReportParseError):
            ReportDifferencer().compare(BASE, narrow, "base.md", "narrow.md")

    def test_compare_files(self):
        """ファイル同士の比較と結果の書き込みのテスト。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "base.md").write_text(BASE, encoding="utf-8")
            (root / "diff.md").write_text(DIFF, encoding="utf-8")
            output = root / "out" / "compare.md"

            ReportDifferencer().compare_files(root / "base.md", root / "diff.md", output)

            content = output.read_text(encoding="utf-8")
            assert content.startswith(MARKDOWN_HEADER)
            assert "System.Net" in content

    def test_compare_files_requires_markdown(self):
        """.md以外の入力のテスト。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "base.csv").write_text("x", encoding="utf-8")
            (root / "diff.md").write_text(DIFF, encoding="utf-8")
            with pytest.raises(UnsupportedReportFormat):
                ReportDifferencer().compare_files(root / "base.csv", root / "diff.md", root / "o.md")
