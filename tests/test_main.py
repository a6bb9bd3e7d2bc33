"""コマンドラインインターフェースのテスト。"""

from pathlib import Path
from tempfile import TemporaryDirectory

import yaml

from unsafe_surface.main import EXIT_ERROR, EXIT_OK, main

SOURCE = """
class C
{
    unsafe void Ptr(int* p) { }
    void Alloc(int n)
    {
        Span<byte> s = stackalloc byte[n];
    }
}
"""


def make_repo(root: Path) -> None:
    (root / "lib").mkdir()
    (root / "lib" / "C.cs").write_text(SOURCE, encoding="utf-8")


class TestAnalyzeCommand:
    """analyzeサブコマンドのテスト。"""

    def test_analyze_writes_report(self, capsys):
        """解析してMarkdownレポートを書き出すテスト。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            make_repo(root)
            report = root / "out" / "report.md"

            code = main(["analyze", "--dir", str(root), "--report", str(report), "--workers", "2"])

            assert code == EXIT_OK
            assert "| lib/C.cs | 2 | 0 | 1 | 0 |" in report.read_text(encoding="utf-8")

        out = capsys.readouterr().out
        assert "Analysis took" in out
        assert "Total methods:" in out
        assert "Report is saved to" in out

    def test_unknown_report_format_fails_before_analysis(self, capsys):
        """未対応の拡張子では解析せずにエラー終了するテスト。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            make_repo(root)
            code = main(["analyze", "--dir", str(root), "--report", str(root / "r.json")])

        assert code == EXIT_ERROR
        assert "Analysis took" not in capsys.readouterr().out

    def test_missing_directory(self):
        """存在しないディレクトリのテスト。"""
        with TemporaryDirectory() as tmpdir:
            assert main(["analyze", "--dir", str(Path(tmpdir) / "missing")]) == EXIT_ERROR

    def test_missing_config_file(self):
        """存在しない設定ファイルのテスト。"""
        with TemporaryDirectory() as tmpdir:
            assert main(["analyze", "-c", str(Path(tmpdir) / "none.yaml")]) == EXIT_ERROR

    def test_unknown_preset(self):
        """不明なプリセットのテスト。"""
        with TemporaryDirectory() as tmpdir:
            assert main(["analyze", "--dir", tmpdir, "--preset", "nope"]) == EXIT_ERROR

    def test_config_file_and_save_config(self):
        """設定ファイルの値が引数で上書きされ、保存されるテスト。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            make_repo(root)
            config_path = root / "config.yaml"
            config_path.write_text(f"source_dir: {root}\npreset: all\n", encoding="utf-8")
            saved = root / "saved.yaml"

            code = main([
                "analyze", "-c", str(config_path), "--top", "3", "--save-config", str(saved),
            ])

            assert code == EXIT_OK
            data = yaml.safe_load(saved.read_text(encoding="utf-8"))
            assert data["preset"] == "all"
            assert data["top_groups"] == 3


class TestStackallocCommand:
    """stackallocサブコマンドのテスト。"""

    def test_lists_sites(self, capsys):
        """非有界なstackallocが表示されるテスト。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            make_repo(root)
            code = main(["stackalloc", "--dir", str(root)])

        assert code == EXIT_OK
        out = capsys.readouterr().out
        assert "C.cs(7,24):\n\tstackalloc byte[n]" in out
        assert "Found 1 unbounded stackalloc expressions" in out


class TestCompareCommand:
    """compareサブコマンドのテスト。"""

    def test_compare(self, capsys):
        """2つのレポートの比較のテスト。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            make_repo(root)
            base = root / "base.md"
            diff = root / "diff.md"
            output = root / "compare.md"
            assert main(["analyze", "--dir", str(root), "--report", str(base)]) == EXIT_OK
            (root / "lib" / "D.cs").write_text("class D { unsafe void M() { } }", encoding="utf-8")
            assert main(["analyze", "--dir", str(root), "--report", str(diff)]) == EXIT_OK

            code = main(["compare", "--base", str(base), "--diff", str(diff), "--output", str(output)])

            assert code == EXIT_OK
            content = output.read_text(encoding="utf-8")
            assert "| lib/D.cs | 1 (${\\textsf{\\color{red}+1}}$)" in content
            assert "Comparison report is saved to" in capsys.readouterr().out

    def test_compare_rejects_non_markdown(self):
        """.md以外の入力でエラー終了するテスト。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.csv").write_text("x", encoding="utf-8")
            (root / "b.md").write_text("x", encoding="utf-8")
            code = main([
                "compare", "--base", str(root / "a.csv"), "--diff", str(root / "b.md"),
                "--output", str(root / "o.md"),
            ])
            assert code == EXIT_ERROR

    def test_compare_malformed_report(self):
        """不正な表でエラー終了するテスト。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.md").write_text("only one line", encoding="utf-8")
            (root / "b.md").write_text("only one line", encoding="utf-8")
            code = main([
                "compare", "--base", str(root / "a.md"), "--diff", str(root / "b.md"),
                "--output", str(root / "o.md"),
            ])
            assert code == EXIT_ERROR
