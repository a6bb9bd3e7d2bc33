"""C#コードベースのunsafeコード監査ツールのメインエントリーポイント。"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional
import logging

from .config import Config
from .analyzer.codebase_analyzer import (
    AnalysisCancelled,
    AnalysisResult,
    CodebaseAnalyzer,
    StackallocResult,
)
from .io.formats import UnsupportedReportFormat
from .io.markdown_table import ReportParseError
from .io.report_writer import ReportWriter, render_console_summary
from .presets import PRESETS, GroupingPreset, get_preset
from .presets.generic import GROUP_BY_CHOICES
from .report.differencer import ReportDifferencer
from .utils.logger import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


class UnsafeCodeAuditor:
    """解析、集計、レポート出力をまとめて実行するクラス。"""

    def __init__(self, config: Config):
        """監査ツールを初期化する。

        Args:
            config: アプリケーション設定
        """
        self.config = config
        self.preset: GroupingPreset = get_preset(
            config.preset, config.source_dir, group_by=config.group_by
        )
        self.analyzer = CodebaseAnalyzer(max_workers=config.max_workers)
        self.writer = ReportWriter(top_groups=config.top_groups)

        logger.info(f"Using preset {self.preset!r}")

    def analyze(self) -> AnalysisResult:
        """メンバーを分類し、サマリーを表示してレポートを書き出す。

        Returns:
            AnalysisResult

        Raises:
            UnsupportedReportFormat: レポートの拡張子が未対応の場合（解析前に判定）
            AnalysisCancelled: キャンセルされた場合
        """
        if self.config.report:
            self.writer.check_format(self.config.report)

        result = self.analyzer.analyze_folder(
            self.config.source_dir, self.preset.should_include
        )
        print(f"Analysis took {result.elapsed:.2f} seconds")
        print(render_console_summary(result.records))

        if self.config.report:
            self.writer.write(result.records, self.config.report, self.preset.group_key)
            print(f"Report is saved to {self.config.report}")

        self._log_failures(result.failed_files)
        return result

    def scan_stackallocs(self) -> StackallocResult:
        """サイズが静的に確定しないstackallocを列挙して表示する。

        Returns:
            StackallocResult

        Raises:
            AnalysisCancelled: キャンセルされた場合
        """
        result = self.analyzer.find_unbounded_stackallocs(
            self.config.source_dir, self.preset.should_include
        )
        for site in result.sites:
            print(site.render())
        print(f"Found {len(result.sites)} unbounded stackalloc expressions "
              f"in {result.elapsed:.2f} seconds")

        self._log_failures(result.failed_files)
        return result

    def cancel(self) -> None:
        """実行中の解析を中断する。"""
        self.analyzer.cancel()

    @staticmethod
    def _log_failures(failed_files: dict) -> None:
        if not failed_files:
            return
        logger.warning(f"{len(failed_files)} files could not be analyzed:")
        for path, reason in sorted(failed_files.items()):
            logger.warning(f"  {path}: {reason}")


def build_parser() -> argparse.ArgumentParser:
    """コマンドライン引数のパーサーを作る。"""
    preset_names = ", ".join(name for name in PRESETS if name != "dotnetruntimerepo")

    parser = argparse.ArgumentParser(
        prog="unsafe-surface",
        description="C#コードベースのunsafeコード利用状況を集計するツール"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # analyze
    analyze = subparsers.add_parser("analyze", help="コードベースを解析してunsafeメンバーを集計する")
    _add_source_arguments(analyze, preset_names)
    analyze.add_argument(
        "--report",
        help="出力レポートのパス（.csv, .md, .xlsx）"
    )
    analyze.add_argument(
        "--group-by",
        choices=GROUP_BY_CHOICES,
        help="汎用プリセットのグループ化方法"
    )
    analyze.add_argument(
        "--top",
        type=int,
        dest="top_groups",
        help="個別に出力する上位グループ数"
    )
    analyze.add_argument(
        "--workers",
        type=int,
        dest="max_workers",
        help="並列ワーカー数"
    )
    analyze.add_argument(
        "--save-config",
        metavar="PATH",
        help="実行時の設定をYAMLファイルに保存する"
    )

    # compare
    compare = subparsers.add_parser("compare", help="2つのMarkdownレポートを比較する")
    compare.add_argument("--base", required=True, help="比較元のMarkdownレポート")
    compare.add_argument("--diff", required=True, help="比較先のMarkdownレポート")
    compare.add_argument("--output", required=True, help="比較結果の出力先")
    compare.add_argument("-v", "--verbose", action="store_true", help="詳細ログを有効にする")

    # stackalloc
    stackalloc = subparsers.add_parser(
        "stackalloc", help="サイズが静的に確定しないstackallocを列挙する"
    )
    _add_source_arguments(stackalloc, preset_names)
    stackalloc.add_argument(
        "--workers",
        type=int,
        dest="max_workers",
        help="並列ワーカー数"
    )

    return parser


def _add_source_arguments(parser: argparse.ArgumentParser, preset_names: str) -> None:
    parser.add_argument(
        "--dir",
        dest="source_dir",
        help="解析対象のC#コードベースのディレクトリ"
    )
    parser.add_argument(
        "--preset",
        help=f"組み込みプリセット（{preset_names}）"
    )
    parser.add_argument(
        "-c", "--config",
        help="設定ファイルパス"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="詳細ログを有効にする"
    )


def load_config(args: argparse.Namespace) -> Optional[Config]:
    """設定ファイルを読み込み、コマンドライン引数で上書きする。

    Args:
        args: 解析済みの引数

    Returns:
        Config（設定ファイルが見つからない場合はNone）
    """
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: 設定ファイルが見つかりません: {args.config}", file=sys.stderr)
            return None
        config = Config.from_yaml(str(config_path))
    else:
        config = Config()

    for key in ("source_dir", "preset", "report", "group_by", "top_groups", "max_workers"):
        value = getattr(args, key, None)
        if value is not None:
            setattr(config, key, value)

    # 詳細ログが指定された場合はログレベルを上書き
    if args.verbose:
        config.log_level = "DEBUG"

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """メインエントリーポイント。

    Returns:
        終了コード
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "compare":
        setup_logging(level="DEBUG" if args.verbose else "INFO")
        return _run_compare(args.base, args.diff, args.output)

    config = load_config(args)
    if config is None:
        return EXIT_ERROR

    # ロギングをセットアップ
    setup_logging(level=config.log_level, log_file=config.log_file)

    # 設定を検証
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        return EXIT_ERROR

    if getattr(args, "save_config", None):
        config.save_yaml(args.save_config)

    try:
        auditor = UnsafeCodeAuditor(config)
        if args.command == "analyze":
            auditor.analyze()
        else:
            auditor.scan_stackallocs()
        return EXIT_OK
    except AnalysisCancelled as e:
        logger.warning(str(e))
        return EXIT_CANCELLED
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_CANCELLED
    except (UnsupportedReportFormat, ValueError) as e:
        logger.error(str(e))
        return EXIT_ERROR
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return EXIT_ERROR


def _run_compare(base: str, diff: str, output: str) -> int:
    """2つのレポートを比較して結果を書き出す。

    Returns:
        終了コード
    """
    try:
        ReportDifferencer().compare_files(base, diff, output)
    except (UnsupportedReportFormat, ReportParseError) as e:
        logger.error(str(e))
        return EXIT_ERROR
    except OSError as e:
        logger.error(f"Failed to read or write report: {e}")
        return EXIT_ERROR

    print(f"Comparison report is saved to {output}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
