"""C#コードベース全体の並列解析。"""

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, TypeVar, Union
import logging
import os
import threading
import time

from ..classifier.member_classifier import MemberSafetyClassifier
from ..classifier.stackalloc_evaluator import StackallocScanner
from ..models.member import MemberSafetyRecord
from ..models.stackalloc import StackAllocationSite
from ..utils.logger import ProgressLogger
from .csharp_parser import CSharpParser, ParsedSource, SourceReadError
from .declaration_extractor import DeclarationExtractor

logger = logging.getLogger(__name__)

T = TypeVar("T")

FilePredicate = Callable[[str], bool]


class AnalysisCancelled(Exception):
    """キャンセル要求により解析が中断された。"""
    pass


@dataclass
class AnalysisResult:
    """メンバー分類の実行結果。"""
    records: List[MemberSafetyRecord] = field(default_factory=list)
    failed_files: Dict[str, str] = field(default_factory=dict)
    files_analyzed: int = 0
    elapsed: float = 0.0


@dataclass
class StackallocResult:
    """stackalloc走査の実行結果。"""
    sites: List[StackAllocationSite] = field(default_factory=list)
    failed_files: Dict[str, str] = field(default_factory=dict)
    files_analyzed: int = 0
    elapsed: float = 0.0


def default_max_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


class CodebaseAnalyzer:
    """ファイル単位の解析をワーカープールに分配する。

    各ワーカーは自分のファイルの結果リストだけを返し、メインスレッドが
    完了順に集約する。分類中に共有状態へ書き込むことはない。
    読み込みに失敗したファイルはそのファイルの寄与だけを捨てて続行する。
    """

    def __init__(
        self,
        parser: Optional[CSharpParser] = None,
        classifier: Optional[MemberSafetyClassifier] = None,
        scanner: Optional[StackallocScanner] = None,
        max_workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """解析器を初期化する。

        Args:
            parser: C#パーサー
            classifier: メンバー分類器
            scanner: stackalloc走査器
            max_workers: 並列ワーカー数の上限
            cancel_event: セットされると未着手のファイルをスキップする
        """
        self.parser = parser or CSharpParser()
        self.classifier = classifier or MemberSafetyClassifier()
        self.scanner = scanner or StackallocScanner()
        self.extractor = DeclarationExtractor()
        self.max_workers = max_workers or default_max_workers()
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        """解析のキャンセルを要求する。"""
        self.cancel_event.set()

    @staticmethod
    def discover_files(root: Union[str, Path], should_include: Optional[FilePredicate] = None) -> List[Path]:
        """ルート以下の*.csファイルを列挙する。

        Args:
            root: 解析対象のルートディレクトリ
            should_include: ファイルパスを受け取る包含フィルター

        Returns:
            ソート済みのファイルパスリスト
        """
        files = sorted(p for p in Path(root).rglob("*.cs") if p.is_file())
        if should_include is not None:
            files = [p for p in files if should_include(str(p))]
        logger.debug(f"Found {len(files)} C# source files under {root}")
        return files

    def classify_file(self, file_path: Union[str, Path]) -> List[MemberSafetyRecord]:
        """1ファイル内の全メンバーを分類する。

        Raises:
            SourceReadError: 読み込みに失敗した場合
        """
        parsed = self.parser.parse_file(file_path)
        return [self.classifier.classify(member) for member in self.extractor.extract(parsed)]

    def scan_file(self, file_path: Union[str, Path]) -> List[StackAllocationSite]:
        """1ファイル内の非有界stackallocを探す。

        Raises:
            SourceReadError: 読み込みに失敗した場合
        """
        parsed: ParsedSource = self.parser.parse_file(file_path)
        return self.scanner.find_unbounded(parsed)

    def analyze_folder(
        self,
        root: Union[str, Path],
        should_include: Optional[FilePredicate] = None
    ) -> AnalysisResult:
        """フォルダ内の全メンバーを分類する。

        Args:
            root: 解析対象のルートディレクトリ
            should_include: ファイルの包含フィルター

        Returns:
            AnalysisResult

        Raises:
            AnalysisCancelled: キャンセルされた場合
        """
        files = self.discover_files(root, should_include)
        logger.info(f"Analyzing {len(files)} files with {self.max_workers} workers")

        result = AnalysisResult()
        start = time.perf_counter()

        def fold(records: List[MemberSafetyRecord]) -> None:
            result.records.extend(records)

        result.files_analyzed = self._run(files, self.classify_file, fold, result.failed_files)
        result.elapsed = time.perf_counter() - start

        logger.info(
            f"Classified {len(result.records)} members in {result.files_analyzed} files "
            f"({len(result.failed_files)} failed) in {result.elapsed:.2f}s"
        )
        return result

    def find_unbounded_stackallocs(
        self,
        root: Union[str, Path],
        should_include: Optional[FilePredicate] = None
    ) -> StackallocResult:
        """フォルダ内の非有界stackallocを探す。

        発見順に1始まりの通し番号を付ける。並列実行のため件数は安定するが、
        ファイル間の順序は実行ごとに変わり得る。

        Args:
            root: 解析対象のルートディレクトリ
            should_include: ファイルの包含フィルター

        Returns:
            StackallocResult

        Raises:
            AnalysisCancelled: キャンセルされた場合
        """
        files = self.discover_files(root, should_include)
        logger.info(f"Scanning {len(files)} files for unbounded stackalloc")

        result = StackallocResult()
        start = time.perf_counter()

        def fold(sites: List[StackAllocationSite]) -> None:
            for site in sites:
                result.sites.append(StackAllocationSite(
                    file=site.file,
                    line=site.line,
                    column=site.column,
                    expression=site.expression,
                    sequence=len(result.sites) + 1,
                ))

        result.files_analyzed = self._run(files, self.scan_file, fold, result.failed_files)
        result.elapsed = time.perf_counter() - start

        logger.info(f"Found {len(result.sites)} unbounded stackalloc expressions")
        return result

    def _run(
        self,
        files: List[Path],
        work: Callable[[Path], List[T]],
        fold: Callable[[List[T]], None],
        failed_files: Dict[str, str]
    ) -> int:
        """ファイルごとの処理を並列実行し、完了した結果を集約する。

        Returns:
            正常に処理できたファイル数
        """
        if not files:
            return 0

        progress = ProgressLogger(len(files), logger, log_interval=max(1, len(files) // 10))
        succeeded = 0

        def guarded(path: Path) -> Optional[List[T]]:
            # ファイル単位でのみキャンセルを確認する（ファイル途中では中断しない）
            if self.cancel_event.is_set():
                return None
            return work(path)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="analyzer") as pool:
            futures: Dict[Future, Path] = {pool.submit(guarded, path): path for path in files}
            try:
                for future in as_completed(futures):
                    path = futures[future]
                    failed = False
                    try:
                        items = future.result()
                    except SourceReadError as e:
                        logger.warning(str(e))
                        failed_files[str(path)] = e.reason
                        failed = True
                    except Exception as e:
                        # 1ファイルの失敗で他のファイルの解析を止めない
                        logger.warning(f"Failed to analyze {path}: {e}")
                        failed_files[str(path)] = str(e)
                        failed = True
                    else:
                        if items is not None:
                            fold(items)
                            succeeded += 1
                    progress.update(path.name, failed=failed)
            except KeyboardInterrupt:
                self.cancel()
                for future in futures:
                    future.cancel()
                raise AnalysisCancelled("Analysis interrupted")

        if self.cancel_event.is_set():
            raise AnalysisCancelled(f"Analysis cancelled after {succeeded} files")

        progress.complete()
        logger.debug(f"Used {self.parser.parsers_created} parser instances")
        return succeeded
