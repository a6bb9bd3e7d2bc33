"""tree-sitterを使用したC#ソースコード解析のラッパー。"""

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union
import bisect
import logging
import threading

import tree_sitter_c_sharp as tscs
from tree_sitter import Language, Node, Parser, Tree

logger = logging.getLogger(__name__)


class SourceReadError(Exception):
    """ソースファイルの読み込み・パース時のエラー。"""

    def __init__(self, file_path: str, reason: str):
        super().__init__(f"Failed to read {file_path}: {reason}")
        self.file_path = file_path
        self.reason = reason


@dataclass
class ParsedSource:
    """1ファイル分のパース結果。

    tree-sitterの位置はバイト単位なので、行・列への変換をここで行う。
    """
    path: str
    source: bytes
    tree: Tree

    def __post_init__(self):
        # 各行の開始バイトオフセット
        self._line_starts = [0]
        offset = self.source.find(b"\n")
        while offset != -1:
            self._line_starts.append(offset + 1)
            offset = self.source.find(b"\n", offset + 1)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return self.tree.root_node.has_error

    def text_of(self, node: Node) -> str:
        """ノードのソーステキストを取得する。"""
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def position_of(self, node: Node) -> Tuple[int, int]:
        """ノード開始位置を1始まりの(行, 列)で返す。

        列は文字単位で数える（マルチバイト文字を含む行でもずれない）。

        Args:
            node: 対象ノード

        Returns:
            (line, column) のタプル
        """
        line_index = bisect.bisect_right(self._line_starts, node.start_byte) - 1
        line_start = self._line_starts[line_index]
        prefix = self.source[line_start:node.start_byte].decode("utf-8", errors="replace")
        return line_index + 1, len(prefix) + 1


class CSharpParser:
    """tree-sitter-c-sharpをラップしたパーサー。

    tree-sitterのParserはスレッド間で共有できないため、
    スレッドごとにインスタンスを保持する。
    """

    LANGUAGE = Language(tscs.language())

    def __init__(self, encoding: str = "utf-8"):
        """パーサーを初期化する。

        Args:
            encoding: ソースファイルのエンコーディング
        """
        self.encoding = encoding
        self._local = threading.local()
        self._parsers_created = 0
        self._count_lock = threading.Lock()

    def _get_parser(self) -> Parser:
        """現在のスレッド用のParserを取得する。"""
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = Parser(self.LANGUAGE)
            self._local.parser = parser
            with self._count_lock:
                self._parsers_created += 1
            logger.debug(f"Created tree-sitter parser for {threading.current_thread().name}")
        return parser

    def parse_file(self, file_path: Union[str, Path]) -> ParsedSource:
        """ファイルを読み込んでパースする。

        Args:
            file_path: C#ソースファイルのパス

        Returns:
            ParsedSource

        Raises:
            SourceReadError: 読み込みまたはデコードに失敗した場合
        """
        path = str(file_path)
        try:
            raw = Path(path).read_bytes()
            # BOM付きUTF-8を許容しつつ、デコードできないファイルは失敗扱い
            text = raw.decode("utf-8-sig" if self.encoding == "utf-8" else self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise SourceReadError(path, str(e)) from e

        parsed = self._parse(text, path)
        if parsed.has_errors:
            logger.debug(f"Syntax errors in {path}, continuing with recovered tree")
        return parsed

    def parse_string(self, source_code: str, filename: str = "temp.cs") -> ParsedSource:
        """文字列からC#ソースコードをパースする。

        Args:
            source_code: C#ソースコード
            filename: ソースの仮想ファイル名

        Returns:
            ParsedSource
        """
        return self._parse(source_code, filename)

    def _parse(self, text: str, path: str) -> ParsedSource:
        source = text.encode("utf-8")
        tree = self._get_parser().parse(source)
        if tree is None:
            raise SourceReadError(path, "parser returned no tree")
        return ParsedSource(path=path, source=source, tree=tree)

    @property
    def parsers_created(self) -> int:
        """これまでに生成したParserの数（ワーカースレッド数の目安）。"""
        return self._parsers_created

