"""stackallocのサイズ式に対する定数畳み込み判定。"""

from typing import FrozenSet, List, Optional
import logging

from tree_sitter import Node

from ..analyzer.csharp_parser import ParsedSource
from ..analyzer.symbol_resolver import SymbolResolver
from ..analyzer.syntax import (
    SyntaxCategory,
    iter_descendants,
    matches_category,
    stackalloc_size_expressions,
)
from ..models.stackalloc import StackAllocationSite

logger = logging.getLogger(__name__)


# ポインタサイズを返す既知のプロパティ
POINTER_SIZE_ACCESSORS: FrozenSet[str] = frozenset({"IntPtr.Size", "UIntPtr.Size"})


class ConstantFoldabilityEvaluator:
    """式が解析時に値の確定する定数式か判定する。

    リテラル、sizeof、サイズ省略、IntPtr.Size、constな識別子と、
    それらを組み合わせた二項演算のみを有界とみなす。引数、可変ローカル、
    メソッド呼び出し、三項演算子などは非有界。
    """

    def __init__(self, resolver: Optional[SymbolResolver] = None):
        self.resolver = resolver or SymbolResolver()

    def is_bounded(self, expression: Optional[Node]) -> bool:
        """サイズ式が静的に有界か判定する。

        Args:
            expression: サイズ式ノード（サイズ省略時はNone）

        Returns:
            有界の場合True
        """
        if expression is None:
            return True

        node_type = expression.type
        if node_type.endswith("_literal"):
            return True
        if node_type == "sizeof_expression":
            return True
        if node_type == "parenthesized_expression":
            inner = expression.named_children
            return len(inner) == 1 and self.is_bounded(inner[0])
        if node_type == "member_access_expression":
            text = "".join(expression.text.decode("utf-8", errors="replace").split())
            return text in POINTER_SIZE_ACCESSORS
        if node_type == "identifier":
            return self.resolver.is_constant(expression)
        if node_type == "binary_expression":
            left = expression.child_by_field_name("left")
            right = expression.child_by_field_name("right")
            return (
                left is not None
                and right is not None
                and self.is_bounded(left)
                and self.is_bounded(right)
            )
        return False


class StackallocScanner:
    """ファイル内でサイズが非有界なstackallocを探す。"""

    def __init__(self, evaluator: Optional[ConstantFoldabilityEvaluator] = None):
        self.evaluator = evaluator or ConstantFoldabilityEvaluator()

    def find_unbounded(self, parsed: ParsedSource) -> List[StackAllocationSite]:
        """非有界なstackalloc式の位置を列挙する。

        sequence は呼び出し側が実行全体で採番するため0のまま返す。

        Args:
            parsed: パース済みのソースファイル

        Returns:
            StackAllocationSiteのリスト（ファイル内の出現順）
        """
        sites = []
        for node in iter_descendants(parsed.root):
            if not matches_category(node, SyntaxCategory.STACKALLOC_ARRAY):
                continue
            sizes = stackalloc_size_expressions(node)
            if all(self.evaluator.is_bounded(size) for size in sizes):
                continue

            line, column = parsed.position_of(node)
            sites.append(StackAllocationSite(
                file=parsed.path,
                line=line,
                column=column,
                expression=parsed.text_of(node),
            ))
            logger.debug(f"Unbounded stackalloc at {parsed.path}({line},{column})")
        return sites
