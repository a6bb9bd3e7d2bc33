"""C#構文木ノードのアダプター。

tree-sitter-c-sharpのノード種別名をここに閉じ込め、分類器側は
DeclarationNode と SyntaxCategory だけを扱う。
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional, Set
import logging

from tree_sitter import Node

from ..models.member import DeclarationKind, MemberRef
from .csharp_parser import ParsedSource

logger = logging.getLogger(__name__)


# 宣言種別とtree-sitterノード種別の対応
DECLARATION_NODE_TYPES: Dict[str, DeclarationKind] = {
    "method_declaration": DeclarationKind.ROUTINE,
    "property_declaration": DeclarationKind.PROPERTY,
    "constructor_declaration": DeclarationKind.CONSTRUCTOR,
    "local_function_statement": DeclarationKind.LOCAL_FUNCTION,
}

# unsafe修飾子が祖先にあるかを確認する対象（クラス、構造体、メソッド、ローカル関数）
UNSAFE_SCOPE_NODE_TYPES: FrozenSet[str] = frozenset({
    "class_declaration",
    "struct_declaration",
    "method_declaration",
    "local_function_statement",
})

# grammarのバージョンによって名前が異なる
STACKALLOC_NODE_TYPES: FrozenSet[str] = frozenset({
    "stackalloc_expression",
    "stack_alloc_array_creation_expression",
})


class SyntaxCategory(Enum):
    """子孫ノード検索で使う構文カテゴリ。"""
    UNSAFE_BLOCK = "unsafe_block"
    POINTER_TYPE = "pointer_type"
    ADDRESS_OF = "address_of"
    INVOCATION = "invocation"
    STACKALLOC_ARRAY = "stackalloc_array"


def iter_descendants(node: Node) -> Iterator[Node]:
    """ノード自身を除く子孫を前順で列挙する。

    深い式でも再帰制限に当たらないよう明示的なスタックを使う。
    """
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def iter_ancestors(node: Node) -> Iterator[Node]:
    """親から根に向かって祖先を列挙する。"""
    parent = node.parent
    while parent is not None:
        yield parent
        parent = parent.parent


def node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def modifiers_of(node: Node) -> Set[str]:
    """宣言ノードの修飾子キーワードを取得する。"""
    return {
        node_text(child)
        for child in node.children
        if child.type == "modifier"
    }


def declared_name(node: Node) -> Optional[Node]:
    """宣言子・引数などの名前ノードを取得する。"""
    name = node.child_by_field_name("name")
    if name is not None:
        return name
    for child in node.named_children:
        if child.type == "identifier":
            return child
    return None


def matches_category(node: Node, category: SyntaxCategory) -> bool:
    """ノードが指定カテゴリに該当するか判定する。

    Args:
        node: 判定するノード
        category: 構文カテゴリ

    Returns:
        該当する場合True
    """
    node_type = node.type
    if category is SyntaxCategory.UNSAFE_BLOCK:
        return node_type == "unsafe_statement"
    if category is SyntaxCategory.POINTER_TYPE:
        return node_type == "pointer_type"
    if category is SyntaxCategory.ADDRESS_OF:
        # &x のみ。*p（間接参照）は含めない
        return (
            node_type == "prefix_unary_expression"
            and node.child_count > 0
            and node.children[0].type == "&"
        )
    if category is SyntaxCategory.INVOCATION:
        return node_type == "invocation_expression"
    if category is SyntaxCategory.STACKALLOC_ARRAY:
        if node_type not in STACKALLOC_NODE_TYPES:
            return False
        return stackalloc_array_type(node) is not None
    return False


def stackalloc_array_type(node: Node) -> Optional[Node]:
    """stackalloc式の配列型ノード（サイズ指定あり）を取得する。"""
    array_type = node.child_by_field_name("type")
    if array_type is None:
        for child in node.named_children:
            if child.type == "array_type":
                array_type = child
                break
    if array_type is None or array_type.type != "array_type":
        return None
    return array_type


def stackalloc_size_expressions(node: Node) -> List[Optional[Node]]:
    """stackalloc式のランク指定子にあるサイズ式を取得する。

    `stackalloc int[] { 1, 2 }` のようにサイズが省略されている場合は
    [None] を返す。

    Args:
        node: stackalloc式ノード

    Returns:
        サイズ式ノードのリスト（省略時はNone要素1つ）
    """
    array_type = stackalloc_array_type(node)
    if array_type is None:
        return []
    rank = array_type.child_by_field_name("rank")
    if rank is None:
        for child in array_type.named_children:
            if child.type == "array_rank_specifier":
                rank = child
                break
    if rank is None:
        return [None]
    sizes = [child for child in rank.named_children if child.type != "comment"]
    return sizes or [None]


class DeclarationNode:
    """分類対象となる1つの宣言ノード。

    構文プロバイダーが提供する問い合わせ（修飾子、属性名、アクセサー形状、
    親チェーン、子孫検索）をまとめたもの。
    """

    def __init__(self, node: Node, parsed: ParsedSource):
        """宣言ノードを初期化する。

        Args:
            node: tree-sitterの宣言ノード
            parsed: ノードを含むパース結果

        Raises:
            ValueError: 集計対象の宣言種別でない場合
        """
        if node.type not in DECLARATION_NODE_TYPES:
            raise ValueError(f"Not a member declaration: {node.type}")
        self.node = node
        self.parsed = parsed
        self.kind = DECLARATION_NODE_TYPES[node.type]
        self._modifiers: Optional[Set[str]] = None

    @property
    def file(self) -> str:
        return self.parsed.path

    @property
    def name(self) -> str:
        return node_text(declared_name(self.node)) or "<unnamed>"

    def to_ref(self) -> MemberRef:
        line, column = self.parsed.position_of(self.node)
        return MemberRef(kind=self.kind, name=self.name, line=line, column=column)

    # 修飾子・属性

    @property
    def modifiers(self) -> Set[str]:
        if self._modifiers is None:
            self._modifiers = modifiers_of(self.node)
        return self._modifiers

    def has_modifier(self, keyword: str) -> bool:
        return keyword in self.modifiers

    def attribute_names(self) -> List[str]:
        """宣言に付与された属性名をソース上の表記のまま列挙する。"""
        names = []
        for attribute_list in self.node.children:
            if attribute_list.type != "attribute_list":
                continue
            for attribute in attribute_list.named_children:
                if attribute.type == "attribute":
                    names.append(node_text(attribute.child_by_field_name("name")))
        return names

    # アクセサー形状（プロパティのみ）

    def _accessors(self) -> List[Node]:
        accessor_list = self.node.child_by_field_name("accessors")
        if accessor_list is None:
            for child in self.node.named_children:
                if child.type == "accessor_list":
                    accessor_list = child
                    break
        if accessor_list is None:
            return []
        return [a for a in accessor_list.named_children if a.type == "accessor_declaration"]

    @staticmethod
    def _accessor_keyword(accessor: Node) -> str:
        name = accessor.child_by_field_name("name")
        if name is not None:
            return node_text(name)
        for child in accessor.children:
            if child.type in ("get", "set", "init", "add", "remove"):
                return child.type
        return ""

    @staticmethod
    def _accessor_has_block_body(accessor: Node) -> bool:
        # 式形式（get => _x;）はブロック本体を持たないので自動実装と同じ扱い
        return any(child.type == "block" for child in accessor.children)

    def has_accessor(self, keyword: str) -> bool:
        return any(self._accessor_keyword(a) == keyword for a in self._accessors())

    def has_auto_accessor(self, keyword: str) -> bool:
        return any(
            self._accessor_keyword(a) == keyword and not self._accessor_has_block_body(a)
            for a in self._accessors()
        )

    @property
    def has_getter(self) -> bool:
        return self.has_accessor("get")

    @property
    def has_setter(self) -> bool:
        return self.has_accessor("set")

    @property
    def has_auto_getter(self) -> bool:
        return self.has_auto_accessor("get")

    @property
    def has_auto_setter(self) -> bool:
        return self.has_auto_accessor("set")

    # 木の走査

    def ancestors(self) -> Iterator[Node]:
        return iter_ancestors(self.node)

    def descendants(self, category: SyntaxCategory) -> Iterator[Node]:
        """指定カテゴリに該当する子孫ノードを列挙する。"""
        for node in iter_descendants(self.node):
            if matches_category(node, category):
                yield node

    def has_descendant(self, category: SyntaxCategory) -> bool:
        return next(self.descendants(category), None) is not None

    def text_of(self, node: Node) -> str:
        return self.parsed.text_of(node)

    def __repr__(self) -> str:
        return f"DeclarationNode({self.kind.value} {self.name} in {self.file})"
