"""C#ソースファイル内の識別子のシンボル解決。"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple
import logging

from tree_sitter import Node

from .syntax import declared_name, iter_ancestors, modifiers_of, node_text

logger = logging.getLogger(__name__)


class SymbolKind(Enum):
    """解決されたシンボルの種類。"""
    FIELD = "field"
    LOCAL = "local"
    PARAMETER = "parameter"


@dataclass(frozen=True)
class ResolvedSymbol:
    """識別子の解決結果。"""
    name: str
    kind: SymbolKind
    is_const: bool
    declaration: Node


class SymbolResolver:
    """字句スコープをたどって識別子の宣言を探す。

    意味解析は行わず、同一ファイル内で最も内側にある同名の宣言を
    採用する。他ファイルのpartialクラスや継承元の定数は解決できない。
    """

    # 直下の子に宣言を持ち得るノード
    DECLARING_STATEMENTS = ("local_declaration_statement", "field_declaration")

    def resolve(self, identifier: Node) -> Optional[ResolvedSymbol]:
        """識別子ノードの宣言を解決する。

        Args:
            identifier: identifierノード

        Returns:
            ResolvedSymbol、見つからない場合はNone
        """
        name = node_text(identifier)
        if not name:
            return None

        for scope in iter_ancestors(identifier):
            found = self._find_in_scope(scope, name)
            if found is not None:
                return found

        logger.debug(f"Unresolved identifier: {name}")
        return None

    def is_constant(self, identifier: Node) -> bool:
        """識別子がconstフィールドまたはconstローカルを指すか判定する。"""
        symbol = self.resolve(identifier)
        return symbol is not None and symbol.is_const

    def _find_in_scope(self, scope: Node, name: str) -> Optional[ResolvedSymbol]:
        """スコープ直下の宣言から名前を探す。"""
        if scope.type == "foreach_statement":
            left = scope.child_by_field_name("left")
            if left is not None and left.type == "identifier" and node_text(left) == name:
                return ResolvedSymbol(name, SymbolKind.LOCAL, False, scope)

        for child in scope.children:
            # トップレベルステートメント
            if child.type == "global_statement" and child.named_child_count:
                child = child.named_children[0]

            if child.type in self.DECLARING_STATEMENTS:
                kind = SymbolKind.FIELD if child.type == "field_declaration" else SymbolKind.LOCAL
                is_const = "const" in modifiers_of(child)
                for declarator_name, declarator in self._declarators(child):
                    if declarator_name == name:
                        return ResolvedSymbol(name, kind, is_const, declarator)

            elif child.type == "variable_declaration":
                # for / using / fixed の宣言
                for declarator_name, declarator in self._declarators_of(child):
                    if declarator_name == name:
                        return ResolvedSymbol(name, SymbolKind.LOCAL, False, declarator)

            elif child.type == "parameter_list":
                for parameter in child.named_children:
                    if parameter.type == "parameter" and node_text(declared_name(parameter)) == name:
                        return ResolvedSymbol(name, SymbolKind.PARAMETER, False, parameter)

        if scope.type == "lambda_expression":
            parameters = scope.child_by_field_name("parameters")
            if parameters is not None and parameters.type != "parameter_list":
                if node_text(declared_name(parameters) or parameters) == name:
                    return ResolvedSymbol(name, SymbolKind.PARAMETER, False, parameters)

        return None

    def _declarators(self, statement: Node) -> Iterator[Tuple[str, Node]]:
        for child in statement.named_children:
            if child.type == "variable_declaration":
                yield from self._declarators_of(child)

    @staticmethod
    def _declarators_of(declaration: Node) -> Iterator[Tuple[str, Node]]:
        for declarator in declaration.named_children:
            if declarator.type == "variable_declarator":
                yield node_text(declared_name(declarator)), declarator
