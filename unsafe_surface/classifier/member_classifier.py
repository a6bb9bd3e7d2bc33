"""メンバー宣言の安全性分類。"""

from typing import FrozenSet, Optional
import logging

from ..analyzer.syntax import (
    UNSAFE_SCOPE_NODE_TYPES,
    DeclarationNode,
    SyntaxCategory,
    modifiers_of,
)
from ..models.member import DeclarationKind, MemberSafetyRecord
from .unsafe_api_catalog import UnsafeApiCatalog, get_default_catalog

logger = logging.getLogger(__name__)


UNSAFE_KEYWORD = "unsafe"

# P/Invoke宣言とみなす属性名（従来形式とソース生成形式）
PINVOKE_ATTRIBUTES: FrozenSet[str] = frozenset({
    "DllImport",
    "DllImportAttribute",
    "LibraryImport",
    "LibraryImportAttribute",
})


class MemberSafetyClassifier:
    """宣言ノードから安全性に関する事実を抽出する。

    各規則は独立に評価され、該当するものはすべてレコードに立つ。
    共有状態を変更しないため、複数スレッドから同時に呼び出せる。
    """

    def __init__(self, catalog: Optional[UnsafeApiCatalog] = None):
        """分類器を初期化する。

        Args:
            catalog: unsafe APIカタログ（省略時は既定のカタログ）
        """
        self.catalog = catalog or get_default_catalog()

    def classify(self, member: DeclarationNode) -> MemberSafetyRecord:
        """1つの宣言を分類する。

        Args:
            member: 分類する宣言ノード

        Returns:
            MemberSafetyRecord
        """
        return MemberSafetyRecord(
            file=member.file,
            member=member.to_ref(),
            has_unsafe_context=self.has_unsafe_context(member),
            has_unsafe_api_call=self.has_unsafe_api_call(member),
            has_unsafe_modifier_on_ancestor=self.has_unsafe_modifier_on_ancestor(member),
            is_pinvoke=self.is_pinvoke(member),
            is_trivial_property=self.is_trivial_property(member),
        )

    def is_pinvoke(self, member: DeclarationNode) -> bool:
        """DllImport/LibraryImport属性を持つメソッドまたはローカル関数か。"""
        if member.kind not in (DeclarationKind.ROUTINE, DeclarationKind.LOCAL_FUNCTION):
            return False
        return any(name in PINVOKE_ATTRIBUTES for name in member.attribute_names())

    def has_unsafe_modifier_on_ancestor(self, member: DeclarationNode) -> bool:
        """外側のクラス・構造体・メソッド・ローカル関数がunsafe修飾子を持つか。

        unsafeなクラス内では全メンバーがunsafeコンテキストになるが、
        本体が実際にunsafeな操作をしているとは限らない弱いシグナル。
        """
        for ancestor in member.ancestors():
            if ancestor.type in UNSAFE_SCOPE_NODE_TYPES and UNSAFE_KEYWORD in modifiers_of(ancestor):
                return True
        return False

    def has_unsafe_context(self, member: DeclarationNode) -> bool:
        """自身のunsafe修飾子、unsafeブロック、ポインタ型、アドレス演算子のいずれかを持つか。"""
        if member.has_modifier(UNSAFE_KEYWORD):
            return True
        # unsafe {} だけでポインタが見えない場合も foo(ptr.ToPointer()) のような利用がある
        return (
            member.has_descendant(SyntaxCategory.UNSAFE_BLOCK)
            or member.has_descendant(SyntaxCategory.POINTER_TYPE)
            or member.has_descendant(SyntaxCategory.ADDRESS_OF)
        )

    def has_unsafe_api_call(self, member: DeclarationNode) -> bool:
        """カタログに載っているAPIの呼び出しを含むか。"""
        for invocation in member.descendants(SyntaxCategory.INVOCATION):
            if self.catalog.matches(invocation, member.text_of(invocation)):
                return True
        return False

    def is_trivial_property(self, member: DeclarationNode) -> bool:
        """自動実装または式形式のプロパティか判定する。

        MyProp { get; }      --> 自明
        MyProp { set; }      --> 自明
        MyProp { get; set; } --> 自明
        MyProp => _field     --> 自明

        数が多くフィールドと実質同じなので、メソッドとしては数えない。
        """
        if member.kind is not DeclarationKind.PROPERTY:
            return False

        has_getter = member.has_getter
        has_setter = member.has_setter
        has_auto_getter = member.has_auto_getter
        has_auto_setter = member.has_auto_setter

        return (
            (has_auto_getter and has_auto_setter)
            or (has_auto_getter and not has_setter)
            or (has_auto_setter and not has_getter)
            or (not has_getter and not has_setter)
        )
