"""メンバー単位の安全性情報モデル。"""

from dataclasses import dataclass
from enum import Enum


class DeclarationKind(Enum):
    """集計対象となる宣言の種類。"""
    ROUTINE = "method"
    PROPERTY = "property"
    CONSTRUCTOR = "constructor"
    LOCAL_FUNCTION = "local function"


@dataclass(frozen=True)
class MemberRef:
    """解析後も保持する宣言ノードへの軽量な参照。"""
    kind: DeclarationKind
    name: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.kind.value} {self.name} ({self.line},{self.column})"


@dataclass(frozen=True)
class MemberSafetyRecord:
    """1つの宣言に対する安全性の判定結果。

    各フラグは互いに独立しており、例えばP/Invoke宣言がポインタ引数を
    持つ場合は is_pinvoke と has_unsafe_context の両方が立つ。
    """
    file: str
    member: MemberRef
    has_unsafe_context: bool = False
    has_unsafe_api_call: bool = False
    has_unsafe_modifier_on_ancestor: bool = False
    is_pinvoke: bool = False
    is_trivial_property: bool = False

    @property
    def can_be_ignored(self) -> bool:
        """集計から除外するかどうか（自明なプロパティはフィールド扱い）。"""
        return self.is_trivial_property

    @property
    def is_unsafe(self) -> bool:
        """unsafeな操作を含むと判定されたかどうか。

        祖先のunsafe修飾子は弱いシグナルなので含めない。
        """
        return not self.can_be_ignored and (
            self.has_unsafe_context or self.is_pinvoke or self.has_unsafe_api_call
        )

    def __str__(self) -> str:
        return f"{self.file}: {self.member}"
