"""unsafeなAPI呼び出しのカタログとマッチング。

呼び出し式のテキスト表現に対する前方一致・部分一致で判定する。
意味解析は行わないため、同名の別クラスや別名usingは誤判定し得る。
"""

from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple
import logging
import re

from tree_sitter import Node

from ..analyzer.syntax import node_text

logger = logging.getLogger(__name__)


WILDCARD = "*"

_VECTOR_MEMORY_APIS = (
    "Load",
    "LoadUnsafe",
    "LoadAligned",
    "LoadAlignedNonTemporal",
    "Store",
    "StoreUnsafe",
    "StoreAligned",
    "StoreAlignedNonTemporal",
)

# 型名 -> unsafeとみなすメンバー名（"*" は全メンバー）
# 一覧は https://github.com/dotnet/runtime/issues/41418 に基づく
DEFAULT_UNSAFE_APIS: Dict[str, Tuple[str, ...]] = {
    "Unsafe": (
        "Add",
        "AddByteOffset",
        "As",
        "AsPointer",
        "AsRef",
        "BitCast",
        "ByteOffset",
        "Copy",
        "CopyBlock",
        "CopyBlockUnaligned",
        "InitBlock",
        "InitBlockUnaligned",
        "Read",
        "ReadUnaligned",
        "SkipInit",
        "Subtract",
        "SubtractByteOffset",
        "Unbox",
        "Write",
        "WriteUnaligned",
    ),
    "MemoryMarshal": (
        "AsBytes",
        "AsMemory",
        "AsRef",
        "Cast",
        "CreateFromPinnedArray",
        "CreateReadOnlySpan",
        "CreateReadOnlySpanFromNullTerminated",
        "CreateSpan",
        "GetArrayDataReference",
        "GetReference",
        "Read",
        "TryGetArray",
        "TryGetMemoryManager",
        "TryRead",
        "TryWrite",
        "Write",
    ),
    "SequenceMarshal": (
        "TryGetArray",
        "TryRead",
    ),
    "NativeLibrary": (WILDCARD,),
    "GC": (
        "AllocateUninitializedArray",
    ),
    "RuntimeHelpers": (
        "GetUninitializedObject",
    ),
    # ISA固有のLoad*もあるが、通常はVector*の共通APIに置き換えられている
    "Vector64": _VECTOR_MEMORY_APIS,
    "Vector128": _VECTOR_MEMORY_APIS,
    "Vector256": _VECTOR_MEMORY_APIS,
    "Vector512": _VECTOR_MEMORY_APIS,
    "Vector": _VECTOR_MEMORY_APIS,
}

# ArrayPool<T>.Shared.Rent(...) などの共有プール
SHARED_POOL_TYPES: FrozenSet[str] = frozenset({"ArrayPool", "MemoryPool"})
SHARED_POOL_METHODS: FrozenSet[str] = frozenset({"Rent", "Return"})


class UnsafeApiCatalog:
    """unsafeなAPIの一覧と呼び出しテキストの照合を行う。"""

    def __init__(self, apis: Optional[Mapping[str, Iterable[str]]] = None):
        """カタログを初期化する。

        Args:
            apis: 型名からメンバー名への対応（省略時は既定の一覧）
        """
        source = DEFAULT_UNSAFE_APIS if apis is None else apis
        self._apis: Dict[str, FrozenSet[str]] = {
            type_name: frozenset(members) for type_name, members in source.items()
        }
        self._wildcard_patterns = {
            type_name: re.compile(rf"(?:\b\w+\.)?{re.escape(type_name)}\.")
            for type_name, members in self._apis.items()
            if WILDCARD in members
        }
        logger.debug(f"Unsafe API catalog loaded with {len(self._apis)} types")

    @property
    def type_names(self) -> FrozenSet[str]:
        return frozenset(self._apis)

    def members_of(self, type_name: str) -> FrozenSet[str]:
        return self._apis.get(type_name, frozenset())

    def matches_text(self, invocation_text: str) -> bool:
        """呼び出し式のテキストがカタログのいずれかに一致するか判定する。

        Args:
            invocation_text: 呼び出し式のソーステキスト（引数を含む）

        Returns:
            一致した場合True
        """
        for type_name, members in self._apis.items():
            for member in members:
                if self._is_static_call(invocation_text, type_name, member):
                    return True
        return False

    def _is_static_call(self, text: str, type_name: str, member: str) -> bool:
        if member == WILDCARD:
            # Type.* または Namespace.Type.*
            return self._wildcard_patterns[type_name].search(text) is not None
        qualified = f"{type_name}.{member}"
        # Type.Member(...) または Namespace.Type.Member(...)
        return text.startswith(qualified) or f".{qualified}" in text

    @staticmethod
    def is_shared_pool_call(invocation: Node) -> bool:
        """`ArrayPool<T>.Shared.Rent/Return` 形式の呼び出しか判定する。

        Args:
            invocation: invocation_expressionノード

        Returns:
            共有プールの貸し出し・返却呼び出しの場合True
        """
        function = invocation.child_by_field_name("function")
        if function is None or function.type != "member_access_expression":
            return False
        if node_text(function.child_by_field_name("name")) not in SHARED_POOL_METHODS:
            return False

        shared = function.child_by_field_name("expression")
        if shared is None or shared.type != "member_access_expression":
            return False
        if node_text(shared.child_by_field_name("name")) != "Shared":
            return False

        pool_type = shared.child_by_field_name("expression")
        if pool_type is None or pool_type.type != "generic_name":
            return False
        pool_name = pool_type.child_by_field_name("name")
        if pool_name is None:
            pool_name = next(
                (child for child in pool_type.named_children if child.type == "identifier"),
                None,
            )
        return node_text(pool_name) in SHARED_POOL_TYPES

    def matches(self, invocation: Node, invocation_text: str) -> bool:
        """呼び出し式がunsafeなAPI呼び出しか判定する。"""
        return self.is_shared_pool_call(invocation) or self.matches_text(invocation_text)


_default_catalog: Optional[UnsafeApiCatalog] = None


def get_default_catalog() -> UnsafeApiCatalog:
    """プロセス共通の既定カタログを取得する（初回のみ構築）。"""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = UnsafeApiCatalog()
    return _default_catalog
