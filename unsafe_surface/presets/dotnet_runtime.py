"""dotnet/runtimeリポジトリ向けのプリセット。

SIMD系の名前空間（AVX512やSVEなど、シグネチャ自体がunsafeなメンバーが
大量にある）を除外し、パスからアセンブリ名を推定してグループ化する。
"""

from pathlib import Path
from typing import FrozenSet, Tuple, Union

from ..models.member import MemberSafetyRecord
from .generic import EXCLUDED_DIRECTORIES, GenericPreset

MISC_KEY = "Misc"

# 相対パスにこれらを含むファイルは除外する
EXCLUDED_PATH_FRAGMENTS = (
    "System/Runtime/Intrinsics",
    "System/Numerics/Vector",
)

RUNTIME_EXCLUDED_DIRECTORIES: FrozenSet[str] = EXCLUDED_DIRECTORIES | frozenset({
    "docs",
    "installer",
    "workloads",
    "tasks",
    "samples",
    "fuzzing",
    "tools",
})

# 3番目のディレクトリ名をアセンブリ名とみなすルート
#   src/libraries/System.Console/src/System/Console.cs
#                 ^^^^^^^^^^^^^^
ASSEMBLY_ROOTS: Tuple[Tuple[str, ...], ...] = (
    ("src", "libraries"),
    ("src", "coreclr", "system.private.corelib"),
    ("src", "coreclr", "nativeaot"),
)

# 固定のキーにまとめるルート
NAMED_ROOTS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("src", "mono"), "mono"),
    (("src", "native", "managed", "cdacreader"), "cDAC"),
)


class DotnetRuntimePreset(GenericPreset):
    """dotnet/runtime用のプリセット。"""

    name = "dotnet-runtime"
    excluded_directories = RUNTIME_EXCLUDED_DIRECTORIES

    def __init__(self, root: Union[str, Path], group_by: str = "file"):
        # group_by はこのプリセットでは使わない（常にアセンブリ単位）
        super().__init__(root, group_by=group_by)

    def should_include(self, path: str) -> bool:
        relative = str(self.relative_path(path))
        if any(fragment in relative for fragment in EXCLUDED_PATH_FRAGMENTS):
            return False
        return super().should_include(path)

    def group_key(self, record: MemberSafetyRecord) -> str:
        parts = self.relative_path(record.file).parts
        lowered = tuple(part.lower() for part in parts)

        for prefix in ASSEMBLY_ROOTS:
            if lowered[:len(prefix)] == prefix:
                return parts[2] if len(parts) > 3 else MISC_KEY

        for prefix, key in NAMED_ROOTS:
            if lowered[:len(prefix)] == prefix:
                return key

        return MISC_KEY
