"""任意のリポジトリ向けの汎用プリセット。"""

from pathlib import Path
from typing import FrozenSet, Union

from ..models.member import MemberSafetyRecord
from ..report.aggregator import group_all
from .base import GroupingPreset

# 除外するディレクトリ名（小文字で比較）
EXCLUDED_DIRECTORIES: FrozenSet[str] = frozenset({"test", "tests", "ref"})
EXCLUDED_SUFFIXES = (".test", ".tests")

GROUP_BY_CHOICES = ("file", "all")


class GenericPreset(GroupingPreset):
    """テスト・参照アセンブリのディレクトリを除外し、ファイル単位で集計する。"""

    name = "generic"
    excluded_directories: FrozenSet[str] = EXCLUDED_DIRECTORIES

    def __init__(self, root: Union[str, Path], group_by: str = "file"):
        """汎用プリセットを初期化する。

        Args:
            root: 解析対象のルートディレクトリ
            group_by: "file"（相対パスごと）または "all"（全体で1行）

        Raises:
            ValueError: group_by が不明な場合
        """
        super().__init__(root)
        if group_by not in GROUP_BY_CHOICES:
            raise ValueError(
                f"Unknown group_by '{group_by}'. Choose from: {', '.join(GROUP_BY_CHOICES)}"
            )
        self.group_by = group_by

    def is_excluded_directory(self, name: str) -> bool:
        return name in self.excluded_directories or name.endswith(EXCLUDED_SUFFIXES)

    def should_include(self, path: str) -> bool:
        return not any(self.is_excluded_directory(name) for name in self.segments(path))

    def group_key(self, record: MemberSafetyRecord) -> str:
        if self.group_by == "all":
            return group_all(record)
        return str(self.relative_path(record.file))
