"""ファイルの包含判定とグループ化を担うプリセットの基底クラス。"""

from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Tuple, Union
import os

from ..models.member import MemberSafetyRecord


class GroupingPreset(ABC):
    """解析対象のルートディレクトリに結び付いたプリセット。

    パスの判定はすべてルートからの相対パスに対して行う。ルート自体の
    ディレクトリ名（例えば ~/tests/myrepo）が除外条件に掛かることはない。
    """

    name = "base"

    def __init__(self, root: Union[str, Path]):
        """プリセットを初期化する。

        Args:
            root: 解析対象のルートディレクトリ
        """
        self.root = Path(root)
        self._abs_root = os.path.abspath(str(self.root))

    def relative_path(self, path: Union[str, Path]) -> PurePosixPath:
        """ルートからの相対パスを'/'区切りで返す。"""
        relative = os.path.relpath(os.path.abspath(str(path)), self._abs_root)
        return PurePosixPath(*Path(relative).parts)

    def segments(self, path: Union[str, Path]) -> Tuple[str, ...]:
        """相対パスのディレクトリ部分を小文字で返す。"""
        return tuple(part.lower() for part in self.relative_path(path).parts[:-1])

    @abstractmethod
    def should_include(self, path: str) -> bool:
        """ファイルを解析対象に含めるかどうか。"""

    @abstractmethod
    def group_key(self, record: MemberSafetyRecord) -> str:
        """レコードのグループキー（レポートの行）を返す。"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(root={str(self.root)!r})"
