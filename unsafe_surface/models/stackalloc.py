"""スタック割り当て箇所のモデル。"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StackAllocationSite:
    """サイズが静的に確定しないstackalloc式の位置。

    sequence は1回の実行内での発見順（1始まり）。並列解析のため、
    件数は実行ごとに安定するが、ファイル間の順序は安定しない。
    """
    file: str
    line: int  # 1始まり
    column: int  # 1始まり
    expression: str
    sequence: int = 0

    def render(self) -> str:
        """コンソール出力用の文字列に変換する。

        Returns:
            "path(line,col):" とタブ付きの式テキスト
        """
        return f"{self.file}({self.line},{self.column}):\n\t{self.expression}\n"

    def __str__(self) -> str:
        return f"#{self.sequence} {self.file}({self.line},{self.column})"
