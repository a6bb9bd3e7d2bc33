"""ファイル選択とグループ化のプリセット。"""

from pathlib import Path
from typing import Dict, Type, Union

from .base import GroupingPreset
from .generic import GenericPreset
from .dotnet_runtime import DotnetRuntimePreset

# プリセット名（小文字） -> (クラス, 既定のgroup_by)
PRESETS: Dict[str, tuple] = {
    "generic": (GenericPreset, "file"),
    "all": (GenericPreset, "all"),
    "dotnet-runtime": (DotnetRuntimePreset, "file"),
    "dotnetruntimerepo": (DotnetRuntimePreset, "file"),
}


def get_preset(name: str, root: Union[str, Path], **options) -> GroupingPreset:
    """名前からプリセットを生成する。

    Args:
        name: プリセット名（大文字小文字を区別しない）
        root: 解析対象のルートディレクトリ
        **options: プリセットのコンストラクタに渡す追加引数（group_by など）

    Returns:
        GroupingPreset

    Raises:
        ValueError: 不明なプリセット名の場合
    """
    key = name.strip().lower()
    if key not in PRESETS:
        known = ", ".join(sorted(k for k in PRESETS if k != "dotnetruntimerepo"))
        raise ValueError(f"Unknown preset '{name}'. Choose from: {known}")

    preset_class: Type[GroupingPreset]
    preset_class, default_group_by = PRESETS[key]
    if options.get("group_by") is None:
        options["group_by"] = default_group_by
    return preset_class(root, **options)


__all__ = [
    "GroupingPreset",
    "GenericPreset",
    "DotnetRuntimePreset",
    "PRESETS",
    "get_preset",
]
