"""C#コードベースのunsafeコード利用状況を集計するツール。"""

__version__ = "0.1.0"
