"""tree-sitterを使用したC#ソースコード解析モジュール。"""

from .csharp_parser import CSharpParser, ParsedSource, SourceReadError
from .syntax import DeclarationNode, SyntaxCategory
from .symbol_resolver import SymbolResolver, ResolvedSymbol, SymbolKind
from .declaration_extractor import DeclarationExtractor

__all__ = [
    "CSharpParser",
    "ParsedSource",
    "SourceReadError",
    "DeclarationNode",
    "SyntaxCategory",
    "SymbolResolver",
    "ResolvedSymbol",
    "SymbolKind",
    "DeclarationExtractor",
]
