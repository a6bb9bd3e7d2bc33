"""Member declaration extraction from parsed C# source files."""

from typing import List
import logging

from .csharp_parser import ParsedSource
from .syntax import DECLARATION_NODE_TYPES, DeclarationNode, iter_descendants

logger = logging.getLogger(__name__)


class DeclarationExtractor:
    """Enumerate methods, properties, constructors and local functions."""

    def extract(self, parsed: ParsedSource) -> List[DeclarationNode]:
        """Get all member declarations in a file, in document order.

        Nested declarations (local functions inside methods) are returned
        as separate entries after their enclosing member.

        Args:
            parsed: Parsed source file

        Returns:
            List of DeclarationNode
        """
        declarations = [
            DeclarationNode(node, parsed)
            for node in iter_descendants(parsed.root)
            if node.type in DECLARATION_NODE_TYPES
        ]
        logger.debug(f"Found {len(declarations)} member declarations in {parsed.path}")
        return declarations
