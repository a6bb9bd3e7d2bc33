"""Data models for unsafe code surface analysis."""

from .member import DeclarationKind, MemberRef, MemberSafetyRecord
from .stackalloc import StackAllocationSite
from .report import (
    GroupMetrics,
    ReportTable,
    ComparisonRow,
    ComparisonTable,
    OTHER_KEY,
    TOTAL_KEY,
)

__all__ = [
    "DeclarationKind",
    "MemberRef",
    "MemberSafetyRecord",
    "StackAllocationSite",
    "GroupMetrics",
    "ReportTable",
    "ComparisonRow",
    "ComparisonTable",
    "OTHER_KEY",
    "TOTAL_KEY",
]
