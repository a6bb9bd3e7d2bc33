"""宣言の安全性分類とstackallocの有界性判定。"""

from .unsafe_api_catalog import UnsafeApiCatalog, get_default_catalog
from .member_classifier import MemberSafetyClassifier, PINVOKE_ATTRIBUTES
from .stackalloc_evaluator import ConstantFoldabilityEvaluator, StackallocScanner

__all__ = [
    "UnsafeApiCatalog",
    "get_default_catalog",
    "MemberSafetyClassifier",
    "PINVOKE_ATTRIBUTES",
    "ConstantFoldabilityEvaluator",
    "StackallocScanner",
]
