"""
Utility modules.
"""

from .logger import get_logger, setup_logger, FormFlowLogger
from .paths import (
    parse_path,
    format_path,
    normalize_path,
    leaf_name,
    get_value,
    has_value,
    set_value,
)

__all__ = [
    # Logger
    "get_logger",
    "setup_logger",
    "FormFlowLogger",
    # Data paths
    "parse_path",
    "format_path",
    "normalize_path",
    "leaf_name",
    "get_value",
    "has_value",
    "set_value",
]
