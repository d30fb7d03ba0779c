"""
Utilities package - Common utilities for the puzzle system
"""

from .hybrid_logger import HybridLogger, ClassLogger, ColoredFormatter, get_default_class_logger
from .once_in_ms import OnceInMs

__all__ = [
    'HybridLogger',
    'ClassLogger',
    'ColoredFormatter',
    'get_default_class_logger',
    'OnceInMs'
]
