"""矩阵结果的磁盘缓存。"""

from .cache import MatrixCache

__all__ = [
    "MatrixCache",
]
