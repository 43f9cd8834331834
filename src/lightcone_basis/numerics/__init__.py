"""数值积分工具。"""

from .integrals import IntegralTables
from .quadrature import interval_average_rule

__all__ = [
    "IntegralTables",
    "interval_average_rule",
]
