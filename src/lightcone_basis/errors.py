"""矩阵元引擎抛出的异常类型。"""
from __future__ import annotations


class EngineError(RuntimeError):
    """矩阵元流水线内部失败的基类。"""


class ExponentKeyError(ValueError):
    """指数键非法：为空、长度为奇数或粒子数不足。"""


class ParticleCountError(ValueError):
    """单项式对的粒子数与所请求的矩阵元类型不符。"""


class NonFiniteElementError(EngineError):
    """积分乘积为 ``inf`` 或 ``nan``。"""

    def __init__(self, kind: str, key_a: tuple, key_b: tuple, value: float) -> None:
        self.kind = kind
        self.key_a = key_a
        self.key_b = key_b
        self.value = value
        super().__init__(
            f"{kind} 矩阵元出现非有限值 {value!r}，指数键 {key_a} x {key_b}。"
        )
