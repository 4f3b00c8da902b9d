"""系数缓存键

每个标签类收集一组共享 SU(3)（及 SO(3)）标签、仅重数指标不同的系数的
公共标签。冻结数据类按字段元组自动提供相等、全序与哈希，
因此结构相同的两个实例无论如何构造都相等且哈希一致，可直接作为字典键。
"""

from __future__ import annotations

from dataclasses import dataclass

from ..u3 import SU3
from .multiplicity import phi_multiplicity, u_multiplicity, w_multiplicity

__all__ = [
    "UCoefLabels",
    "WCoefLabels",
    "PhiCoefLabels",
]


def _all_positive(maxima: tuple[int, ...]) -> bool:
    return all(m > 0 for m in maxima)


@dataclass(frozen=True, order=True)
class UCoefLabels:
    r"""U 重耦合系数的 SU(3) 标签 :math:`(x_1, x_2, x, x_3, x_{12}, x_{23})`。"""

    x1: SU3
    x2: SU3
    x: SU3
    x3: SU3
    x12: SU3
    x23: SU3

    def key(self) -> tuple[SU3, SU3, SU3, SU3, SU3, SU3]:
        return (self.x1, self.x2, self.x, self.x3, self.x12, self.x23)

    def multiplicity(self) -> tuple[int, int, int, int]:
        """``(r12_max, r12_3_max, r23_max, r1_23_max)``"""
        return u_multiplicity(*self.key())

    def allowed(self) -> bool:
        """标签是否满足耦合约束（所有通道重数均大于零）。

        调用方可据此在请求不存在的系数之前短路。
        """
        return _all_positive(self.multiplicity())


@dataclass(frozen=True, order=True)
class WCoefLabels:
    r"""Wigner 系数的标签 :math:`(x_1, L_1, x_2, L_2, x_3, L_3)`。"""

    x1: SU3
    L1: int
    x2: SU3
    L2: int
    x3: SU3
    L3: int

    def key(self) -> tuple[SU3, int, SU3, int, SU3, int]:
        return (self.x1, self.L1, self.x2, self.L2, self.x3, self.L3)

    def multiplicity(self) -> tuple[int, int, int, int]:
        """``(kappa1_max, kappa2_max, kappa3_max, rho_max)``"""
        return w_multiplicity(*self.key())

    def allowed(self) -> bool:
        return _all_positive(self.multiplicity())


@dataclass(frozen=True, order=True)
class PhiCoefLabels:
    r"""Phi 相位的标签 :math:`(x_1, x_2, x_3)`。"""

    x1: SU3
    x2: SU3
    x3: SU3

    def key(self) -> tuple[SU3, SU3, SU3]:
        return (self.x1, self.x2, self.x3)

    def multiplicity(self) -> tuple[int, int]:
        return phi_multiplicity(*self.key())

    def allowed(self) -> bool:
        return _all_positive(self.multiplicity())
