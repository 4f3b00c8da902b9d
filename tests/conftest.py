"""测试公共夹具

:class:`FakeKernel` 是确定性的假计算核：

- 平凡 U 系数（:math:`x_2=(0,0)`，:math:`x_{12}=x_1`，:math:`x_{23}=x_3`）取精确值
  :math:`\\delta_{\\rho_{12,3}\\rho_{1,23}}`，因此只涉及 σ 层与第一层的 K 矩阵在物理上是精确的
- Phi 相位（Z 系数的平凡情形）取 :math:`\\delta_{\\rho\\rho'}`
- 其余系数取由标签与指标确定的任意值
"""

import math

import pytest

from sp3rcoef.coef import CouplingKernel, PhiCoefCache, UCoefCache, WCoefCache
from sp3rcoef.u3 import SU3

ZERO = SU3(0, 0)


class FakeKernel(CouplingKernel):
    def __init__(self):
        super().__init__()
        self.n_init = 0

    def _initialize(self):
        self.n_init += 1

    def _uz(self, x1, x2, x, x3, x12, r12, r12_3, x23, r23, r1_23, mode):
        if mode == "U" and x2 == ZERO and x12 == x1 and x23 == x3:
            return 1.0 if r12_3 == r1_23 else 0.0
        if mode == "Z" and x3 == ZERO and x12 == x and x23 == x1:
            return 1.0 if r12 == r1_23 else 0.0
        seed = x1.lambda_ + 2 * x2.mu + 3 * x.lambda_ + 5 * x12.mu
        return 1000 * r12 + 100 * r12_3 + 10 * r23 + r1_23 + 0.5 / (1 + seed)

    def _w(self, x1, k1, L1, x2, k2, L2, x3, k3, L3, rho):
        return 1000 * k1 + 100 * k2 + 10 * k3 + rho + 0.01 * (L1 + L2 + L3)

    def _unitary_9lm(self, x1, x2, x12, r12, x3, x4, x34, r34, x13, x24, x, r13_24, r13, r24, r12_34):
        return 0.25


class NaNKernel(FakeKernel):
    """模拟未初始化的 su3lib：所有系数返回 NaN。"""

    def _uz(self, *args):
        return math.nan

    def _w(self, *args):
        return math.nan


@pytest.fixture
def kernel():
    k = FakeKernel()
    k.initialize()
    return k


@pytest.fixture
def u_cache(kernel):
    return UCoefCache(kernel)


@pytest.fixture
def w_cache(kernel):
    return WCoefCache(kernel)


@pytest.fixture
def phi_cache(kernel):
    return PhiCoefCache(kernel)
