r"""系数块存储

一个系数块保存同一组群标签下、所有合法重数指标组合的系数值。

存储布局
========

系数按 **行主序** 平铺在一维 ``numpy`` 数组中：重数指标元组按字典序枚举，
最后一个指标变化最快。对 1 起始的指标 :math:`(i_1,\ldots,i_k)` 与通道上限
:math:`(m_1,\ldots,m_k)`，平铺偏移为

.. math::

    \mathrm{off} = \sum_{j=1}^{k} (i_j - 1) \prod_{l>j} m_l

各族的指标顺序：

+-------+---------------------------------------------+
| 族    | 指标顺序                                    |
+=======+=============================================+
| U     | ``(r12, r12_3, r23, r1_23)``                |
| W     | ``(kappa1, kappa2, kappa3, rho)``           |
| Phi   | ``(rho1, rho2)``                            |
+-------+---------------------------------------------+

任一通道重数为零时得到空块（上限全置零、无存储值），表示系数不存在，
而不是报错。块构造完成后不再修改。
"""

from __future__ import annotations

import numpy as np

from .kernel import CouplingKernel, check_indices
from .labels import PhiCoefLabels, UCoefLabels, WCoefLabels

__all__ = [
    "UCoefBlock",
    "WCoefBlock",
    "PhiCoefBlock",
]


class _CoefBlock:
    """系数块公共实现。"""

    family = "系数"
    n_indices = 0

    def __init__(self, maxima: tuple[int, ...] | None = None, coefs: np.ndarray | None = None):
        if maxima is None:
            maxima = (0,) * self.n_indices
        self.maxima = tuple(int(m) for m in maxima)
        if coefs is None:
            coefs = np.zeros(0, dtype=np.float64)
        self.coefs = np.array(coefs, dtype=np.float64).ravel()
        expected = int(np.prod(self.maxima)) if self.maxima else 0
        if self.coefs.size != expected:
            raise ValueError(f"系数个数 {self.coefs.size} 与重数 {self.maxima} 不符（应为 {expected}）")
        self.coefs.setflags(write=False)

    @classmethod
    def _evaluate(cls, kernel: CouplingKernel, labels, indices: tuple[int, ...]) -> float:
        raise NotImplementedError

    @classmethod
    def build(cls, labels, kernel: CouplingKernel):
        """解析重数并逐个指标组合调用计算核，构造系数块。

        Parameters
        ----------
        labels
            对应族的标签对象
        kernel : CouplingKernel
            已初始化的计算核

        Returns
        -------
        _CoefBlock
            新系数块；标签组合不允许时为空块。
        """
        maxima = labels.multiplicity()
        if int(np.prod(maxima)) == 0:
            return cls()
        coefs = np.empty(int(np.prod(maxima)), dtype=np.float64)
        # np.ndindex 按行主序枚举，最后一个指标变化最快
        for offset, zero_based in enumerate(np.ndindex(*maxima)):
            indices = tuple(i + 1 for i in zero_based)
            coefs[offset] = cls._evaluate(kernel, labels, indices)
        if np.isnan(coefs).any():
            raise RuntimeError(f"{cls.family}块中出现 NaN（计算核是否已初始化？）: {labels}")
        return cls(maxima, coefs)

    def key(self) -> tuple[int, ...]:
        """各通道重数上限。"""
        return self.maxima

    @property
    def is_empty(self) -> bool:
        return self.coefs.size == 0

    def __len__(self) -> int:
        return int(self.coefs.size)

    def offset(self, *indices: int) -> int:
        """1 起始重数指标对应的平铺偏移（行主序）。"""
        check_indices(tuple(indices), self.maxima, what=f"{self.family}块")
        return int(np.ravel_multi_index(tuple(i - 1 for i in indices), self.maxima))

    def get_coef(self, *indices: int) -> float:
        """取出单个系数值。

        Raises
        ------
        IndexError
            指标个数不符或越界（空块的任何指标都越界）。
        """
        return float(self.coefs[self.offset(*indices)])

    def get_coef_block(self) -> np.ndarray:
        """全部系数（平铺副本）。"""
        return self.coefs.copy()

    def as_array(self) -> np.ndarray:
        """按重数上限重排的系数数组（副本）。"""
        return self.coefs.reshape(self.maxima).copy()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(maxima={self.maxima}, n={len(self)})"


class UCoefBlock(_CoefBlock):
    """U 重耦合系数块，指标 ``(r12, r12_3, r23, r1_23)``。"""

    family = "U 系数"
    n_indices = 4

    @classmethod
    def _evaluate(cls, kernel: CouplingKernel, labels: UCoefLabels, indices):
        r12, r12_3, r23, r1_23 = indices
        return kernel.u(labels.x1, labels.x2, labels.x, labels.x3, labels.x12, r12, r12_3, labels.x23, r23, r1_23)


class WCoefBlock(_CoefBlock):
    """Wigner 系数块，指标 ``(kappa1, kappa2, kappa3, rho)``。"""

    family = "W 系数"
    n_indices = 4

    @classmethod
    def _evaluate(cls, kernel: CouplingKernel, labels: WCoefLabels, indices):
        k1, k2, k3, rho = indices
        return kernel.w(labels.x1, k1, labels.L1, labels.x2, k2, labels.L2, labels.x3, k3, labels.L3, rho)


class PhiCoefBlock(_CoefBlock):
    """Phi 相位块，指标 ``(rho1, rho2)``。"""

    family = "Phi 相位"
    n_indices = 2

    @classmethod
    def _evaluate(cls, kernel: CouplingKernel, labels: PhiCoefLabels, indices):
        rho1, rho2 = indices
        return kernel.phi(labels.x1, labels.x2, labels.x3, rho1, rho2)
