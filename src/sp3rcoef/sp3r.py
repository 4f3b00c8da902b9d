r"""Sp(3,R) 不可约表示的 U(3) 子空间结构

Sp(3,R) 不可约表示由最低权 :math:`\sigma` 标记。其基矢由 :math:`\sigma` 与
玻色升算符多项式 :math:`n`（分量全为偶数的 U(3) 标签）耦合得到：

.. math::

    |\sigma\, n\, \rho\, \omega\rangle, \qquad \omega \in \sigma \otimes n

具有相同 :math:`\omega` 的态构成一个 :class:`U3Subspace`，其中每个态以
:math:`(n, \rho)` 标记。:class:`Sp3RSpace` 按 :math:`(N_\omega, \omega)` 升序
保存所有子空间，从而保证降低两个量子后的子空间总排在前面（K 矩阵递推依赖此顺序）。
"""

from __future__ import annotations

from typing import Iterable, Iterator

from .u3 import U3, MultiplicityTagged, kronecker_product

__all__ = [
    "raising_polynomial_labels",
    "U3Subspace",
    "Sp3RSpace",
]


def raising_polynomial_labels(Nn: int) -> list[U3]:
    """升算符多项式标签：分量均为偶数、总数为 ``Nn`` 的三行分拆。

    Examples
    --------
    >>> raising_polynomial_labels(4)
    [U3(f1=2, f2=2, f3=0), U3(f1=4, f2=0, f3=0)]
    """
    if Nn < 0 or Nn % 2 != 0:
        return []
    labels = []
    for n3 in range(0, Nn // 3 + 1, 2):
        for n2 in range(n3, (Nn - n3) // 2 + 1, 2):
            n1 = Nn - n2 - n3
            if n1 >= n2:
                labels.append(U3(n1, n2, n3))
    return sorted(labels)


class U3Subspace:
    r"""共享同一 :math:`\omega` 的态集合。

    Parameters
    ----------
    omega : U3
        子空间标签
    states : iterable of MultiplicityTagged[U3]
        态标签 :math:`(n, \rho)`，顺序即矩阵指标顺序
    """

    def __init__(self, omega: U3, states: Iterable[MultiplicityTagged[U3]]):
        self.omega = omega
        self._states = list(states)
        if not self._states:
            raise ValueError(f"子空间 {omega} 不含任何态")

    @property
    def subspace_labels(self) -> U3:
        return self.omega

    def size(self) -> int:
        return len(self._states)

    def __len__(self) -> int:
        return len(self._states)

    def state_labels(self, i: int) -> MultiplicityTagged[U3]:
        return self._states[i]

    def __iter__(self) -> Iterator[MultiplicityTagged[U3]]:
        return iter(self._states)

    def __repr__(self) -> str:
        return f"U3Subspace(omega={self.omega}, size={len(self)})"


class Sp3RSpace:
    r"""Sp(3,R) 不可约表示（固定 :math:`\sigma`）的子空间有序集合。

    Parameters
    ----------
    sigma : U3
        最低权
    subspaces : iterable of U3Subspace
        子空间，顺序即处理顺序

    Raises
    ------
    ValueError
        子空间标签重复。
    """

    def __init__(self, sigma: U3, subspaces: Iterable[U3Subspace]):
        self.sigma = sigma
        self._subspaces = list(subspaces)
        self._index: dict[U3, int] = {}
        for i, subspace in enumerate(self._subspaces):
            if subspace.omega in self._index:
                raise ValueError(f"子空间标签重复: {subspace.omega}")
            self._index[subspace.omega] = i

    @classmethod
    def generate(cls, sigma: U3, Nn_max: int) -> "Sp3RSpace":
        r"""由 :math:`\sigma \otimes n`（:math:`N_n \leq N_{n,\max}`）生成子空间。

        Parameters
        ----------
        sigma : U3
            最低权
        Nn_max : int
            升算符多项式的最大量子数

        Returns
        -------
        Sp3RSpace
            按 :math:`(N_\omega, \omega)` 升序排列的子空间集合
        """
        states: dict[U3, list[MultiplicityTagged[U3]]] = {}
        for Nn in range(0, Nn_max + 1, 2):
            for n in raising_polynomial_labels(Nn):
                for tagged in kronecker_product(sigma, n):
                    bucket = states.setdefault(tagged.irrep, [])
                    for rho in range(1, tagged.tag + 1):
                        bucket.append(MultiplicityTagged(n, rho))
        order = sorted(states, key=lambda w: (w.N, w))
        return cls(sigma, [U3Subspace(w, states[w]) for w in order])

    def size(self) -> int:
        return len(self._subspaces)

    def __len__(self) -> int:
        return len(self._subspaces)

    def get_subspace(self, i: int) -> U3Subspace:
        return self._subspaces[i]

    def __iter__(self) -> Iterator[U3Subspace]:
        return iter(self._subspaces)

    def contains_subspace(self, omega: U3) -> bool:
        return omega in self._index

    def look_up_subspace_index(self, omega: U3) -> int:
        """子空间下标；不存在时抛出 ``KeyError``。"""
        return self._index[omega]

    def look_up_subspace(self, omega: U3) -> U3Subspace:
        return self._subspaces[self._index[omega]]

    def __repr__(self) -> str:
        return f"Sp3RSpace(sigma={self.sigma}, subspaces={len(self)})"
