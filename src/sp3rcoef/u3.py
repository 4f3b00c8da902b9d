r"""U(3)/SU(3) 群标签与标签代数

本模块提供耦合系数缓存与 K 矩阵构造所需的基本群标签：

- :class:`SU3`：SU(3) 不可约表示标签 :math:`(\lambda,\mu)`
- :class:`U3`：U(3) 权标签 :math:`[f_1,f_2,f_3]`，允许半整数分量（含零点能）
- :class:`MultiplicityTagged`：带外重数标记 :math:`\rho` 的标签

以及标签代数：

- U(3)/SU(3) Kronecker 积（三行 Littlewood–Richardson 规则）
- SU(3) 外重数
- SU(3) ⊃ SO(3) 分支重数 :math:`\kappa_{\max}(\lambda,\mu;L)`
- 分级函数 :math:`\Omega(n,\omega)`

约定
====

U(3) 标签 :math:`[f_1,f_2,f_3]` 与 SU(3) 标签的对应：

.. math::

    \lambda = f_1 - f_2, \qquad \mu = f_2 - f_3

半整数标签（如 :math:`\sigma = [N+3/2, 3/2, 3/2]`）只要求分量之差为整数。
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Generic, TypeVar

__all__ = [
    "SU3",
    "U3",
    "MultiplicityTagged",
    "outer_multiplicity",
    "kronecker_product",
    "su3_kronecker_product",
    "so3_multiplicity",
    "omega",
]

T = TypeVar("T")


@dataclass(frozen=True, order=True)
class SU3:
    r"""SU(3) 不可约表示标签 :math:`(\lambda,\mu)`。

    Attributes
    ----------
    lambda_ : int
        :math:`\lambda \geq 0`
    mu : int
        :math:`\mu \geq 0`
    """

    lambda_: int
    mu: int

    def __post_init__(self):
        if self.lambda_ < 0 or self.mu < 0:
            raise ValueError(f"SU(3) 标签必须非负: ({self.lambda_},{self.mu})")

    def u3(self) -> "U3":
        """返回对应的 U(3) 标签 :math:`[\\lambda+\\mu, \\mu, 0]`。"""
        return U3(self.lambda_ + self.mu, self.mu, 0)


@dataclass(frozen=True, order=True)
class U3:
    r"""U(3) 权标签 :math:`[f_1,f_2,f_3]`，要求 :math:`f_1 \geq f_2 \geq f_3`。

    Attributes
    ----------
    f1, f2, f3 : float
        分量（整数或半整数）。
    """

    f1: float
    f2: float
    f3: float

    def __post_init__(self):
        if not (self.f1 >= self.f2 >= self.f3):
            raise ValueError(f"U(3) 标签要求 f1 >= f2 >= f3: [{self.f1},{self.f2},{self.f3}]")
        if not (_is_integer(self.f1 - self.f2) and _is_integer(self.f2 - self.f3)):
            raise ValueError(f"U(3) 标签分量之差必须为整数: [{self.f1},{self.f2},{self.f3}]")

    @property
    def N(self) -> float:
        """总量子数 :math:`N = f_1 + f_2 + f_3`。"""
        return self.f1 + self.f2 + self.f3

    def su3(self) -> SU3:
        """返回 SU(3) 标签 :math:`(f_1-f_2, f_2-f_3)`。"""
        return SU3(int(round(self.f1 - self.f2)), int(round(self.f2 - self.f3)))


@dataclass(frozen=True, order=True)
class MultiplicityTagged(Generic[T]):
    r"""带外重数标记的标签 :math:`(x, \rho)`。"""

    irrep: T
    tag: int


def _is_integer(x: float) -> bool:
    return float(x).is_integer()


def _shifted(value: float, shift: float) -> float:
    # 整数结果保持 int，便于标签比较与显示
    out = value + shift
    return int(out) if _is_integer(out) else out


def _lr_products(lam: tuple[int, int, int], mu: tuple[int, int, int]) -> dict[tuple[int, int, int], int]:
    r"""三行 Littlewood–Richardson 乘积 :math:`\lambda \otimes \mu`。

    枚举斜形 :math:`\nu/\lambda` 上内容为 :math:`\mu` 的 LR 填充。
    记第 i 行中数字 j 的个数为 :math:`a_{ij}` (:math:`j \leq i`)，则

    - 内容: :math:`a_{11}+a_{21}+a_{31}=\mu_1`, :math:`a_{22}+a_{32}=\mu_2`, :math:`a_{33}=\mu_3`
    - 列严格: :math:`\lambda_2+a_{21} \leq \lambda_1`, :math:`\lambda_3+a_{31} \leq \lambda_2`,
      :math:`\lambda_3+a_{31}+a_{32} \leq \lambda_2+a_{21}`
    - 格点词: :math:`a_{22} \leq a_{11}`, :math:`a_{33} \leq a_{22}`,
      :math:`a_{22}+a_{32} \leq a_{11}+a_{21}`

    Returns
    -------
    dict
        :math:`\nu \mapsto c^{\nu}_{\lambda\mu}`
    """
    l1, l2, l3 = lam
    m1, m2, m3 = mu
    a33 = m3
    out: dict[tuple[int, int, int], int] = {}
    for a11 in range(m1 + 1):
        for a21 in range(m1 - a11 + 1):
            a31 = m1 - a11 - a21
            for a32 in range(m2 + 1):
                a22 = m2 - a32
                if l2 + a21 > l1 or l3 + a31 > l2 or l3 + a31 + a32 > l2 + a21:
                    continue
                if a22 > a11 or a33 > a22 or a22 + a32 > a11 + a21:
                    continue
                nu = (l1 + a11, l2 + a21 + a22, l3 + a31 + a32 + a33)
                if not (nu[0] >= nu[1] >= nu[2]):
                    continue
                out[nu] = out.get(nu, 0) + 1
    return out


def _as_partition(w: U3) -> tuple[int, int, int]:
    return (int(round(w.f1 - w.f3)), int(round(w.f2 - w.f3)), 0)


def kronecker_product(w1: U3, w2: U3) -> list[MultiplicityTagged[U3]]:
    r"""U(3) Kronecker 积 :math:`w_1 \otimes w_2`。

    Parameters
    ----------
    w1, w2 : U3
        因子标签（可含负分量或半整数分量）。

    Returns
    -------
    list[MultiplicityTagged[U3]]
        乘积中出现的标签，``tag`` 为其重数；按标签升序排列。

    Notes
    -----
    两个标签先平移为三行分拆 :math:`[f_1-f_3, f_2-f_3, 0]`，由 LR 规则求积后
    再整体平移 :math:`f_3^{(1)} + f_3^{(2)}`。

    Examples
    --------
    >>> kronecker_product(U3(1, 0, 0), U3(1, 0, 0))
    [MultiplicityTagged(irrep=U3(f1=1, f2=1, f3=0), tag=1), MultiplicityTagged(irrep=U3(f1=2, f2=0, f3=0), tag=1)]
    """
    shift = w1.f3 + w2.f3
    products = _lr_products(_as_partition(w1), _as_partition(w2))
    result = [
        MultiplicityTagged(U3(*(_shifted(c, shift) for c in nu)), mult)
        for nu, mult in products.items()
    ]
    return sorted(result)


def su3_kronecker_product(x1: SU3, x2: SU3) -> list[MultiplicityTagged[SU3]]:
    """SU(3) Kronecker 积，``tag`` 为外重数 :math:`\\rho_{\\max}`。"""
    result = [
        MultiplicityTagged(tagged.irrep.su3(), tagged.tag)
        for tagged in kronecker_product(x1.u3(), x2.u3())
    ]
    return sorted(result)


@lru_cache(maxsize=None)
def outer_multiplicity(x1: SU3, x2: SU3, x3: SU3) -> int:
    r"""SU(3) 外重数：:math:`x_3` 在 :math:`x_1 \otimes x_2` 中出现的次数。

    固定盒子总数后，:math:`x_3` 对应唯一的 U(3) 标签
    :math:`\nu = [\nu_3+\lambda_3+\mu_3, \nu_3+\mu_3, \nu_3]`，
    其中 :math:`3\nu_3 = N_1+N_2-\lambda_3-2\mu_3`。

    Examples
    --------
    >>> outer_multiplicity(SU3(1, 1), SU3(1, 1), SU3(1, 1))
    2
    >>> outer_multiplicity(SU3(2, 0), SU3(0, 0), SU3(1, 0))
    0
    """
    p1 = _as_partition(x1.u3())
    p2 = _as_partition(x2.u3())
    n_boxes = sum(p1) + sum(p2)
    rem = n_boxes - x3.lambda_ - 2 * x3.mu
    if rem < 0 or rem % 3 != 0:
        return 0
    nu3 = rem // 3
    nu = (nu3 + x3.lambda_ + x3.mu, nu3 + x3.mu, nu3)
    return _lr_products(p1, p2).get(nu, 0)


def so3_multiplicity(x: SU3, L: int) -> int:
    r"""SU(3) ⊃ SO(3) 分支重数 :math:`\kappa_{\max}(\lambda,\mu;L)`。

    Elliott 规则：:math:`K = \min(\lambda,\mu), \min(\lambda,\mu)-2, \ldots, 1\ \text{或}\ 0`；

    - :math:`K > 0`: :math:`L = K, K+1, \ldots, K+\max(\lambda,\mu)`
    - :math:`K = 0`: :math:`L = \max(\lambda,\mu), \max(\lambda,\mu)-2, \ldots, 1\ \text{或}\ 0`

    Examples
    --------
    >>> so3_multiplicity(SU3(2, 0), 2)
    1
    >>> so3_multiplicity(SU3(2, 2), 2)
    2
    """
    if L < 0:
        return 0
    k_hi = min(x.lambda_, x.mu)
    l_span = max(x.lambda_, x.mu)
    count = 0
    for K in range(k_hi, -1, -2):
        if K == 0:
            if L <= l_span and (l_span - L) % 2 == 0:
                count += 1
        elif K <= L <= K + l_span:
            count += 1
    return count


_OMEGA_SHIFTS = (4, 2, 0)


def omega(n: U3, w: U3) -> float:
    r"""分级函数 :math:`\Omega(n,\omega)`。

    .. math::

        \Omega(n,\omega) = \frac{1}{2} \sum_{i=1}^{3}
        \left[\omega_i(\omega_i + c_i) - n_i(n_i + c_i)\right], \qquad c = (4, 2, 0)

    K 矩阵递推只使用差值 :math:`\Omega(n',\omega')-\Omega(n,\omega)`，
    对 :math:`c_i` 的整体平移不敏感。
    """
    wf = (w.f1, w.f2, w.f3)
    nf = (n.f1, n.f2, n.f3)
    total = 0.0
    for c, wi, ni in zip(_OMEGA_SHIFTS, wf, nf):
        total += wi * (wi + c) - ni * (ni + c)
    return 0.5 * total
