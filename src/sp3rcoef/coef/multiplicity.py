"""耦合系数的重数解析

每个系数族对应一个纯函数，返回各耦合通道的最大重数。系数块的尺寸与
标签合法性判断均由此决定，因此这些函数必须是确定性的、无副作用的。
"""

from __future__ import annotations

from ..u3 import SU3, outer_multiplicity, so3_multiplicity

__all__ = [
    "u_multiplicity",
    "z_multiplicity",
    "w_multiplicity",
    "phi_multiplicity",
]


def u_multiplicity(
    x1: SU3, x2: SU3, x: SU3, x3: SU3, x12: SU3, x23: SU3
) -> tuple[int, int, int, int]:
    r"""U 系数（:math:`(1\times2)\times3 \to 1\times(2\times3)`）的重数。

    Returns
    -------
    tuple[int, int, int, int]
        ``(r12_max, r12_3_max, r23_max, r1_23_max)``，依次为
        :math:`x_1 x_2 \to x_{12}`、:math:`x_{12} x_3 \to x`、
        :math:`x_2 x_3 \to x_{23}`、:math:`x_1 x_{23} \to x` 的外重数。
    """
    return (
        outer_multiplicity(x1, x2, x12),
        outer_multiplicity(x12, x3, x),
        outer_multiplicity(x2, x3, x23),
        outer_multiplicity(x1, x23, x),
    )


def z_multiplicity(
    x1: SU3, x2: SU3, x: SU3, x3: SU3, x12: SU3, x13: SU3
) -> tuple[int, int, int, int]:
    r"""Z 系数（:math:`(1\times2)\times3 \to 2\times(1\times3)`）的重数。

    Returns
    -------
    tuple[int, int, int, int]
        ``(r12_max, r12_3_max, r13_max, r2_13_max)``
    """
    return (
        outer_multiplicity(x1, x2, x12),
        outer_multiplicity(x12, x3, x),
        outer_multiplicity(x1, x3, x13),
        outer_multiplicity(x2, x13, x),
    )


def w_multiplicity(
    x1: SU3, L1: int, x2: SU3, L2: int, x3: SU3, L3: int
) -> tuple[int, int, int, int]:
    r"""Wigner 系数 :math:`\langle x_1 \kappa_1 L_1; x_2 \kappa_2 L_2 \| x_3 \kappa_3 L_3\rangle_\rho` 的重数。

    Returns
    -------
    tuple[int, int, int, int]
        ``(kappa1_max, kappa2_max, kappa3_max, rho_max)``

    Notes
    -----
    SO(3) 三角条件不满足时 :math:`\rho_{\max}` 置零（系数恒为零）。
    """
    rho_max = outer_multiplicity(x1, x2, x3)
    if not (abs(L1 - L2) <= L3 <= L1 + L2):
        rho_max = 0
    return (
        so3_multiplicity(x1, L1),
        so3_multiplicity(x2, L2),
        so3_multiplicity(x3, L3),
        rho_max,
    )


def phi_multiplicity(x1: SU3, x2: SU3, x3: SU3) -> tuple[int, int]:
    """Phi 相位矩阵的重数 ``(rho_max, rho_max)``。"""
    rho_max = outer_multiplicity(x1, x2, x3)
    return (rho_max, rho_max)
