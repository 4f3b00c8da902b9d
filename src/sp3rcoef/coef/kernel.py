r"""SU(3) 耦合系数原始计算核

本模块定义单个系数求值的边界：

- :class:`CouplingKernel`：抽象基类，统一处理初始化检查、重数指标校验与 NaN 检测
- :class:`Su3libKernel`：通过 ``ctypes`` 调用 Akiyama–Draayer su3lib（Fortran）共享库

系数族
======

- **U / Z 重耦合系数**（六-:math:`(\lambda\mu)` 符号）:

  .. math::

      U[x_1 x_2 x x_3; x_{12}\rho_{12}\rho_{12,3}\, x_{23}\rho_{23}\rho_{1,23}]

  U 对应 :math:`(1\times2)\times3 \to 1\times(2\times3)`，
  Z 对应 :math:`(1\times2)\times3 \to 2\times(1\times3)`。

- **Wigner 系数** :math:`\langle x_1\kappa_1L_1; x_2\kappa_2L_2 \| x_3\kappa_3L_3\rangle_{\rho}`

- **Phi 相位** :math:`\Phi(x_1,x_2,x_3)_{\rho\rho'}`：交换耦合次序
  :math:`x_1\times x_2 \to x_2\times x_1` 的相位矩阵，由 Z 系数给出：

  .. math::

      \Phi(x_1,x_2,x_3)_{\rho\rho'} = Z[x_1 x_2 x_3 (0,0); x_3 \rho\, 1\, x_1\, 1\, \rho']

- **幺正 9-:math:`(\lambda\mu)` 符号**（仅直接计算，不缓存）

su3lib 使用前必须调用一次 ``blocks_`` 初始化；遗漏时库本身只会返回 NaN。
这里在 Python 层显式检查：未初始化时抛出 ``RuntimeError``，返回 NaN 时同样抛出。

References
----------
.. [su3lib] Akiyama, Y. & Draayer, J. P. (1973)
   "A user's guide to Fortran programs for Wigner and Racah coefficients of SU3"
   Comput. Phys. Commun. 5, 405
"""

from __future__ import annotations

import ctypes
import ctypes.util
import math
import os
from typing import Literal

import numpy as np

from ..u3 import SU3, outer_multiplicity
from .multiplicity import u_multiplicity, w_multiplicity, z_multiplicity

__all__ = [
    "MAX_K",
    "CouplingKernel",
    "Su3libKernel",
    "check_indices",
]

# su3lib 中每个通道的缓冲上限
MAX_K = 9

UZMode = Literal["U", "Z"]


def check_indices(indices: tuple[int, ...], maxima: tuple[int, ...], what: str = "系数") -> None:
    """检查 1 起始的重数指标是否落在 ``1..max`` 范围内。

    Raises
    ------
    IndexError
        指标个数不符或任一指标越界。
    """
    if len(indices) != len(maxima):
        raise IndexError(f"{what}需要 {len(maxima)} 个重数指标，实际给出 {len(indices)} 个")
    for pos, (i, m) in enumerate(zip(indices, maxima)):
        if not 1 <= i <= m:
            raise IndexError(f"{what}重数指标越界: 第 {pos} 个指标 {i} 不在 1..{m} 内 (maxima={maxima})")


class CouplingKernel:
    """原始系数计算核的抽象基类。

    子类实现 ``_initialize``、``_uz``、``_w``、``_unitary_9lm``；公共方法负责
    初始化检查、指标校验和 NaN 检测。

    Attributes
    ----------
    initialized : bool
        是否已完成一次性初始化。
    n_calls : int
        单系数求值次数（用于观察缓存效果）。
    """

    def __init__(self):
        self.initialized = False
        self.n_calls = 0

    # ------------------------------------------------------------------
    # 子类接口
    # ------------------------------------------------------------------
    def _initialize(self) -> None:
        raise NotImplementedError

    def _uz(self, x1, x2, x, x3, x12, r12, r12_3, x23, r23, r1_23, mode: UZMode) -> float:
        raise NotImplementedError

    def _w(self, x1, k1, L1, x2, k2, L2, x3, k3, L3, rho) -> float:
        raise NotImplementedError

    def _unitary_9lm(self, x1, x2, x12, r12, x3, x4, x34, r34, x13, x24, x, r13_24, r13, r24, r12_34) -> float:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # 公共接口
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """一次性初始化（重复调用无副作用）。"""
        if not self.initialized:
            self._initialize()
            self.initialized = True

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise RuntimeError("耦合系数计算核尚未初始化，请先调用 initialize()")

    def _checked(self, value: float, what: str) -> float:
        value = float(value)
        if math.isnan(value):
            raise RuntimeError(f"{what}返回 NaN（计算核是否已正确初始化？）")
        return value

    def uz(
        self,
        x1: SU3,
        x2: SU3,
        x: SU3,
        x3: SU3,
        x12: SU3,
        r12: int,
        r12_3: int,
        x23: SU3,
        r23: int,
        r1_23: int,
        mode: UZMode = "U",
    ) -> float:
        r"""计算单个 U 或 Z 重耦合系数。

        Parameters
        ----------
        x1, x2, x, x3, x12, x23 : SU3
            SU(3) 标签（Z 模式下 ``x23`` 表示 :math:`x_{13}`）
        r12, r12_3, r23, r1_23 : int
            外重数指标（1 起始）
        mode : {"U", "Z"}
            系数类型

        Returns
        -------
        float
            系数值

        Raises
        ------
        RuntimeError
            未初始化或返回 NaN
        IndexError
            重数指标越界（含标签组合不允许的情形）
        """
        self._require_initialized()
        if mode == "U":
            maxima = u_multiplicity(x1, x2, x, x3, x12, x23)
        elif mode == "Z":
            maxima = z_multiplicity(x1, x2, x, x3, x12, x23)
        else:
            raise ValueError(f"不支持的重耦合模式: {mode}，仅支持 'U' 或 'Z'")
        check_indices((r12, r12_3, r23, r1_23), maxima, what=f"{mode} 系数")
        self.n_calls += 1
        value = self._uz(x1, x2, x, x3, x12, r12, r12_3, x23, r23, r1_23, mode)
        return self._checked(value, f"{mode} 系数")

    def u(self, x1, x2, x, x3, x12, r12, r12_3, x23, r23, r1_23) -> float:
        """U 系数 :math:`(1\\times2)\\times3 \\to 1\\times(2\\times3)`。"""
        return self.uz(x1, x2, x, x3, x12, r12, r12_3, x23, r23, r1_23, mode="U")

    def z(self, x1, x2, x, x3, x12, r12, r12_3, x13, r13, r2_13) -> float:
        """Z 系数 :math:`(1\\times2)\\times3 \\to 2\\times(1\\times3)`。"""
        return self.uz(x1, x2, x, x3, x12, r12, r12_3, x13, r13, r2_13, mode="Z")

    def phi(self, x1: SU3, x2: SU3, x3: SU3, rho: int, rhop: int) -> float:
        """Phi 相位矩阵元 :math:`\\Phi(x_1,x_2,x_3)_{\\rho\\rho'}`。"""
        return self.z(x1, x2, x3, SU3(0, 0), x3, rho, 1, x1, 1, rhop)

    def w(
        self,
        x1: SU3,
        k1: int,
        L1: int,
        x2: SU3,
        k2: int,
        L2: int,
        x3: SU3,
        k3: int,
        L3: int,
        rho: int,
    ) -> float:
        r"""计算单个 SU(3) ⊃ SO(3) 约化 Wigner 系数。

        Parameters
        ----------
        x1, x2, x3 : SU3
            SU(3) 标签
        k1, k2, k3 : int
            SU(3)-SO(3) 分支重数指标（1 起始）
        L1, L2, L3 : int
            SO(3) 标签
        rho : int
            外重数指标（1 起始）
        """
        self._require_initialized()
        maxima = w_multiplicity(x1, L1, x2, L2, x3, L3)
        check_indices((k1, k2, k3, rho), maxima, what="W 系数")
        if max(maxima) > MAX_K:
            raise ValueError(f"W 系数重数 {maxima} 超出计算核上限 MAX_K={MAX_K}")
        self.n_calls += 1
        value = self._w(x1, k1, L1, x2, k2, L2, x3, k3, L3, rho)
        return self._checked(value, "W 系数")

    def unitary_9lm(
        self,
        x1: SU3,
        x2: SU3,
        x12: SU3,
        r12: int,
        x3: SU3,
        x4: SU3,
        x34: SU3,
        r34: int,
        x13: SU3,
        x24: SU3,
        x: SU3,
        r13_24: int,
        r13: int,
        r24: int,
        r12_34: int,
    ) -> float:
        r"""计算幺正 9-:math:`(\lambda\mu)` 符号。

        .. math::

            \begin{Bmatrix}
            x_1 & x_2 & x_{12} & \rho_{12} \\
            x_3 & x_4 & x_{34} & \rho_{34} \\
            x_{13} & x_{24} & x & \rho_{13,24} \\
            \rho_{13} & \rho_{24} & \rho_{12,34} &
            \end{Bmatrix}
        """
        self._require_initialized()
        maxima = _nine_lm_multiplicity(x1, x2, x12, x3, x4, x34, x13, x24, x)
        check_indices((r12, r34, r12_34, r13, r24, r13_24), maxima, what="9-(λμ) 符号")
        self.n_calls += 1
        value = self._unitary_9lm(x1, x2, x12, r12, x3, x4, x34, r34, x13, x24, x, r13_24, r13, r24, r12_34)
        return self._checked(value, "9-(λμ) 符号")


def _nine_lm_multiplicity(x1, x2, x12, x3, x4, x34, x13, x24, x) -> tuple[int, ...]:
    """9-(λμ) 符号的重数 ``(r12, r34, r12_34, r13, r24, r13_24)``。"""
    return (
        outer_multiplicity(x1, x2, x12),
        outer_multiplicity(x3, x4, x34),
        outer_multiplicity(x12, x34, x),
        outer_multiplicity(x1, x3, x13),
        outer_multiplicity(x2, x4, x24),
        outer_multiplicity(x13, x24, x),
    )


def _labels(*xs: SU3) -> list[int]:
    out: list[int] = []
    for xi in xs:
        out.extend((xi.lambda_, xi.mu))
    return out


def _refs(values) -> list:
    # Fortran 按引用传递标量
    return [ctypes.byref(ctypes.c_int(int(v))) for v in values]


class Su3libKernel(CouplingKernel):
    """su3lib 共享库的 ``ctypes`` 绑定。

    Parameters
    ----------
    path : str, optional
        共享库路径；为 ``None`` 时依次尝试环境变量 ``SU3LIB_PATH`` 与
        ``ctypes.util.find_library("su3lib")``。

    Raises
    ------
    OSError
        找不到或无法加载共享库。

    Notes
    -----
    Fortran 例程返回整块系数（首指标变化最快），这里按需取出单个值；
    成块存储由 :mod:`sp3rcoef.coef.blocks` 负责。

    Examples
    --------
    >>> kernel = Su3libKernel("/opt/su3lib/libsu3lib.so")
    >>> kernel.initialize()
    >>> kernel.u(SU3(2, 0), SU3(0, 0), SU3(4, 0), SU3(2, 0), SU3(2, 0), 1, 1, SU3(2, 0), 1, 1)
    1.0
    """

    def __init__(self, path: str | None = None):
        super().__init__()
        if path is None:
            path = os.environ.get("SU3LIB_PATH") or ctypes.util.find_library("su3lib")
        if not path:
            raise OSError("找不到 su3lib 共享库，请通过参数或环境变量 SU3LIB_PATH 指定路径")
        try:
            self.lib = ctypes.CDLL(path)
        except OSError as e:
            raise OSError(f"无法加载 su3lib 共享库 {path}: {e}") from e
        self.path = path
        self._declare()

    def _declare(self) -> None:
        int_p = ctypes.POINTER(ctypes.c_int)
        flat = np.ctypeslib.ndpointer(dtype=np.float64, ndim=1, flags="C_CONTIGUOUS")
        block4 = np.ctypeslib.ndpointer(dtype=np.float64, ndim=4, flags="C_CONTIGUOUS")

        self.lib.blocks_.argtypes = []
        self.lib.blocks_.restype = None
        self.lib.wu3r3w_.argtypes = [int_p] * 13 + [block4]
        self.lib.wu3r3w_.restype = None
        for name in ("wru3optimized_", "wzu3optimized_"):
            fn = getattr(self.lib, name)
            fn.argtypes = [int_p] * 16 + [flat, int_p]
            fn.restype = None
        self.lib.wu39lm_.argtypes = [int_p] * 18 + [flat, int_p]
        self.lib.wu39lm_.restype = None

    def _initialize(self) -> None:
        self.lib.blocks_()

    def _uz(self, x1, x2, x, x3, x12, r12, r12_3, x23, r23, r1_23, mode):
        if mode == "U":
            maxima = u_multiplicity(x1, x2, x, x3, x12, x23)
            fn = self.lib.wru3optimized_
        else:
            maxima = z_multiplicity(x1, x2, x, x3, x12, x23)
            fn = self.lib.wzu3optimized_
        dimen = int(np.prod(maxima))
        buf = np.zeros(dimen, dtype=np.float64)
        fn(*_refs(_labels(x1, x2, x, x3, x12, x23)), *_refs(maxima), buf, ctypes.byref(ctypes.c_int(dimen)))
        index = np.ravel_multi_index((r12 - 1, r12_3 - 1, r23 - 1, r1_23 - 1), maxima, order="F")
        return buf[index]

    def _w(self, x1, k1, L1, x2, k2, L2, x3, k3, L3, rho):
        k1max, k2max, k3max, rho_max = w_multiplicity(x1, L1, x2, L2, x3, L3)
        dc = np.zeros((MAX_K, MAX_K, MAX_K, MAX_K), dtype=np.float64)
        args = _labels(x1, x2, x3) + [L1, L2, L3, rho_max, k1max, k2max, k3max]
        self.lib.wu3r3w_(*_refs(args), dc)
        # Fortran DC(rho,k1,k2,k3) 在 C 顺序下为 dc[k3][k2][k1][rho]
        return dc[k3 - 1, k2 - 1, k1 - 1, rho - 1]

    def _unitary_9lm(self, x1, x2, x12, r12, x3, x4, x34, r34, x13, x24, x, r13_24, r13, r24, r12_34):
        maxima = _nine_lm_multiplicity(x1, x2, x12, x3, x4, x34, x13, x24, x)
        dimen = int(np.prod(maxima))
        buf = np.zeros(dimen, dtype=np.float64)
        self.lib.wu39lm_(
            *_refs(_labels(x1, x2, x12, x3, x4, x34, x13, x24, x)), buf, ctypes.byref(ctypes.c_int(dimen))
        )
        index = np.ravel_multi_index(
            (r12 - 1, r34 - 1, r12_34 - 1, r13 - 1, r24 - 1, r13_24 - 1), maxima, order="F"
        )
        return buf[index]
