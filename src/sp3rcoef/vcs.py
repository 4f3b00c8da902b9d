r"""Sp(3,R) 矢量相干态（VCS）方法：K 矩阵构造

在 Sp(3,R) 不可约表示中，由最低权 :math:`\sigma` 与玻色升算符多项式
:math:`n` 耦合得到的基是非正交的。VCS 理论给出一个算子 :math:`K`，
使基在每个 U(3) 子空间 :math:`\omega` 内正交归一化。:math:`K` 由其平方

.. math::

    S_{\omega} = K_{\omega}^2

逐壳递推得到。

递推关系
========

对子空间 :math:`\omega'`（态 :math:`(n'\rho')`），对所有通过移去两个量子
（:math:`\omega' \otimes [0,0,-2]`）可达、且属于该表示的低层子空间 :math:`\omega` 求和：

.. math::

    S_{\omega'} = \sum_{\omega} C^{(1)}_{\omega'\omega}\, S_{\omega}\, C^{(2)}_{\omega\omega'}

其中

.. math::

    C^{(1)}_{n'_1\rho'_1;\, n_1\rho_1} &= \frac{2}{N_{n'_1}}
        \left[\Omega(n'_1,\omega') - \Omega(n_1,\omega)\right]
        U[\sigma\, n_1\, \omega'\, (2,0);\ \omega\rho_1\, 1\ n'_1\, 1\, \rho'_1]
        \langle n'_1 \| a^\dagger \| n_1 \rangle \\
    C^{(2)}_{n_2\rho_2;\, n'_2\rho'_2} &=
        U[\sigma\, n_2\, \omega'\, (2,0);\ \omega\rho_2\, 1\ n'_2\, 1\, \rho'_2]
        \langle n'_2 \| a^\dagger \| n_2 \rangle

基态 :math:`\omega = \sigma` 时 :math:`S = K = 1`。:math:`K_{\omega'}` 取
:math:`S_{\omega'}` 的唯一对称半正定平方根。

References
----------
.. [VCS] Rowe, D. J., Rosensteel, G. & Carr, R. (1984)
   "Vector coherent state representations of Sp(6,R)"
   J. Phys. A 17, L399
.. [Sp3R] Rowe, D. J. (1985)
   "Microscopic theory of the nuclear collective model"
   Rep. Prog. Phys. 48, 1419
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Dict

import numpy as np
import sympy

from .coef.cache import UCoefCache, u_cached
from .coef.labels import UCoefLabels
from .sp3r import Sp3RSpace, U3Subspace
from .u3 import SU3, U3, MultiplicityTagged, kronecker_product, omega
from .utils import NotPositiveSemidefiniteError, psd_sqrtm

__all__ = [
    "boson_creation_rme",
    "boson_creation_rme_exact",
    "KMatrixConfig",
    "KMatrixResult",
    "generate_k_matrices",
    "generate_k_matrix_map",
    "NotPositiveSemidefiniteError",
]

# 移去两个量子的 U(3) 标签与升算符 a^\dagger a^\dagger 的 SU(3) 标签
LOWERING_LABEL = U3(0, 0, -2)
RAISING_SU3 = SU3(2, 0)

# 分支由 n' - n 的差向量唯一确定，三种情形天然互斥
_RME_BRANCHES = {(2, 0, 0): 0, (0, 2, 0): 1, (0, 0, 2): 2}


def _rme_ratio(branch: int, n: U3) -> tuple[int, int]:
    """返回约化矩阵元平方的 (分子, 分母)。"""
    n1, n2, n3 = int(n.f1), int(n.f2), int(n.f3)
    if branch == 0:
        return (n1 + 4) * (n1 - n2 + 2) * (n1 - n3 + 3), 2 * (n1 - n2 + 3) * (n1 - n3 + 4)
    if branch == 1:
        return (n2 + 3) * (n1 - n2) * (n2 - n3 + 2), 2 * (n1 - n2 - 1) * (n2 - n3 + 3)
    return (n3 + 2) * (n2 - n3) * (n1 - n3 + 1), 2 * (n1 - n3) * (n2 - n3 - 1)


def _rme_branch(n_prime: U3, n: U3) -> int | None:
    diff = (n_prime.f1 - n.f1, n_prime.f2 - n.f2, n_prime.f3 - n.f3)
    return _RME_BRANCHES.get(diff)


def boson_creation_rme(n_prime: U3, n: U3) -> float:
    r"""玻色产生算符 :math:`a^\dagger` 的 SU(3) 约化矩阵元 :math:`\langle n' \| a^\dagger \| n \rangle`。

    Parameters
    ----------
    n_prime : U3
        末态升算符多项式标签 :math:`n'`
    n : U3
        初态升算符多项式标签 :math:`n`（整数分量）

    Returns
    -------
    float
        矩阵元；:math:`n'` 不是 :math:`n` 在某一分量上加 2 时返回 0。

    Notes
    -----
    三种情形（:math:`n' - n = [2,0,0], [0,2,0], [0,0,2]`）：

    .. math::

        \sqrt{\frac{(n_1+4)(n_1-n_2+2)(n_1-n_3+3)}{2(n_1-n_2+3)(n_1-n_3+4)}}, \quad
        \sqrt{\frac{(n_2+3)(n_1-n_2)(n_2-n_3+2)}{2(n_1-n_2-1)(n_2-n_3+3)}}, \quad
        \sqrt{\frac{(n_3+2)(n_2-n_3)(n_1-n_3+1)}{2(n_1-n_3)(n_2-n_3-1)}}

    Examples
    --------
    >>> boson_creation_rme(U3(2, 0, 0), U3(0, 0, 0))
    1.0
    >>> boson_creation_rme(U3(4, 0, 0), U3(0, 0, 0))
    0.0
    """
    branch = _rme_branch(n_prime, n)
    if branch is None:
        return 0.0
    num, den = _rme_ratio(branch, n)
    ratio = num / den
    if ratio <= 0.0:
        return 0.0
    return float(np.sqrt(ratio))


def boson_creation_rme_exact(n_prime: U3, n: U3) -> sympy.Expr:
    r"""与 :func:`boson_creation_rme` 相同，但返回 ``sympy`` 精确表达式（根式）。

    Examples
    --------
    >>> boson_creation_rme_exact(U3(4, 0, 0), U3(2, 0, 0))
    sqrt(2)
    """
    branch = _rme_branch(n_prime, n)
    if branch is None:
        return sympy.Integer(0)
    num, den = _rme_ratio(branch, n)
    ratio = sympy.Rational(num, den)
    if ratio <= 0:
        return sympy.Integer(0)
    return sympy.sqrt(ratio)


@dataclass
class KMatrixConfig:
    r"""K 矩阵构造配置。

    Attributes
    ----------
    use_cache : bool
        U 系数是否经缓存求值（False 时直接调用计算核，结果相同）。
    eig_tol : float
        :math:`S` 对称性与半正定性判断的相对容差。
    verbose : bool
        是否逐子空间打印进度。
    """

    use_cache: bool = True
    eig_tol: float = 1e-10
    verbose: bool = False


@dataclass
class KMatrixResult:
    r"""K 矩阵构造结果：每个子空间 :math:`\omega` 一个 :math:`S` 与一个 :math:`K`。"""

    sigma: U3
    s_matrices: Dict[U3, np.ndarray] = field(default_factory=dict)
    k_matrices: Dict[U3, np.ndarray] = field(default_factory=dict)

    def max_residual(self) -> float:
        r""":math:`\max_\omega \|K_\omega^2 - S_\omega\|_\infty`"""
        res = 0.0
        for w, K in self.k_matrices.items():
            res = max(res, float(np.max(np.abs(K @ K - self.s_matrices[w]))))
        return res


def _raising_amplitude(
    sigma: U3,
    omega_p: U3,
    state_p: MultiplicityTagged[U3],
    omega_l: U3,
    state: MultiplicityTagged[U3],
    u_cache: UCoefCache,
    use_cache: bool,
) -> float:
    """U 系数与玻色约化矩阵元之积；任一因子为零时不访问计算核。"""
    n_p, n = state_p.irrep, state.irrep
    rme = boson_creation_rme(n_p, n)
    if rme == 0.0:
        return 0.0
    labels = UCoefLabels(sigma.su3(), n.su3(), omega_p.su3(), RAISING_SU3, omega_l.su3(), n_p.su3())
    if not labels.allowed():
        return 0.0
    u = u_cached(
        u_cache,
        labels.x1,
        labels.x2,
        labels.x,
        labels.x3,
        labels.x12,
        state.tag,
        1,
        labels.x23,
        1,
        state_p.tag,
        use_cache=use_cache,
    )
    return u * rme


def _coefficient_matrices(
    sigma: U3,
    subspace_p: U3Subspace,
    subspace: U3Subspace,
    u_cache: UCoefCache,
    use_cache: bool,
) -> tuple[np.ndarray, np.ndarray]:
    r"""构造 :math:`C^{(1)}` (dim_p × dim) 与 :math:`C^{(2)}` (dim × dim_p)。"""
    omega_p, omega_l = subspace_p.omega, subspace.omega
    dim_p, dim = len(subspace_p), len(subspace)
    coef1 = np.zeros((dim_p, dim))
    coef2 = np.zeros((dim, dim_p))
    for i in range(dim_p):
        state_p = subspace_p.state_labels(i)
        for j in range(dim):
            state = subspace.state_labels(j)
            amp = _raising_amplitude(sigma, omega_p, state_p, omega_l, state, u_cache, use_cache)
            if amp == 0.0:
                continue
            grade = 2.0 / state_p.irrep.N * (omega(state_p.irrep, omega_p) - omega(state.irrep, omega_l))
            coef1[i, j] = grade * amp
            coef2[j, i] = amp
    return coef1, coef2


def generate_k_matrices(
    irrep: Sp3RSpace,
    u_cache: UCoefCache,
    cfg: KMatrixConfig | None = None,
) -> KMatrixResult:
    r"""逐子空间构造 Sp(3,R) 不可约表示的 :math:`S` 与 :math:`K` 矩阵。

    Parameters
    ----------
    irrep : Sp3RSpace
        不可约表示；子空间顺序须保证低层子空间先于高层子空间
    u_cache : UCoefCache
        U 系数缓存（其计算核须已初始化）
    cfg : KMatrixConfig, optional
        配置；默认 :class:`KMatrixConfig()`

    Returns
    -------
    KMatrixResult
        每个子空间各一个 :math:`S_\omega` 与 :math:`K_\omega`，
        满足 :math:`K_\omega^2 = S_\omega`（数值容差内）

    Raises
    ------
    ValueError
        某低层子空间属于该表示但尚未处理（子空间顺序错误）
    NotPositiveSemidefiniteError
        某 :math:`S_\omega` 非对称半正定（非物理输入）

    Examples
    --------
    >>> irrep = Sp3RSpace.generate(U3(11.5, 1.5, 1.5), Nn_max=4)
    >>> res = generate_k_matrices(irrep, UCoefCache(kernel))
    >>> res.k_matrices[U3(13.5, 1.5, 1.5)]
    """
    if cfg is None:
        cfg = KMatrixConfig()
    sigma = irrep.sigma
    result = KMatrixResult(sigma=sigma)

    for subspace_p in irrep:
        omega_p = subspace_p.omega
        dim_p = len(subspace_p)

        if omega_p == sigma:
            S_p = np.eye(dim_p)
            K_p = np.eye(dim_p)
        else:
            S_p = np.zeros((dim_p, dim_p))
            n_lower = 0
            # 对所有可达的低层子空间 ω 求和
            for tagged in kronecker_product(omega_p, LOWERING_LABEL):
                omega_l = tagged.irrep
                if not irrep.contains_subspace(omega_l):
                    continue
                if omega_l not in result.s_matrices:
                    raise ValueError(f"子空间顺序错误：{omega_p} 依赖的低层子空间 {omega_l} 尚未处理")
                subspace = irrep.look_up_subspace(omega_l)
                coef1, coef2 = _coefficient_matrices(sigma, subspace_p, subspace, u_cache, cfg.use_cache)
                S_p += coef1 @ result.s_matrices[omega_l] @ coef2
                n_lower += 1
            if n_lower == 0:
                warnings.warn(
                    f"子空间 {omega_p} 没有可连接的低层子空间，S 矩阵为零",
                    RuntimeWarning,
                    stacklevel=2,
                )
            try:
                K_p = psd_sqrtm(S_p, tol=cfg.eig_tol)
            except NotPositiveSemidefiniteError as e:
                raise NotPositiveSemidefiniteError(f"子空间 {omega_p}: {e}") from e

        result.s_matrices[omega_p] = S_p
        result.k_matrices[omega_p] = K_p
        if cfg.verbose:
            print(f"[VCS] omega={omega_p} dim={dim_p} tr(S)={np.trace(S_p):.6e}")

    return result


def generate_k_matrix_map(
    irrep: Sp3RSpace,
    u_cache: UCoefCache,
    cfg: KMatrixConfig | None = None,
) -> Dict[U3, np.ndarray]:
    r"""仅返回 :math:`\omega \mapsto K_\omega` 映射，参见 :func:`generate_k_matrices`。"""
    return generate_k_matrices(irrep, u_cache, cfg).k_matrices
