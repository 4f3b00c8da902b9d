from __future__ import annotations

import numpy as np
from scipy.linalg import eigh

__all__ = [
    "NotPositiveSemidefiniteError",
    "psd_sqrtm",
]


class NotPositiveSemidefiniteError(np.linalg.LinAlgError):
    """矩阵不是（数值意义下的）对称半正定矩阵。"""


def psd_sqrtm(S: np.ndarray, tol: float = 1e-10) -> np.ndarray:
    r"""对称半正定矩阵的唯一对称半正定平方根。

    .. math::

        S = V \Lambda V^{T}, \qquad K = V \Lambda^{1/2} V^{T}, \qquad K^2 = S

    Parameters
    ----------
    S : numpy.ndarray
        方阵 (shape: [d, d])
    tol : float, optional
        相对容差：对称性按 ``tol·max(1, |S|_max)`` 检查；本征值不小于
        ``-tol·max(1, |λ|_max)`` 视为零并截断。

    Returns
    -------
    numpy.ndarray
        :math:`K` (shape: [d, d])

    Raises
    ------
    NotPositiveSemidefiniteError
        :math:`S` 不对称，或存在超出容差的负本征值。
    """
    S = np.asarray(S, dtype=float)
    if S.ndim != 2 or S.shape[0] != S.shape[1]:
        raise ValueError(f"S 必须是方阵，当前形状: {S.shape}")
    if S.size == 0:
        return S.copy()
    scale = max(1.0, float(np.max(np.abs(S))))
    if not np.allclose(S, S.T, rtol=0.0, atol=tol * scale):
        raise NotPositiveSemidefiniteError(f"S 矩阵不对称（|S - S^T|_max = {np.max(np.abs(S - S.T)):.3e}）")
    evals, evecs = eigh(S)
    lam_scale = max(1.0, float(np.max(np.abs(evals))))
    if evals[0] < -tol * lam_scale:
        raise NotPositiveSemidefiniteError(f"S 矩阵非半正定：最小本征值 {evals[0]:.6e}")
    evals = np.clip(evals, 0.0, None)
    K = (evecs * np.sqrt(evals)) @ evecs.T
    return 0.5 * (K + K.T)
