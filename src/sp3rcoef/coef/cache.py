r"""耦合系数缓存

缓存把系数标签映射到系数块：首次请求某个标签时构造整块并保存，
之后同一标签的所有重数指标都直接查表。

缓存策略
========

- 每个缓存实例内，同一标签至多构造一次块（无论与其他标签的请求如何交错）
- 只增不减，无淘汰；缓存寿命与一次计算相同，系数集合受有限标签空间约束
- 不加锁：多线程共享时需由调用方串行化，或每个工作线程各用一个缓存
  （已填满的缓存只读共享是安全的）

是否使用缓存由参数 ``use_cache`` 显式选择。``use_cache=False`` 时绕过缓存、
直接调用计算核（缓存对象不被修改），用于调试与性能对比；两条路径给出
完全相同的结果，越界指标在两条路径上都抛出 ``IndexError``。

Examples
--------
>>> cache = UCoefCache(kernel)
>>> u_cached(cache, x1, x2, x, x3, x12, 1, 1, x23, 1, 1)
>>> len(cache)  # 已构造一个块
1
"""

from __future__ import annotations

from ..u3 import SU3
from .blocks import PhiCoefBlock, UCoefBlock, WCoefBlock, _CoefBlock
from .kernel import CouplingKernel
from .labels import PhiCoefLabels, UCoefLabels, WCoefLabels

__all__ = [
    "UCoefCache",
    "WCoefCache",
    "PhiCoefCache",
    "u_cached",
    "w_cached",
    "phi_cached",
    "u_block_cached",
    "w_block_cached",
    "phi_block_cached",
    "cache_stats",
]


class _CoefCache:
    """标签 → 系数块 的缓存。

    Parameters
    ----------
    kernel : CouplingKernel
        构造系数块及直接求值所用的计算核

    Attributes
    ----------
    blocks : dict
        缓存字典
    hits : int
        命中次数
    misses : int
        未命中次数，即已构造的块数
    """

    block_type: type[_CoefBlock] = _CoefBlock

    def __init__(self, kernel: CouplingKernel):
        self.kernel = kernel
        self.blocks: dict = {}
        self.hits = 0
        self.misses = 0

    def get_block(self, labels) -> _CoefBlock:
        """取出系数块，未命中时构造并存入。"""
        block = self.blocks.get(labels)
        if block is not None:
            self.hits += 1
            return block
        block = self.block_type.build(labels, self.kernel)
        self.blocks[labels] = block
        self.misses += 1
        return block

    def __contains__(self, labels) -> bool:
        return labels in self.blocks

    def __len__(self) -> int:
        return len(self.blocks)

    def clear(self) -> None:
        """清空缓存并重置计数。"""
        self.blocks.clear()
        self.hits = 0
        self.misses = 0


class UCoefCache(_CoefCache):
    """U 系数缓存。"""

    block_type = UCoefBlock


class WCoefCache(_CoefCache):
    """W 系数缓存。"""

    block_type = WCoefBlock


class PhiCoefCache(_CoefCache):
    """Phi 相位缓存。"""

    block_type = PhiCoefBlock


def u_cached(
    cache: UCoefCache,
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
    use_cache: bool = True,
) -> float:
    r"""带缓存的 U 系数 :math:`(1\times2)\times3 \to 1\times(2\times3)`。

    Parameters
    ----------
    cache : UCoefCache
        U 系数缓存
    x1, x2, x, x3, x12, x23 : SU3
        SU(3) 标签
    r12, r12_3, r23, r1_23 : int
        外重数指标（1 起始）
    use_cache : bool, optional
        是否使用缓存（默认 True）；为 False 时直接调用计算核

    Returns
    -------
    float
        系数值

    Raises
    ------
    IndexError
        指标越界，或标签组合不允许（此时块为空）
    """
    if not use_cache:
        return cache.kernel.u(x1, x2, x, x3, x12, r12, r12_3, x23, r23, r1_23)
    block = cache.get_block(UCoefLabels(x1, x2, x, x3, x12, x23))
    return block.get_coef(r12, r12_3, r23, r1_23)


def w_cached(
    cache: WCoefCache,
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
    use_cache: bool = True,
) -> float:
    r"""带缓存的 Wigner 系数 :math:`\langle x_1\kappa_1L_1; x_2\kappa_2L_2 \| x_3\kappa_3L_3\rangle_\rho`。

    参数含义同 :meth:`CouplingKernel.w`；``use_cache`` 同 :func:`u_cached`。
    """
    if not use_cache:
        return cache.kernel.w(x1, k1, L1, x2, k2, L2, x3, k3, L3, rho)
    block = cache.get_block(WCoefLabels(x1, L1, x2, L2, x3, L3))
    return block.get_coef(k1, k2, k3, rho)


def phi_cached(
    cache: PhiCoefCache,
    x1: SU3,
    x2: SU3,
    x3: SU3,
    rho1: int,
    rho2: int,
    use_cache: bool = True,
) -> float:
    """带缓存的 Phi 相位矩阵元。"""
    if not use_cache:
        return cache.kernel.phi(x1, x2, x3, rho1, rho2)
    block = cache.get_block(PhiCoefLabels(x1, x2, x3))
    return block.get_coef(rho1, rho2)


def _block_cached(cache: _CoefCache, labels, use_cache: bool) -> _CoefBlock:
    if not use_cache:
        return cache.block_type.build(labels, cache.kernel)
    return cache.get_block(labels)


def u_block_cached(cache: UCoefCache, labels: UCoefLabels, use_cache: bool = True) -> UCoefBlock:
    """整块取出 U 系数；``use_cache=False`` 时构造一个不存入缓存的新块。"""
    return _block_cached(cache, labels, use_cache)


def w_block_cached(cache: WCoefCache, labels: WCoefLabels, use_cache: bool = True) -> WCoefBlock:
    """整块取出 W 系数。

    Examples
    --------
    >>> block = w_block_cached(cache, WCoefLabels(SU3(2, 0), 2, SU3(2, 0), 2, SU3(4, 0), 4))
    >>> block.as_array().shape
    (1, 1, 1, 1)
    """
    return _block_cached(cache, labels, use_cache)


def phi_block_cached(cache: PhiCoefCache, labels: PhiCoefLabels, use_cache: bool = True) -> PhiCoefBlock:
    """整块取出 Phi 相位矩阵；返回块的 ``as_array()`` 为 ``rho_max × rho_max`` 矩阵。"""
    return _block_cached(cache, labels, use_cache)


def cache_stats(cache: _CoefCache) -> dict[str, int]:
    """缓存统计：块数、命中、未命中与已存储系数总数。"""
    n_coefs = sum(len(b) for b in cache.blocks.values())
    return {"blocks": len(cache), "hits": cache.hits, "misses": cache.misses, "coefficients": n_coefs}
