"""SU(3) 耦合系数子包

- **重数解析** (`multiplicity.py`): 各耦合通道的最大外重数
- **计算核** (`kernel.py`): 单系数求值边界与 su3lib 绑定
- **标签** (`labels.py`): 可哈希、可排序的复合缓存键
- **系数块** (`blocks.py`): 按重数指标平铺的系数存储
- **缓存** (`cache.py`): 标签 → 块 的缓存与带缓存的取值函数

用法
====

::

    from sp3rcoef.coef import Su3libKernel, UCoefCache, u_cached

    kernel = Su3libKernel()
    kernel.initialize()
    cache = UCoefCache(kernel)
    value = u_cached(cache, x1, x2, x, x3, x12, r12, r12_3, x23, r23, r1_23)
"""

from .blocks import PhiCoefBlock, UCoefBlock, WCoefBlock
from .cache import (
    PhiCoefCache,
    UCoefCache,
    WCoefCache,
    cache_stats,
    phi_block_cached,
    phi_cached,
    u_block_cached,
    u_cached,
    w_block_cached,
    w_cached,
)
from .kernel import MAX_K, CouplingKernel, Su3libKernel
from .labels import PhiCoefLabels, UCoefLabels, WCoefLabels
from .multiplicity import phi_multiplicity, u_multiplicity, w_multiplicity, z_multiplicity

__all__ = [
    # 计算核
    "MAX_K",
    "CouplingKernel",
    "Su3libKernel",
    # 重数
    "u_multiplicity",
    "z_multiplicity",
    "w_multiplicity",
    "phi_multiplicity",
    # 标签与块
    "UCoefLabels",
    "WCoefLabels",
    "PhiCoefLabels",
    "UCoefBlock",
    "WCoefBlock",
    "PhiCoefBlock",
    # 缓存
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
