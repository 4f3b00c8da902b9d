"""sp3rcoef 包
=================

SU(3) 耦合系数缓存与 Sp(3,R) 矢量相干态 K 矩阵构造。

本包提供：

- U(3)/SU(3) 群标签与标签代数（Kronecker 积、外重数、分级函数）
- 耦合系数（U/Z 重耦合、Wigner、Phi 相位）的计算核边界与 su3lib 绑定
- 按重数指标成块存储的系数缓存
- Sp(3,R) 不可约表示的 U(3) 子空间结构
- VCS 递推构造 S 矩阵与 K 矩阵

注：本项目所有文档与注释均使用中文，Docstring 采用 Sphinx + NumPy 风格，公式使用 ``:math:`` 标记。
"""

from sp3rcoef.u3 import SU3, U3, MultiplicityTagged, kronecker_product, outer_multiplicity, omega
from sp3rcoef.sp3r import Sp3RSpace, U3Subspace
from sp3rcoef.utils import NotPositiveSemidefiniteError, psd_sqrtm
from sp3rcoef.vcs import KMatrixConfig, KMatrixResult, boson_creation_rme, generate_k_matrices

__all__ = [
    "SU3",
    "U3",
    "MultiplicityTagged",
    "kronecker_product",
    "outer_multiplicity",
    "omega",
    "Sp3RSpace",
    "U3Subspace",
    "NotPositiveSemidefiniteError",
    "psd_sqrtm",
    "KMatrixConfig",
    "KMatrixResult",
    "boson_creation_rme",
    "generate_k_matrices",
]

__version__ = "0.1.0"
