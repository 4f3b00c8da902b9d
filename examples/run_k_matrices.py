#!/usr/bin/env python
"""Sp(3,R) K 矩阵计算入口。

调用 su3lib 计算核，逐子空间构造 S/K 矩阵并汇总缓存统计。
"""

import argparse
import json
import sys
import time
from pathlib import Path

# 添加 src 到路径
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np

from sp3rcoef.coef import Su3libKernel, UCoefCache, cache_stats
from sp3rcoef.sp3r import Sp3RSpace
from sp3rcoef.u3 import U3
from sp3rcoef.vcs import KMatrixConfig, generate_k_matrices


def parse_sigma(text):
    """解析 ``f1,f2,f3`` 形式的最低权（允许半整数）。"""
    parts = [float(p) for p in text.split(",")]
    if len(parts) != 3:
        raise ValueError(f"sigma 需要 3 个分量，实际: {text}")
    return U3(*parts)


def print_results(result, irrep, t_elapsed):
    print("\n" + "=" * 70)
    print(f"K 矩阵结果 (sigma={result.sigma}, 子空间数={len(irrep)})")
    print("=" * 70)
    print(f"{'omega':>28} {'dim':>5} {'tr(S)':>15} {'min eig(K)':>15}")
    print("-" * 66)
    for subspace in irrep:
        w = subspace.omega
        K = result.k_matrices[w]
        label = f"[{w.f1:g},{w.f2:g},{w.f3:g}]"
        min_eig = np.min(np.linalg.eigvalsh(K)) if K.size else float("nan")
        print(f"{label:>28} {len(subspace):5d} {np.trace(result.s_matrices[w]):15.6e} {min_eig:15.6e}")
    print(f"\n最大残差 |K²-S|: {result.max_residual():.3e}")
    print(f"总用时: {t_elapsed:.2f}s")


def export_results(result, export_path):
    """导出 S/K 矩阵到 JSON。"""
    export_path = Path(export_path)
    export_path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "sigma": [result.sigma.f1, result.sigma.f2, result.sigma.f3],
        "subspaces": [
            {
                "omega": [w.f1, w.f2, w.f3],
                "S": result.s_matrices[w].tolist(),
                "K": K.tolist(),
            }
            for w, K in result.k_matrices.items()
        ],
    }
    with open(export_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    print(f"\n结果已导出: {export_path}")


def main():
    parser = argparse.ArgumentParser(
        description="Sp(3,R) VCS K 矩阵计算",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--sigma", type=str, required=True, help="最低权 f1,f2,f3（如 11.5,1.5,1.5）")
    parser.add_argument("--Nn-max", type=int, default=6, help="升算符多项式最大量子数")
    parser.add_argument("--su3lib", type=str, default=None, help="su3lib 共享库路径（默认读取 SU3LIB_PATH）")
    parser.add_argument("--no-cache", dest="use_cache", action="store_false", help="直接调用计算核，不使用缓存")
    parser.add_argument("--eig-tol", type=float, default=1e-10, help="半正定判断的相对容差")
    parser.add_argument("--verbose", action="store_true", help="逐子空间打印进度")
    parser.add_argument("--export", type=str, default=None, help="导出结果到 JSON")
    args = parser.parse_args()

    sigma = parse_sigma(args.sigma)
    irrep = Sp3RSpace.generate(sigma, args.Nn_max)

    kernel = Su3libKernel(args.su3lib)
    kernel.initialize()
    u_cache = UCoefCache(kernel)
    cfg = KMatrixConfig(use_cache=args.use_cache, eig_tol=args.eig_tol, verbose=args.verbose)

    t_start = time.time()
    result = generate_k_matrices(irrep, u_cache, cfg)
    t_elapsed = time.time() - t_start

    print_results(result, irrep, t_elapsed)
    stats = cache_stats(u_cache)
    print(
        f"U 系数缓存: {stats['blocks']} 块, {stats['coefficients']} 个系数, "
        f"命中 {stats['hits']}, 未命中 {stats['misses']}, 计算核调用 {kernel.n_calls}"
    )

    if args.export:
        export_results(result, args.export)


if __name__ == "__main__":
    main()
