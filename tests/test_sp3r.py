"""Sp(3,R) 子空间结构单元测试"""

import pytest

from sp3rcoef.sp3r import Sp3RSpace, U3Subspace, raising_polynomial_labels
from sp3rcoef.u3 import U3, MultiplicityTagged


@pytest.mark.labels
@pytest.mark.quick
def test_raising_polynomial_labels():
    """测试升算符多项式标签：偶数分量、总数 Nn。"""
    assert raising_polynomial_labels(0) == [U3(0, 0, 0)]
    assert raising_polynomial_labels(2) == [U3(2, 0, 0)]
    assert raising_polynomial_labels(4) == [U3(2, 2, 0), U3(4, 0, 0)]
    assert raising_polynomial_labels(6) == [U3(2, 2, 2), U3(4, 2, 0), U3(6, 0, 0)]
    assert len(raising_polynomial_labels(8)) == 4
    assert raising_polynomial_labels(3) == []
    assert raising_polynomial_labels(-2) == []


@pytest.mark.labels
@pytest.mark.quick
def test_generate_half_integer_sigma():
    """测试 σ = [5.5,1.5,1.5]、Nn_max = 2 的子空间。"""
    sigma = U3(5.5, 1.5, 1.5)
    irrep = Sp3RSpace.generate(sigma, Nn_max=2)
    omegas = [s.omega for s in irrep]
    assert omegas == [sigma, U3(5.5, 3.5, 1.5), U3(6.5, 2.5, 1.5), U3(7.5, 1.5, 1.5)]
    assert len(irrep) == irrep.size() == 4
    base = irrep.get_subspace(0)
    assert base.state_labels(0) == MultiplicityTagged(U3(0, 0, 0), 1)
    for s in list(irrep)[1:]:
        assert list(s) == [MultiplicityTagged(U3(2, 0, 0), 1)]


@pytest.mark.labels
def test_generate_multi_state_subspace():
    """测试同一 ω 可由不同 n 到达：σ = [4,0,0]、Nn_max = 4 中的 ω = [6,2,0]。"""
    irrep = Sp3RSpace.generate(U3(4, 0, 0), Nn_max=4)
    assert len(irrep) == 11
    sub = irrep.look_up_subspace(U3(6, 2, 0))
    assert sub.size() == 2
    assert [t.irrep for t in sub] == [U3(2, 2, 0), U3(4, 0, 0)]
    assert sum(len(s) for s in irrep) == 12


@pytest.mark.labels
def test_subspace_order_by_N():
    """测试子空间按 N 非降序排列（低层子空间先于高层子空间）。"""
    irrep = Sp3RSpace.generate(U3(5.5, 1.5, 1.5), Nn_max=6)
    Ns = [s.omega.N for s in irrep]
    assert Ns == sorted(Ns)
    assert irrep.get_subspace(0).omega == irrep.sigma


@pytest.mark.labels
@pytest.mark.quick
def test_lookup():
    """测试子空间查找。"""
    irrep = Sp3RSpace.generate(U3(4, 0, 0), Nn_max=2)
    assert irrep.contains_subspace(U3(5, 1, 0))
    assert not irrep.contains_subspace(U3(8, 0, 0))
    idx = irrep.look_up_subspace_index(U3(5, 1, 0))
    assert irrep.get_subspace(idx).subspace_labels == U3(5, 1, 0)
    with pytest.raises(KeyError):
        irrep.look_up_subspace_index(U3(8, 0, 0))


@pytest.mark.labels
def test_invalid_construction():
    """测试重复子空间与空子空间的异常检测。"""
    sigma = U3(4, 0, 0)
    state = MultiplicityTagged(U3(0, 0, 0), 1)
    with pytest.raises(ValueError, match="重复"):
        Sp3RSpace(sigma, [U3Subspace(sigma, [state]), U3Subspace(sigma, [state])])
    with pytest.raises(ValueError, match="不含任何态"):
        U3Subspace(sigma, [])
