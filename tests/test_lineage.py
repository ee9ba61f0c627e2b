import numpy as np
import pytest

from pedqc import (
    DeepestAncestor,
    DepthSession,
    Pedigree,
    find_deepest_ancestor,
    lap_depths,
    lap_distribution,
)
from .fixtures import chain, full_sibs, ped, random_pedigree, with_back_edge


def _long_line(n: int) -> Pedigree:
    ids = [f"g{i}" for i in range(n)]
    sires = ["0"] + ids[:-1]
    return Pedigree(ids, sires, ["0"] * n)


def test_depths_full_sibs():
    d = lap_depths(ped(full_sibs))
    assert d.to_dict() == {"S": 0, "D": 0, "A": 1, "B": 1, "C": 2}


def test_founders_and_monotonicity():
    p = random_pedigree(150, seed=5)
    depths = DepthSession(p).depths()
    assert (depths[p.is_founder] == 0).all()
    for i in range(len(p)):
        for parent in (p.sire_index[i], p.dam_index[i]):
            if parent >= 0:
                assert depths[i] >= depths[parent] + 1


def test_out_of_set_parent_is_founder():
    p = Pedigree(["A", "B"], ["ghost", "A"], ["0", "0"])
    assert DepthSession(p).depths().tolist() == [0, 1]


def test_long_line_beyond_recursion_limit():
    p = _long_line(5000)
    assert DepthSession(p).depth(4999) == 4999


def test_cycle_guard_terminates():
    d = DepthSession(with_back_edge()).depths()
    assert d.shape == (3,)
    assert (d >= 1).all()


def test_session_reuse_and_depth_of():
    session = DepthSession(ped(chain))
    assert session.depth_of("A") == 2
    assert session.depth_of("B") == 1
    assert session.depth_of("C") == 0


def test_depth_cap():
    p = _long_line(300)
    capped = DepthSession(p, depth_cap=100)
    assert capped.depth(299) == 100
    # значения ниже ограничения точные, даже после обрезанного обхода
    assert capped.depth(50) == 50
    with pytest.raises(ValueError):
        DepthSession(p, depth_cap=0)


def test_deepest_ancestor():
    res = find_deepest_ancestor(ped(full_sibs))
    assert res == DeepestAncestor("C", 2)

    res = find_deepest_ancestor(_long_line(300), sample_size=10, seed=1)
    assert res.id is not None
    assert 1 <= res.depth <= 100


def test_deepest_ancestor_no_non_founders():
    p = Pedigree(["A", "B"], ["0", "ghost"], ["0", ""])
    assert find_deepest_ancestor(p) == DeepestAncestor(None, 0)


def test_lap_distribution_matches_bulk_depths():
    p = random_pedigree(300, seed=9)
    depths = DepthSession(p).depths()
    dist = lap_distribution(p, max_depth=20)
    expected = np.bincount(np.clip(depths, 0, 19), minlength=20)
    assert dist.tolist() == expected.tolist()
    assert list(dist.index) == list(range(20))


def test_lap_distribution_clips_to_last_bucket():
    dist = lap_distribution(_long_line(10), max_depth=4)
    assert dist.tolist() == [1, 1, 1, 7]


def test_lap_distribution_sampling_scale():
    p = random_pedigree(1000, seed=2)
    dist = lap_distribution(p, sample_threshold=500, sample_size=100, max_depth=20, seed=0)
    # 100 животных в выборке, масштаб ×10 – округление не нужно
    assert dist.sum() == len(p)
    assert (dist % 10 == 0).all()


def test_lap_distribution_scale_rounding():
    p = random_pedigree(1000, seed=4)
    dist = lap_distribution(p, sample_threshold=10, sample_size=300, max_depth=20, seed=3)
    assert abs(dist.sum() - len(p)) <= 20
