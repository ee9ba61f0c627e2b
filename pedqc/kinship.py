"""
Инбридинг (F) и коанцестри (f) по родословной.

F(i) = f(отец, мать), где f – коэффициент коанцестри (kinship).
Есть три способа:
* ``inbreeding_coefficients`` – разреженная рекурсия Meuwissen–Luo
  (вариант Sargolzaei с группировкой по отцам), почти линейная по времени;
* ``build_additive_matrix`` – табличный метод, полная матрица A = 2·f,
  O(n²) памяти, годится для проверки на маленьких родословных;
* ``make_kinship_fn`` – рекурсивный расчёт f(a,b) с мемоизацией.

Все три учитывают только известных родителей внутри набора и требуют
уникальных id и отсутствия циклов.
"""
from __future__ import annotations
import heapq
import logging
from functools import lru_cache
from typing import Callable, Tuple

import numpy as np
import pandas as pd
from numba import njit

from .pedigree import CycleError, DuplicateIdError, Pedigree

LOGGER = logging.getLogger(__name__)


def _require_unique_ids(ped: Pedigree) -> None:
    if ped.duplicate_ids:
        raise DuplicateIdError(ped.duplicate_ids[0])


def topological_order(ped: Pedigree) -> np.ndarray:
    """
    Алгоритм Кана: из готовых (все родители уже выданы) всегда берётся
    запись с наименьшим исходным индексом, поэтому порядок детерминирован.
    ``CycleError``, если выдать удалось меньше n записей.
    """
    n = len(ped)
    child_ptr, child_idx = ped.children
    indegree = (ped.sire_index >= 0).astype(np.int64) + (ped.dam_index >= 0)

    ready = [i for i in range(n) if indegree[i] == 0]
    heapq.heapify(ready)
    order = np.empty(n, dtype=np.int64)
    done = 0
    while ready:
        node = heapq.heappop(ready)
        order[done] = node
        done += 1
        for child in child_idx[child_ptr[node]:child_ptr[node + 1]]:
            indegree[child] -= 1
            if indegree[child] == 0:
                heapq.heappush(ready, int(child))

    if done != n:
        raise CycleError(
            "Cycle detected in pedigree; cannot compute inbreeding coefficients "
            f"({n - done} of {n} individuals could not be ordered)."
        )
    return order


@njit(cache=True)
def _inbreeding_numba(ped_sire: np.ndarray, ped_dam: np.ndarray, sid: np.ndarray) -> np.ndarray:
    # нумерация 1..n, 0 – неизвестный родитель; sid – животные по возрастанию отца
    n = ped_sire.shape[0] - 1
    link = np.zeros(n + 1, dtype=np.int64)
    max_idp = np.zeros(n + 1, dtype=np.int64)
    r_sire = np.zeros(n + 1, dtype=np.int64)
    r_dam = np.zeros(n + 1, dtype=np.int64)
    f = np.zeros(n + 1, dtype=np.float64)
    b = np.zeros(n + 1, dtype=np.float64)
    x = np.zeros(n + 1, dtype=np.float64)
    stamp = np.zeros(n + 1, dtype=np.int64)
    f[0] = -1.0

    # сжатая нумерация предков: только те, кто был родителем
    rn = 1
    for i in range(1, n + 1):
        s = ped_sire[i]
        d = ped_dam[i]
        if s != 0 and link[s] == 0:
            link[s] = rn
            max_idp[rn] = rn
            r_sire[rn] = link[ped_sire[s]]
            r_dam[rn] = link[ped_dam[s]]
            rn += 1
        if d != 0 and link[d] == 0:
            link[d] = rn
            r_sire[rn] = link[ped_sire[d]]
            r_dam[rn] = link[ped_dam[d]]
            rn += 1
        if max_idp[link[s]] < link[d]:
            max_idp[link[s]] = link[d]

    gen = 0
    k = 1
    i = 0
    while i < n:
        s = ped_sire[sid[i]]
        if s == 0:
            f[sid[i]] = 0.0
            i += 1
            continue

        rs = link[s]
        mip = max_idp[rs]
        # новое поколение штампов: всё, что не помечено gen, считается нулём
        gen += 1
        x[rs] = 1.0
        stamp[rs] = gen

        while k <= s:
            if link[k] != 0:
                b[link[k]] = 0.5 - 0.25 * (f[ped_sire[k]] + f[ped_dam[k]])
            k += 1

        for j in range(rs, 0, -1):
            if stamp[j] == gen and x[j] != 0.0:
                half = x[j] * 0.5
                ps = r_sire[j]
                pd_ = r_dam[j]
                if ps != 0:
                    if stamp[ps] != gen:
                        x[ps] = 0.0
                        stamp[ps] = gen
                    x[ps] += half
                if pd_ != 0:
                    if stamp[pd_] != gen:
                        x[pd_] = 0.0
                        stamp[pd_] = gen
                    x[pd_] += half
                x[j] *= b[j]

        for j in range(1, mip + 1):
            if stamp[j] != gen:
                x[j] = 0.0
                stamp[j] = gen
            ps = r_sire[j]
            pd_ = r_dam[j]
            xs = x[ps] if (ps != 0 and stamp[ps] == gen) else 0.0
            xd = x[pd_] if (pd_ != 0 and stamp[pd_] == gen) else 0.0
            x[j] += (xs + xd) * 0.5

        while i < n and ped_sire[sid[i]] == s:
            ld = link[ped_dam[sid[i]]]
            if ld != 0 and stamp[ld] == gen:
                f[sid[i]] = x[ld] * 0.5
            else:
                f[sid[i]] = 0.0
            i += 1

    return f


def inbreeding_coefficients(ped: Pedigree) -> pd.Series:
    """
    Коэффициенты инбридинга в исходном порядке записей (индекс – id).

    ``DuplicateIdError`` при повторе id, ``CycleError`` при цикле:
    частично посчитанный результат не возвращается.
    """
    _require_unique_ids(ped)
    n = len(ped)
    if n == 0:
        return pd.Series([], index=pd.Index([], name="id"), dtype=np.float64, name="F")

    order = topological_order(ped)
    new_index = np.empty(n, dtype=np.int64)
    new_index[order] = np.arange(1, n + 1)

    ped_sire = np.zeros(n + 1, dtype=np.int64)
    ped_dam = np.zeros(n + 1, dtype=np.int64)
    sires = ped.sire_index[order]
    dams = ped.dam_index[order]
    ped_sire[1:] = np.where(sires >= 0, new_index[np.maximum(sires, 0)], 0)
    ped_dam[1:] = np.where(dams >= 0, new_index[np.maximum(dams, 0)], 0)

    sid = np.argsort(ped_sire[1:], kind="stable").astype(np.int64) + 1

    LOGGER.info("🧬  Meuwissen–Luo inbreeding for %d animals …", n)
    f = _inbreeding_numba(ped_sire, ped_dam, sid)
    return pd.Series(f[new_index], index=pd.Index(ped.ids, name="id"), name="F")


def build_additive_matrix(ped: Pedigree) -> pd.DataFrame:
    """
    Полная аддитивная матрица родства A (диагональ = 1 + F) в исходном
    порядке записей. Считается в топологическом порядке табличным методом.
    """
    _require_unique_ids(ped)
    n = len(ped)
    order = topological_order(ped)
    pos = np.empty(n, dtype=np.int64)
    pos[order] = np.arange(n)

    A = np.zeros((n, n), dtype=np.float64)
    for t, i in enumerate(order):
        s, d = ped.sire_index[i], ped.dam_index[i]
        ps = pos[s] if s >= 0 else -1
        pd_ = pos[d] if d >= 0 else -1

        if ps >= 0 and pd_ >= 0:
            A[t, :t] = 0.5 * (A[ps, :t] + A[pd_, :t])
            A[t, t] = 1.0 + 0.5 * A[ps, pd_]
        elif ps >= 0 or pd_ >= 0:
            parent = ps if ps >= 0 else pd_
            A[t, :t] = 0.5 * A[parent, :t]
            A[t, t] = 1.0
        else:
            A[t, t] = 1.0
        A[:t, t] = A[t, :t]

    A = A[np.ix_(pos, pos)]
    return pd.DataFrame(A, index=list(ped.ids), columns=list(ped.ids))


def make_kinship_fn(
    ped: Pedigree,
) -> Tuple[Callable[[str], float], Callable[[str | None, str | None], float]]:
    """
    Возвращает две функции:
        F(id) → inbreeding
        kinship(a, b) → коанцестри f(a, b) (родство R = 2·f)
    """
    _require_unique_ids(ped)
    order = topological_order(ped)
    rank = {ped.ids[i]: r for r, i in enumerate(order)}
    parents = {}
    for i, animal_id in enumerate(ped.ids):
        s, d = ped.sire_index[i], ped.dam_index[i]
        parents[animal_id] = (
            ped.ids[s] if s >= 0 else None,
            ped.ids[d] if d >= 0 else None,
        )

    @lru_cache(maxsize=None)
    def kinship(a: str | None, b: str | None) -> float:
        if a is None or b is None:
            return 0.0
        if a == b:
            return 0.5 * (1.0 + F(a))
        # раскрываем более молодого из двух
        if rank[a] < rank[b]:
            a, b = b, a
        sire, dam = parents[a]
        return 0.5 * (kinship(sire, b) + kinship(dam, b))

    @lru_cache(maxsize=None)
    def F(animal_id: str) -> float:
        sire, dam = parents[animal_id]
        if sire is None or dam is None:
            return 0.0
        return kinship(sire, dam)

    return F, kinship
