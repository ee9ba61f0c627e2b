"""Сводка потомков по отцам или матерям: BFS по поколениям."""
from __future__ import annotations
import logging
from typing import List, Literal, NamedTuple

import numpy as np
import pandas as pd
from numba import njit

from .pedigree import Pedigree

LOGGER = logging.getLogger(__name__)

MAX_DEPTH = 50
_STAMP_LIMIT = 2147483647


class DescendantSummary(NamedTuple):
    parents: List[str]
    totals: np.ndarray   # (n_parents,)
    counts: np.ndarray   # (n_parents, max_depth), столбец g – поколение g + 1

    def to_frame(self) -> pd.DataFrame:
        gens = [f"gen_{g + 1}" for g in range(self.counts.shape[1])]
        df = pd.DataFrame(self.counts, columns=gens, index=pd.Index(self.parents, name="parent_id"))
        df.insert(0, "total", self.totals)
        return df


@njit(cache=True)
def _descendant_counts_numba(
    grp_ptr: np.ndarray,
    grp_members: np.ndarray,
    own_group: np.ndarray,
    max_depth: int,
):
    n_groups = grp_ptr.shape[0] - 1
    n = own_group.shape[0]
    totals = np.zeros(n_groups, dtype=np.int64)
    counts = np.zeros((n_groups, max_depth), dtype=np.int64)
    visit = np.zeros(n, dtype=np.int32)
    cur = np.empty(n, dtype=np.int64)
    nxt = np.empty(n, dtype=np.int64)
    stamp = 1

    for g in range(n_groups):
        # поколение 1 – прямое потомство
        n_cur = 0
        for t in range(grp_ptr[g], grp_ptr[g + 1]):
            idx = grp_members[t]
            if visit[idx] != stamp:
                visit[idx] = stamp
                cur[n_cur] = idx
                n_cur += 1
        counts[g, 0] = n_cur
        total = n_cur

        depth = 1
        while n_cur > 0 and depth < max_depth:
            n_nxt = 0
            for t in range(n_cur):
                h = own_group[cur[t]]
                if h < 0:
                    continue
                for u in range(grp_ptr[h], grp_ptr[h + 1]):
                    c = grp_members[u]
                    if visit[c] != stamp:
                        visit[c] = stamp
                        nxt[n_nxt] = c
                        n_nxt += 1
            counts[g, depth] = n_nxt
            total += n_nxt
            cur, nxt = nxt, cur
            n_cur = n_nxt
            depth += 1

        totals[g] = total
        stamp += 1
        if stamp == _STAMP_LIMIT:
            visit[:] = 0
            stamp = 1

    return totals, counts


def descendant_summary(
    ped: Pedigree,
    role: Literal["sire", "dam"] = "sire",
    max_depth: int = MAX_DEPTH,
) -> DescendantSummary:
    """
    Для каждого id, встречающегося в роли ``role``, – число потомков по
    поколениям 1..max_depth. Потомки ищутся по той же роли: дети ребёнка –
    записи, где он указан как ``role``. Особь, достижимая разными путями,
    считается один раз, в поколении первого достижения.
    """
    if role not in ("sire", "dam"):
        raise ValueError(f"Unknown role: {role!r}")
    if max_depth < 1:
        raise ValueError("max_depth must be >= 1")

    tokens = ped.sires if role == "sire" else ped.dams
    group_of = {}
    members: List[List[int]] = []
    for i, parent_id in enumerate(tokens):
        if parent_id is None:
            continue
        g = group_of.get(parent_id)
        if g is None:
            g = group_of[parent_id] = len(members)
            members.append([])
        members[g].append(i)

    parents = list(group_of)
    if not parents:
        return DescendantSummary(
            [], np.zeros(0, dtype=np.int64), np.zeros((0, max_depth), dtype=np.int64)
        )

    grp_ptr = np.zeros(len(members) + 1, dtype=np.int64)
    grp_ptr[1:] = np.cumsum([len(m) for m in members])
    grp_members = np.fromiter(
        (i for m in members for i in m), dtype=np.int64, count=int(grp_ptr[-1])
    )
    own_group = np.array([group_of.get(animal_id, -1) for animal_id in ped.ids], dtype=np.int64)

    LOGGER.info("🌳  Descendant summary for %d %ss …", len(parents), role)
    totals, counts = _descendant_counts_numba(grp_ptr, grp_members, own_group, max_depth)
    return DescendantSummary(parents, totals, counts)
