"""Поиск циклов по ссылкам на родителей (DFS с явным стеком)."""
from __future__ import annotations
import logging
from typing import List, NamedTuple

import numpy as np
from tqdm import tqdm

from .pedigree import Pedigree

LOGGER = logging.getLogger(__name__)

_NEW, _ACTIVE, _DONE = 0, 1, 2


class CycleReport(NamedTuple):
    count: int
    cycles: List[List[str]]

    @property
    def has_cycles(self) -> bool:
        return self.count > 0


def detect_cycles(ped: Pedigree, progress: bool = False) -> CycleReport:
    """
    Узел – запись, рёбра ведут к известным родителям внутри набора
    (сначала отец, затем мать). Цикл – суффикс текущего пути от первого
    вхождения повторного узла, замкнутый этим узлом: ``[A, B, C, A]``;
    петля на себя – ``[X, X]``.
    """
    n = len(ped)
    sire_index, dam_index = ped.sire_index, ped.dam_index
    state = np.zeros(n, dtype=np.int8)
    cycles: List[List[str]] = []
    seen = set()

    for root in tqdm(range(n), desc="cycles", disable=not progress):
        if state[root] != _NEW:
            continue
        state[root] = _ACTIVE
        path = [root]
        path_pos = {root: 0}
        cursor = [0]
        while path:
            node = path[-1]
            k = cursor[-1]
            if k < 2:
                cursor[-1] = k + 1
                parent = sire_index[node] if k == 0 else dam_index[node]
                if parent < 0:
                    continue
                if state[parent] == _ACTIVE:
                    walk = path[path_pos[parent]:] + [parent]
                    cycle = [ped.ids[i] for i in walk]
                    key = tuple(walk)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                elif state[parent] == _NEW:
                    state[parent] = _ACTIVE
                    path_pos[parent] = len(path)
                    path.append(parent)
                    cursor.append(0)
            else:
                path.pop()
                cursor.pop()
                del path_pos[node]
                state[node] = _DONE

    if cycles:
        LOGGER.warning("Found %d pedigree cycle(s), e.g. %s", len(cycles), " -> ".join(cycles[0]))
    return CycleReport(len(cycles), cycles)
