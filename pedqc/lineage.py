"""
Глубина родословной (LAP, longest ancestral path).

depth(i) = 0 для основателя, иначе 1 + max(depth(отец), depth(мать)) по
известным родителям внутри набора. Обход итеративный (явный стек), так что
длинные линии не упираются в лимит рекурсии Python; ребро назад в узел
текущего пути даёт 0 вместо бесконечного цикла.
"""
from __future__ import annotations
import logging
from typing import NamedTuple

import numpy as np
import pandas as pd
from tqdm import tqdm

from .pedigree import Pedigree

LOGGER = logging.getLogger(__name__)

DEEPEST_SAMPLE_SIZE = 200
DEEPEST_DEPTH_CAP = 100
LAP_SAMPLE_THRESHOLD = 1_000_000
LAP_SAMPLE_SIZE = 10_000
LAP_MAX_DEPTH = 20


class DeepestAncestor(NamedTuple):
    id: str | None
    depth: int


class DepthSession:
    """
    Мемо глубин для одной родословной. Сессию можно переиспользовать между
    вызовами; между потоками – нельзя.

    При ``depth_cap`` путь обхода ограничен этой длиной, а результат –
    ``min(depth, depth_cap)``. Узлы, чей расчёт упёрся в ограничение, не
    мемоизируются, поэтому значения не выше ``depth_cap`` всегда точные.
    """

    def __init__(self, ped: Pedigree, depth_cap: int | None = None):
        if depth_cap is not None and depth_cap < 1:
            raise ValueError("depth_cap must be >= 1")
        self.ped = ped
        self.depth_cap = depth_cap
        self._memo = np.full(len(ped), -1, dtype=np.int64)
        self._on_path = np.zeros(len(ped), dtype=bool)

    def depth(self, i: int) -> int:
        memo = self._memo
        if memo[i] >= 0:
            return self._clip(memo[i])

        sire_index, dam_index = self.ped.sire_index, self.ped.dam_index
        on_path = self._on_path
        cap = self.depth_cap

        path = [i]
        cursor = [0]
        best = [0]
        truncated = [False]
        on_path[i] = True
        result = 0
        while path:
            node = path[-1]
            k = cursor[-1]
            if k < 2:
                cursor[-1] = k + 1
                p = sire_index[node] if k == 0 else dam_index[node]
                if p < 0:
                    continue
                if memo[p] >= 0:
                    best[-1] = max(best[-1], memo[p])
                    continue
                if on_path[p]:
                    continue
                if cap is not None and len(path) > cap:
                    truncated[-1] = True
                    continue
                on_path[p] = True
                path.append(p)
                cursor.append(0)
                best.append(0)
                truncated.append(False)
                continue

            path.pop()
            cursor.pop()
            node_best = best.pop()
            node_truncated = truncated.pop()
            on_path[node] = False

            if sire_index[node] < 0 and dam_index[node] < 0:
                value = 0
            else:
                value = node_best + 1
            if not node_truncated:
                memo[node] = value
            if path:
                best[-1] = max(best[-1], value)
                truncated[-1] = truncated[-1] or node_truncated
            else:
                result = value
        return self._clip(result)

    def _clip(self, value) -> int:
        value = int(value)
        if self.depth_cap is not None and value > self.depth_cap:
            return self.depth_cap
        return value

    def depth_of(self, animal_id: str) -> int:
        return self.depth(self.ped.first_index[animal_id])

    def depths(self, progress: bool = False) -> np.ndarray:
        """Глубина каждой записи; общие предки считаются один раз."""
        return np.array(
            [self.depth(i) for i in tqdm(range(len(self.ped)), desc="depth", disable=not progress)],
            dtype=np.int64,
        )


def lap_depths(ped: Pedigree, progress: bool = False) -> pd.Series:
    return pd.Series(
        DepthSession(ped).depths(progress=progress),
        index=pd.Index(ped.ids, name="id"),
        name="depth",
    )


def find_deepest_ancestor(
    ped: Pedigree,
    sample_size: int = DEEPEST_SAMPLE_SIZE,
    depth_cap: int = DEEPEST_DEPTH_CAP,
    seed: int | np.random.Generator | None = None,
) -> DeepestAncestor:
    """
    Самая длинная линия среди ``sample_size`` случайных не-основателей
    (или всех, если их меньше). При равенстве побеждает более ранняя запись.
    """
    candidates = np.flatnonzero(~ped.is_founder)
    if candidates.size == 0:
        return DeepestAncestor(None, 0)
    if candidates.size > sample_size:
        rng = np.random.default_rng(seed)
        candidates = np.sort(rng.choice(candidates, size=sample_size, replace=False))

    session = DepthSession(ped, depth_cap=depth_cap)
    best_id, best_depth = None, 0
    for i in candidates:
        d = session.depth(int(i))
        if d > best_depth:
            best_id, best_depth = ped.ids[i], d
    if best_id is None:
        return DeepestAncestor(None, 0)
    return DeepestAncestor(best_id, best_depth)


def lap_distribution(
    ped: Pedigree,
    sample_threshold: int = LAP_SAMPLE_THRESHOLD,
    sample_size: int = LAP_SAMPLE_SIZE,
    max_depth: int = LAP_MAX_DEPTH,
    seed: int | np.random.Generator | None = None,
) -> pd.Series:
    """
    Гистограмма глубин 0..max_depth-1 (больше – в последнюю корзину).
    Для родословных больше ``sample_threshold`` считается по выборке и
    масштабируется на n / размер выборки с округлением.
    """
    if max_depth < 1:
        raise ValueError("max_depth must be >= 1")
    n = len(ped)
    if n > sample_threshold:
        rng = np.random.default_rng(seed)
        sample = np.sort(rng.choice(n, size=min(sample_size, n), replace=False))
        LOGGER.info("📊  LAP distribution on a sample of %d / %d animals", sample.size, n)
    else:
        sample = np.arange(n)

    session = DepthSession(ped)
    depths = np.array([session.depth(int(i)) for i in sample], dtype=np.int64)
    hist = np.bincount(np.clip(depths, 0, max_depth - 1), minlength=max_depth)

    scale = 1.0
    if 0 < sample.size < n:
        scale = n / sample.size
    counts = np.rint(hist * scale).astype(np.int64)
    return pd.Series(counts, index=pd.RangeIndex(max_depth, name="depth"), name="count")
