"""Мини‑родословные для юнит‑тестов."""
import numpy as np
import pandas as pd

from pedqc import Pedigree

# полусибсы по матери G1 и их потомки
half_sibs = pd.DataFrame(
    [
        {"id": "G1", "sire": None, "dam": None},
        {"id": "P1", "sire": None, "dam": "G1"},
        {"id": "P2", "sire": None, "dam": "G1"},
        {"id": "A",  "sire": None, "dam": "P1"},
        {"id": "B",  "sire": None, "dam": "P2"},
    ]
)

# классическое спаривание полных сибсов: F(C) = 0.25
full_sibs = pd.DataFrame(
    [
        {"id": "S", "sire": "0", "dam": "0",  "sex": "M"},
        {"id": "D", "sire": "0", "dam": "0",  "sex": "F"},
        {"id": "A", "sire": "S", "dam": "D",  "sex": "M"},
        {"id": "B", "sire": "S", "dam": "D",  "sex": "F"},
        {"id": "C", "sire": "A", "dam": "B",  "sex": "M"},
    ]
)

# линия C → B → A (A – самый молодой)
chain = pd.DataFrame(
    [
        {"id": "C", "sire": "0", "dam": "0"},
        {"id": "B", "sire": "C", "dam": "0"},
        {"id": "A", "sire": "B", "dam": "0"},
    ]
)


def ped(df: pd.DataFrame, **kwargs) -> Pedigree:
    sex_col = "sex" if "sex" in df.columns else None
    return Pedigree.from_frame(df, sex_col=sex_col, **kwargs)


def with_back_edge() -> Pedigree:
    """C становится сыном своего потомка A."""
    df = chain.copy()
    df.loc[df["id"] == "C", "sire"] = "A"
    return ped(df)


def random_pedigree(n: int, seed: int, shuffle: bool = True) -> Pedigree:
    """Случайная ацикличная родословная; родители всегда старше."""
    rng = np.random.default_rng(seed)
    n_founders = max(2, n // 5)
    sires, dams = [], []
    for i in range(n):
        if i < n_founders:
            sires.append("0")
            dams.append("0")
            continue
        s = rng.integers(0, i) if rng.random() < 0.9 else None
        d = rng.integers(0, i) if rng.random() < 0.85 else None
        sires.append("0" if s is None else f"a{s}")
        dams.append("NA" if d is None else f"a{d}")
    ids = [f"a{i}" for i in range(n)]
    perm = rng.permutation(n) if shuffle else np.arange(n)
    return Pedigree(
        [ids[i] for i in perm],
        [sires[i] for i in perm],
        [dams[i] for i in perm],
    )
