"""
Полный прогон анализа родословной:
    QC → хронология → циклы → глубины / LAP → потомки → инбридинг.

Инбридинг пропускается (с предупреждением), если в родословной есть
дубликаты id или циклы: эти проблемы уже видны в отчётах QC и циклов.
"""
from __future__ import annotations
import logging
from typing import Dict, Literal

import pandas as pd

from .cycles import detect_cycles
from .descendants import MAX_DEPTH, descendant_summary
from .kinship import inbreeding_coefficients
from .lineage import LAP_MAX_DEPTH, find_deepest_ancestor, lap_depths, lap_distribution
from .pedigree import CycleError, DuplicateIdError, Pedigree
from .qc import check_birth_date_order, pedigree_qc

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
LOGGER = logging.getLogger(__name__)


def load_pedigree(
    path: str,
    id_col: str = "id",
    sire_col: str = "sire",
    dam_col: str = "dam",
    sex_col: str | None = None,
    birth_col: str | None = None,
    sep: str = ",",
) -> Pedigree:
    """Читает таблицу; id и родители – строки как есть (без NaN-магии pandas)."""
    text_cols = [c for c in (id_col, sire_col, dam_col, sex_col) if c is not None]
    df = pd.read_csv(
        path, sep=sep, dtype={c: str for c in text_cols}, keep_default_na=False, comment="#"
    )
    if birth_col is not None and birth_col in df.columns:
        df[birth_col] = pd.to_numeric(df[birth_col], errors="coerce")
    return Pedigree.from_frame(df, id_col, sire_col, dam_col, sex_col, birth_col)


def analyze_pedigree(
    ped: Pedigree,
    *,
    role: Literal["sire", "dam"] = "sire",
    max_depth: int = MAX_DEPTH,
    lap_max_depth: int = LAP_MAX_DEPTH,
    seed: int | None = None,
    progress: bool = False,
) -> Dict[str, object]:
    LOGGER.info("📦  Pedigree with %d records", len(ped))

    LOGGER.info("🔍  QC …")
    qc = pedigree_qc(ped)
    result: Dict[str, object] = {"qc": qc}

    if ped.birth_dates is not None:
        LOGGER.info("📅  Birth-date order …")
        result["birth_dates"] = check_birth_date_order(ped)

    LOGGER.info("🔁  Cycle detection …")
    cycles = detect_cycles(ped, progress=progress)
    result["cycles"] = cycles

    LOGGER.info("📏  Ancestor depth …")
    result["depths"] = lap_depths(ped, progress=progress)
    result["deepest"] = find_deepest_ancestor(ped, seed=seed)
    result["lap_distribution"] = lap_distribution(ped, max_depth=lap_max_depth, seed=seed)

    result["descendants"] = descendant_summary(ped, role=role, max_depth=max_depth)

    try:
        result["inbreeding"] = inbreeding_coefficients(ped)
    except (DuplicateIdError, CycleError) as exc:
        LOGGER.warning("⚠️  Inbreeding skipped: %s", exc)
        result["inbreeding"] = None

    LOGGER.info("✅  Done: %d founders, %d cycles", qc.founders, cycles.count)
    return result
