"""
Контроль качества родословной.

Все проверки только считают аномалии (дубликаты, отсутствующие родители,
«сам себе родитель», один id в роли и отца и матери, несоответствие пола,
нарушение хронологии) и никогда не падают на содержимом данных.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field, fields
from typing import Dict, List, Sequence, Set, Tuple

import numpy as np
import pandas as pd

from .pedigree import Pedigree, Sex, ShapeMismatchError, normalize_sex

LOGGER = logging.getLogger(__name__)


@dataclass
class QCReport:
    total: int = 0
    founders: int = 0
    with_both_parents: int = 0
    only_sire: int = 0
    only_dam: int = 0
    no_parents: int = 0
    self_parent_count: int = 0
    duplicate_ids: List[str] = field(default_factory=list)
    missing_sires: List[str] = field(default_factory=list)
    missing_dams: List[str] = field(default_factory=list)
    dual_role_ids: List[str] = field(default_factory=list)
    unique_sires: int = 0
    unique_dams: int = 0
    total_sire_progeny: int = 0
    total_dam_progeny: int = 0
    individuals_with_progeny: int = 0
    individuals_without_progeny: int = 0
    founder_sires: int = 0
    founder_dams: int = 0
    founder_sire_progeny: int = 0
    founder_dam_progeny: int = 0
    founder_total_progeny: int = 0
    founder_no_progeny: int = 0
    non_founder_sires: int = 0
    non_founder_dams: int = 0
    non_founder_sire_progeny: int = 0
    non_founder_dam_progeny: int = 0
    sire_progeny: Dict[str, int] = field(default_factory=dict)
    dam_progeny: Dict[str, int] = field(default_factory=dict)
    founder_set: Set[str] = field(default_factory=set)
    # расширение по полу
    sex_checked: bool = False
    sex_mismatch_sire: int = 0
    sex_mismatch_dam: int = 0
    sex_mismatch_sire_ids: List[str] = field(default_factory=list)
    sex_mismatch_dam_ids: List[str] = field(default_factory=list)

    def summary(self) -> pd.Series:
        """Скалярные счётчики одной колонкой; для списков – их длина."""
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (dict, set)):
                continue
            if isinstance(value, list):
                out[f"n_{f.name}"] = len(value)
            else:
                out[f.name] = int(value)
        return pd.Series(out, name="value")

    def progeny_frame(self) -> pd.DataFrame:
        rows = [
            (pid, role, cnt, pid in self.founder_set)
            for role, table in (("sire", self.sire_progeny), ("dam", self.dam_progeny))
            for pid, cnt in table.items()
        ]
        return pd.DataFrame(rows, columns=["parent_id", "role", "progeny", "founder"])


@dataclass
class BirthDateReport:
    count: int = 0
    invalid_sire_count: int = 0
    invalid_dam_count: int = 0
    invalid_offspring_ids: List[str] = field(default_factory=list)
    invalid_sire_ids: List[str | None] = field(default_factory=list)
    invalid_dam_ids: List[str | None] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "offspring_id": self.invalid_offspring_ids,
                "sire_id": self.invalid_sire_ids,
                "dam_id": self.invalid_dam_ids,
            }
        )


def _ordered(values) -> List[str]:
    # dict сохраняет порядок вставки → порядок первого появления
    return list(dict.fromkeys(values))


def pedigree_qc(ped: Pedigree, sex: Sequence | None = None) -> QCReport:
    """
    Структурная статистика за два прохода по записям.

    «Основатель» здесь – запись без *указанных* родителей; ссылка на
    животное вне набора считается отдельно (``missing_sires`` /
    ``missing_dams``). Если передан ``sex`` (или он есть в ``ped``),
    дополнительно проверяется пол родителей.
    """
    n = len(ped)
    id_set = ped.first_index.keys()
    rep = QCReport(total=n, duplicate_ids=list(ped.duplicate_ids))

    if sex is None and ped.sex is not None:
        sex_values: Tuple[Sex, ...] | None = ped.sex
    elif sex is not None:
        if len(sex) != n:
            # единственная фатальная ошибка QC – форма входа
            raise ShapeMismatchError(f"Length mismatch: sex has {len(sex)} values, expected {n}.")
        sex_values = tuple(normalize_sex(s) for s in sex)
    else:
        sex_values = None

    sex_map: Dict[str, Sex] = {}
    if sex_values is not None:
        rep.sex_checked = True
        for animal_id, s in zip(ped.ids, sex_values):
            if s is not Sex.UNKNOWN:
                sex_map[animal_id] = s

    founder_set = set()
    missing_sires, missing_dams = [], []
    mismatch_sire_ids, mismatch_dam_ids = [], []
    sire_progeny: Dict[str, int] = {}
    dam_progeny: Dict[str, int] = {}

    for animal_id, sire, dam in zip(ped.ids, ped.sires, ped.dams):
        has_sire = sire is not None
        has_dam = dam is not None

        if has_sire and has_dam:
            rep.with_both_parents += 1
        elif has_sire:
            rep.only_sire += 1
        elif has_dam:
            rep.only_dam += 1
        else:
            rep.founders += 1
            founder_set.add(animal_id)

        if sire == animal_id or dam == animal_id:
            rep.self_parent_count += 1

        if has_sire:
            sire_progeny[sire] = sire_progeny.get(sire, 0) + 1
            if sire not in id_set:
                missing_sires.append(sire)
            s = sex_map.get(sire)
            if s is not None and s is not Sex.MALE:
                rep.sex_mismatch_sire += 1
                mismatch_sire_ids.append(sire)
        if has_dam:
            dam_progeny[dam] = dam_progeny.get(dam, 0) + 1
            if dam not in id_set:
                missing_dams.append(dam)
            s = sex_map.get(dam)
            if s is not None and s is not Sex.FEMALE:
                rep.sex_mismatch_dam += 1
                mismatch_dam_ids.append(dam)

    rep.no_parents = rep.founders
    rep.missing_sires = _ordered(missing_sires)
    rep.missing_dams = _ordered(missing_dams)
    rep.sex_mismatch_sire_ids = _ordered(mismatch_sire_ids)
    rep.sex_mismatch_dam_ids = _ordered(mismatch_dam_ids)
    rep.dual_role_ids = [p for p in sire_progeny if p in dam_progeny]
    rep.sire_progeny = sire_progeny
    rep.dam_progeny = dam_progeny
    rep.founder_set = founder_set

    # --- статистика по родителям ---
    rep.unique_sires = len(sire_progeny)
    rep.unique_dams = len(dam_progeny)
    rep.total_sire_progeny = sum(sire_progeny.values())
    rep.total_dam_progeny = sum(dam_progeny.values())

    parents_in_set = {p for p in sire_progeny if p in id_set} | {
        p for p in dam_progeny if p in id_set
    }
    rep.individuals_with_progeny = len(parents_in_set)
    rep.individuals_without_progeny = n - rep.individuals_with_progeny

    founder_parents = {p for p in sire_progeny if p in founder_set} | {
        p for p in dam_progeny if p in founder_set
    }
    for pid, cnt in sire_progeny.items():
        if pid in founder_set:
            rep.founder_sires += 1
            rep.founder_sire_progeny += cnt
        else:
            rep.non_founder_sires += 1
            rep.non_founder_sire_progeny += cnt
    for pid, cnt in dam_progeny.items():
        if pid in founder_set:
            rep.founder_dams += 1
            rep.founder_dam_progeny += cnt
        else:
            rep.non_founder_dams += 1
            rep.non_founder_dam_progeny += cnt
    rep.founder_total_progeny = sum(
        1
        for sire, dam in zip(ped.sires, ped.dams)
        if (sire is not None and sire in founder_set) or (dam is not None and dam in founder_set)
    )
    rep.founder_no_progeny = rep.founders - len(founder_parents)

    if rep.duplicate_ids or rep.missing_sires or rep.missing_dams or rep.self_parent_count:
        LOGGER.warning(
            "QC: %d duplicate ids, %d missing sires, %d missing dams, %d self-parent records",
            len(rep.duplicate_ids), len(rep.missing_sires), len(rep.missing_dams),
            rep.self_parent_count,
        )
    return rep


def check_birth_date_order(ped: Pedigree, birth_dates: Sequence | None = None) -> BirthDateReport:
    """
    Потомок должен родиться строго позже каждого из родителей
    (равенство дат – тоже нарушение). Записи без даты пропускаются.
    """
    n = len(ped)
    if birth_dates is None:
        dates = ped.birth_dates
        if dates is None:
            raise ValueError("birth_dates are required: pass them or build the Pedigree with them")
    else:
        if len(birth_dates) != n:
            raise ShapeMismatchError(
                f"Length mismatch: birth_dates has {len(birth_dates)} values, expected {n}."
            )
        dates = pd.to_numeric(pd.Series(list(birth_dates), dtype=object), errors="coerce").to_numpy(
            dtype=np.float64
        )

    id_to_date: Dict[str, float] = {}
    for animal_id, d in zip(ped.ids, dates):
        if not np.isnan(d):
            id_to_date[animal_id] = float(d)

    rep = BirthDateReport()
    for animal_id, sire, dam in zip(ped.ids, ped.sires, ped.dams):
        own = id_to_date.get(animal_id)
        if own is None:
            continue
        bad_sire = bad_dam = None
        if sire is not None and sire in id_to_date and own <= id_to_date[sire]:
            bad_sire = sire
            rep.invalid_sire_count += 1
        if dam is not None and dam in id_to_date and own <= id_to_date[dam]:
            bad_dam = dam
            rep.invalid_dam_count += 1
        if bad_sire is not None or bad_dam is not None:
            rep.count += 1
            rep.invalid_offspring_ids.append(animal_id)
            rep.invalid_sire_ids.append(bad_sire)
            rep.invalid_dam_ids.append(bad_dam)

    if rep.count:
        LOGGER.warning("Birth-date order: %d offspring not younger than a parent", rep.count)
    return rep
