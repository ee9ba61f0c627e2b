"""
Родословная: нормализованные записи (id, отец, мать[, пол, дата рождения]).

Порядок записей значим: индекс записи используется во всех модулях как
ключ сортировки и как номер узла графа. Производные структуры строятся
лениво и кешируются; сама родословная после создания не меняется.
"""
from __future__ import annotations
import enum
import logging
from functools import cached_property
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

LOGGER = logging.getLogger(__name__)

MISSING_VALUES: Tuple[str, ...] = ("", "0", "NA")


class PedigreeError(ValueError):
    """Базовая ошибка пакета."""


class ShapeMismatchError(PedigreeError):
    pass


class DuplicateIdError(PedigreeError):
    def __init__(self, animal_id: str):
        super().__init__(f"Duplicate ID found in pedigree: {animal_id}")
        self.id = animal_id


class CycleError(PedigreeError, RuntimeError):
    pass


class Sex(enum.Enum):
    MALE = "M"
    FEMALE = "F"
    UNKNOWN = "U"


_MALE = {"m", "male", "1"}
_FEMALE = {"f", "female", "2"}


def _is_na(token) -> bool:
    if token is None:
        return True
    try:
        return bool(pd.isna(token))
    except (TypeError, ValueError):
        return False


def _token_text(token) -> str:
    # 1.0 -> "1": целые id из float-колонок pandas (NaN делает int-колонку float)
    if isinstance(token, (float, np.floating)) and float(token).is_integer():
        return str(int(token))
    return str(token)


def is_missing_parent(
    token,
    missing_values: Iterable[str] = MISSING_VALUES,
    strip: bool = True,
) -> bool:
    """True, если ссылка на родителя означает «родитель неизвестен»."""
    if _is_na(token):
        return True
    text = _token_text(token)
    if strip:
        text = text.strip()
    return text in missing_values


def normalize_sex(value) -> Sex:
    if _is_na(value):
        return Sex.UNKNOWN
    text = str(value).strip().lower()
    if text in _MALE:
        return Sex.MALE
    if text in _FEMALE:
        return Sex.FEMALE
    return Sex.UNKNOWN


class Pedigree:
    """
    Неизменяемая родословная.

    ``sires`` / ``dams`` хранятся уже нормализованными: ``None`` для
    неизвестного родителя, иначе строка (с обрезанными пробелами при
    ``strip=True``). Ссылка на животное, которого нет среди ``ids``,
    сохраняется как есть: QC сообщает о ней как о «missing parent».
    """

    def __init__(
        self,
        ids: Sequence,
        sires: Sequence,
        dams: Sequence,
        sex: Sequence | None = None,
        birth_dates: Sequence | None = None,
        *,
        missing_values: Iterable[str] = MISSING_VALUES,
        strip: bool = True,
    ):
        n = len(ids)
        if len(sires) != n or len(dams) != n:
            raise ShapeMismatchError(
                "Length mismatch: ids, sires, and dams must have same length "
                f"({n}, {len(sires)}, {len(dams)})."
            )
        if sex is not None and len(sex) != n:
            raise ShapeMismatchError(f"Length mismatch: sex has {len(sex)} values, expected {n}.")
        if birth_dates is not None and len(birth_dates) != n:
            raise ShapeMismatchError(
                f"Length mismatch: birth_dates has {len(birth_dates)} values, expected {n}."
            )

        self.missing_values = tuple(missing_values)
        self.strip = strip

        id_list = []
        for animal_id in ids:
            if _is_na(animal_id):
                raise PedigreeError("IDs cannot contain NA values.")
            id_list.append(_token_text(animal_id))
        self.ids: Tuple[str, ...] = tuple(id_list)
        self.sires: Tuple[str | None, ...] = tuple(self._parent_token(p) for p in sires)
        self.dams: Tuple[str | None, ...] = tuple(self._parent_token(p) for p in dams)
        self.sex: Tuple[Sex, ...] | None = (
            None if sex is None else tuple(normalize_sex(s) for s in sex)
        )
        if birth_dates is None:
            self.birth_dates = None
        else:
            dates = pd.to_numeric(pd.Series(list(birth_dates), dtype=object), errors="coerce")
            self.birth_dates = _frozen(dates.to_numpy(dtype=np.float64))

    def _parent_token(self, token) -> str | None:
        if is_missing_parent(token, self.missing_values, self.strip):
            return None
        text = _token_text(token)
        return text.strip() if self.strip else text

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        id_col: str = "id",
        sire_col: str = "sire",
        dam_col: str = "dam",
        sex_col: str | None = None,
        birth_col: str | None = None,
        **kwargs,
    ) -> "Pedigree":
        for col in (id_col, sire_col, dam_col, sex_col, birth_col):
            if col is not None and col not in df.columns:
                raise PedigreeError(f"Missing required column: {col}")
        return cls(
            df[id_col].tolist(),
            df[sire_col].tolist(),
            df[dam_col].tolist(),
            sex=None if sex_col is None else df[sex_col].tolist(),
            birth_dates=None if birth_col is None else df[birth_col].tolist(),
            **kwargs,
        )

    def __len__(self) -> int:
        return len(self.ids)

    def __repr__(self) -> str:
        return f"Pedigree(n={len(self)})"

    def is_missing_parent(self, token) -> bool:
        return is_missing_parent(token, self.missing_values, self.strip)

    # ------------------------------------------------------------------ #
    # ленивые индексы
    # ------------------------------------------------------------------ #
    @cached_property
    def id_index(self) -> Dict[str, List[int]]:
        """id → все позиции (дубликаты сохраняются)."""
        index: Dict[str, List[int]] = {}
        for i, animal_id in enumerate(self.ids):
            index.setdefault(animal_id, []).append(i)
        return index

    @cached_property
    def first_index(self) -> Dict[str, int]:
        return {animal_id: pos[0] for animal_id, pos in self.id_index.items()}

    @cached_property
    def duplicate_ids(self) -> List[str]:
        # в порядке появления второго вхождения
        seen: Dict[str, int] = {}
        dups = []
        for animal_id in self.ids:
            seen[animal_id] = seen.get(animal_id, 0) + 1
            if seen[animal_id] == 2:
                dups.append(animal_id)
        return dups

    def _resolve(self, parents: Tuple[str | None, ...]) -> np.ndarray:
        lookup = self.first_index
        idx = np.array(
            [-1 if p is None else lookup.get(p, -1) for p in parents], dtype=np.int64
        )
        return _frozen(idx)

    @cached_property
    def sire_index(self) -> np.ndarray:
        """Позиция отца (первое вхождение id) или -1."""
        return self._resolve(self.sires)

    @cached_property
    def dam_index(self) -> np.ndarray:
        return self._resolve(self.dams)

    @cached_property
    def has_sire(self) -> np.ndarray:
        return _frozen(np.array([s is not None for s in self.sires], dtype=bool))

    @cached_property
    def has_dam(self) -> np.ndarray:
        return _frozen(np.array([d is not None for d in self.dams], dtype=bool))

    @cached_property
    def is_founder(self) -> np.ndarray:
        """Нет ни одного известного родителя внутри родословной."""
        return _frozen((self.sire_index < 0) & (self.dam_index < 0))

    @cached_property
    def children(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        CSR-список потомков по разрешённым ссылкам: потомки узла ``p`` –
        ``child_idx[child_ptr[p]:child_ptr[p + 1]]``, в порядке записей.
        """
        n = len(self)
        counts = np.zeros(n + 1, dtype=np.int64)
        for parents in (self.sire_index, self.dam_index):
            known = parents[parents >= 0]
            np.add.at(counts, known + 1, 1)
        child_ptr = np.cumsum(counts)
        child_idx = np.empty(child_ptr[-1], dtype=np.int64)
        fill = child_ptr[:-1].copy()
        for i in range(n):
            for p in (self.sire_index[i], self.dam_index[i]):
                if p >= 0:
                    child_idx[fill[p]] = i
                    fill[p] += 1
        return _frozen(child_ptr), _frozen(child_idx)

    def to_frame(self) -> pd.DataFrame:
        data = {
            "id": list(self.ids),
            # object, чтобы None не превращался в NaN при выводе типа строк
            "sire": pd.Series(self.sires, dtype=object),
            "dam": pd.Series(self.dams, dtype=object),
        }
        if self.sex is not None:
            data["sex"] = [s.value for s in self.sex]
        if self.birth_dates is not None:
            data["birth_date"] = self.birth_dates
        return pd.DataFrame(data)


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr
