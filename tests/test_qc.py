from pedqc import Pedigree, check_birth_date_order, pedigree_qc
from .fixtures import full_sibs, ped


def test_counts_full_sibs():
    rep = pedigree_qc(ped(full_sibs))
    assert rep.total == 5
    assert rep.founders == rep.no_parents == 2
    assert rep.with_both_parents == 3
    assert rep.only_sire == rep.only_dam == 0
    assert rep.self_parent_count == 0
    assert rep.duplicate_ids == rep.missing_sires == rep.missing_dams == []
    assert rep.sire_progeny == {"S": 2, "A": 1}
    assert rep.dam_progeny == {"D": 2, "B": 1}
    assert rep.unique_sires == rep.unique_dams == 2
    assert rep.total_sire_progeny == rep.total_dam_progeny == 3
    assert rep.individuals_with_progeny == 4
    assert rep.individuals_without_progeny == 1
    assert rep.founder_sires == rep.founder_dams == 1
    assert rep.founder_sire_progeny == rep.founder_dam_progeny == 2
    assert rep.founder_total_progeny == 2
    assert rep.founder_no_progeny == 0
    assert rep.non_founder_sires == rep.non_founder_dams == 1
    assert rep.non_founder_sire_progeny == rep.non_founder_dam_progeny == 1
    # пол проверен и всё сходится
    assert rep.sex_checked
    assert rep.sex_mismatch_sire == rep.sex_mismatch_dam == 0


def test_missing_parent_vs_absent_record():
    p = Pedigree(["A", "B", "C", "D"], ["Z", "0", "", "A"], ["NA", "Y", "0", "Z"])
    rep = pedigree_qc(p)
    assert rep.missing_sires == ["Z"]
    assert rep.missing_dams == ["Y", "Z"]
    assert rep.only_sire == 1 and rep.only_dam == 1 and rep.with_both_parents == 1
    assert rep.founders == 1


def test_dual_role():
    p = Pedigree(
        ["X", "W", "K1", "K2", "K3"],
        ["0", "0", "X", "W", "W"],
        ["0", "0", "W", "X", "0"],
    )
    rep = pedigree_qc(p)
    assert rep.dual_role_ids == ["X", "W"]

    p = Pedigree(["X", "W", "K1"], ["0", "0", "X"], ["0", "0", "W"])
    assert pedigree_qc(p).dual_role_ids == []


def test_self_parent_and_duplicates():
    p = Pedigree(["X", "Y", "Y", "Z"], ["X", "0", "0", "0"], ["0", "0", "0", "Z"])
    rep = pedigree_qc(p)
    assert rep.self_parent_count == 2
    assert rep.duplicate_ids == ["Y"]
    # QC не падает на таких данных
    assert rep.total == 4


def test_sex_mismatch():
    p = Pedigree(
        ["M1", "F1", "K1", "K2", "K3"],
        ["0", "0", "F1", "F1", "M1"],
        ["0", "0", "M1", "F1", "F1"],
    )
    rep = pedigree_qc(p, sex=["Male", "female", "U", "", "1"])
    assert rep.sex_checked
    assert rep.sex_mismatch_sire == 2
    assert rep.sex_mismatch_sire_ids == ["F1"]
    assert rep.sex_mismatch_dam == 1
    assert rep.sex_mismatch_dam_ids == ["M1"]


def test_no_sex_no_check():
    rep = pedigree_qc(Pedigree(["A"], ["0"], ["0"]))
    assert not rep.sex_checked


def test_summary_and_progeny_frame():
    rep = pedigree_qc(ped(full_sibs))
    s = rep.summary()
    assert s["total"] == 5
    assert s["n_missing_sires"] == 0
    df = rep.progeny_frame()
    assert set(df["role"]) == {"sire", "dam"}
    assert df["progeny"].sum() == 6
    assert list(df.columns) == ["parent_id", "role", "progeny", "founder"]
    founder = dict(zip(df["parent_id"], df["founder"]))
    assert founder == {"S": True, "A": False, "D": True, "B": False}
    # множество основателей не попадает в скалярную сводку
    assert "n_founder_set" not in s.index


def test_birth_date_order():
    p = Pedigree(
        ["S", "D", "A", "B", "C"],
        ["0", "0", "S", "S", "A"],
        ["0", "0", "D", "D", "B"],
        birth_dates=[2000, 2001, 2005, 2001, None],
    )
    rep = check_birth_date_order(p)
    # B родилась в один год с матерью – нарушение; у C нет даты
    assert rep.count == 1
    assert rep.invalid_sire_count == 0
    assert rep.invalid_dam_count == 1
    assert rep.invalid_offspring_ids == ["B"]
    assert rep.invalid_sire_ids == [None]
    assert rep.invalid_dam_ids == ["D"]
    assert rep.to_frame().shape == (1, 3)


def test_birth_date_both_parents():
    p = Pedigree(["S", "D", "A"], ["0", "0", "S"], ["0", "0", "D"])
    rep = check_birth_date_order(p, birth_dates=[10.0, 12.0, 9.5])
    assert rep.count == 1
    assert rep.invalid_sire_count == rep.invalid_dam_count == 1
    assert rep.invalid_offspring_ids == ["A"]
