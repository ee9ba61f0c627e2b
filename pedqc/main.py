#!/usr/bin/env python3
"""
CLI‑обёртка: проверить родословную и сохранить таблицы в каталог.

Примеры:
    python -m pedqc.main --pedigree pedigree.csv
    python -m pedqc.main --pedigree ped.tsv --sep "\t" --sex_col sex --out_dir report
"""
from __future__ import annotations
import argparse
import json
from pathlib import Path

from .analysis import analyze_pedigree, load_pedigree


def _parse(argv=None):
    p = argparse.ArgumentParser("pedigree qc")
    p.add_argument("--pedigree", required=True, help="таблица id, sire, dam[, sex, birth_date]")
    p.add_argument("--out_dir", default="pedqc_report")
    p.add_argument("--sep", default=",")
    p.add_argument("--id_col", default="id")
    p.add_argument("--sire_col", default="sire")
    p.add_argument("--dam_col", default="dam")
    p.add_argument("--sex_col", default=None)
    p.add_argument("--birth_col", default=None, help="дата рождения числом (дни, годы …)")
    p.add_argument("--role", choices=["sire", "dam"], default="sire",
                   help="по какой роли считать сводку потомков")
    p.add_argument("--max_depth", type=int, default=50, help="поколений в сводке потомков")
    p.add_argument("--lap_max_depth", type=int, default=20, help="корзин в распределении LAP")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--progress", action="store_true")
    return p.parse_args(argv)


def main(argv=None):
    args = _parse(argv)
    sep = args.sep.encode().decode("unicode_escape")

    ped = load_pedigree(
        args.pedigree,
        id_col=args.id_col,
        sire_col=args.sire_col,
        dam_col=args.dam_col,
        sex_col=args.sex_col,
        birth_col=args.birth_col,
        sep=sep,
    )
    res = analyze_pedigree(
        ped,
        role=args.role,
        max_depth=args.max_depth,
        lap_max_depth=args.lap_max_depth,
        seed=args.seed,
        progress=args.progress,
    )

    out = Path(args.out_dir)
    out.mkdir(parents=True, exist_ok=True)
    qc = res["qc"]
    qc.summary().to_csv(out / "qc_summary.csv", header=True)
    qc.progeny_frame().to_csv(out / "progeny.csv", index=False)
    anomalies = {
        "duplicate_ids": qc.duplicate_ids,
        "missing_sires": qc.missing_sires,
        "missing_dams": qc.missing_dams,
        "dual_role_ids": qc.dual_role_ids,
        "sex_mismatch_sire_ids": qc.sex_mismatch_sire_ids,
        "sex_mismatch_dam_ids": qc.sex_mismatch_dam_ids,
        "cycles": res["cycles"].cycles,
        "deepest": res["deepest"]._asdict(),
    }
    (out / "anomalies.json").write_text(json.dumps(anomalies, indent=2, ensure_ascii=False))
    if "birth_dates" in res:
        res["birth_dates"].to_frame().to_csv(out / "birth_date_violations.csv", index=False)
    res["depths"].to_csv(out / "depths.csv", header=True)
    res["lap_distribution"].to_csv(out / "lap_distribution.csv", header=True)
    res["descendants"].to_frame().to_csv(out / f"descendants_{args.role}.csv", header=True)
    if res["inbreeding"] is not None:
        res["inbreeding"].to_csv(out / "inbreeding.csv", header=True)

    print(f"✅  Saved report for {len(ped)} animals → {out}")


if __name__ == "__main__":
    main()
