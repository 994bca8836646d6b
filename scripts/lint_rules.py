#!/usr/bin/env python3
import argparse
from pathlib import Path
from datetime import date
import yaml

ROOT = Path(__file__).resolve().parents[1]
RULES = ROOT / "rules"

KNOWN_CONTRACT_TYPES = {"CDI", "CDD"}


def load_yaml(p: Path):
    try:
        return yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as e:
        print(f"[ERR] YAML invalide: {p}: {e}")
        return None


def _is_int(x):
    return isinstance(x, int) and not isinstance(x, bool)


def _is_iso_date(s) -> bool:
    try:
        date.fromisoformat(str(s))
        return True
    except ValueError:
        return False


def _check_effective(p: Path, i: int, r: dict) -> bool:
    ok = True
    eff = r.get("effective") or {}
    if not isinstance(eff, dict):
        print(f"[ERR] {p}: rule#{i} 'effective' doit être un objet")
        return False
    for k in ("from", "to"):
        v = eff.get(k)
        if v is not None and not _is_iso_date(v):
            print(f"[ERR] {p}: rule#{i} effective.{k} non‑ISO: {v}")
            ok = False
    return ok


def check_periode_essai(p: Path, data) -> bool:
    if not isinstance(data, dict):
        print(f"[ERR] {p}: objet attendu (meta / rules)")
        return False
    rules = data.get("rules") or []
    if not isinstance(rules, list):
        print(f"[ERR] {p}: 'rules' doit être une liste")
        return False
    ok = True
    int_keys = {
        "CDI": ("months", "renewed_months"),
        "CDD": ("long_threshold_days", "long_months", "days_per_trial_day", "max_days"),
    }
    for i, r in enumerate(rules):
        if not isinstance(r, dict):
            print(f"[ERR] {p}: rule#{i} doit être un objet")
            ok = False
            continue
        ct = str(r.get("contract_type") or "").strip().upper()
        if ct not in KNOWN_CONTRACT_TYPES:
            print(f"[ERR] {p}: rule#{i} contract_type inconnu: {r.get('contract_type')!r}")
            ok = False
            continue
        ok = _check_effective(p, i, r) and ok
        for k in int_keys[ct]:
            v = r.get(k)
            if v is not None and (not _is_int(v) or v < 1):
                print(f"[ERR] {p}: rule#{i} {k} doit être un entier ≥ 1, trouvé {v!r}")
                ok = False
        if ct == "CDI":
            m, rm = r.get("months"), r.get("renewed_months")
            if _is_int(m) and _is_int(rm) and rm < m:
                print(f"[ERR] {p}: rule#{i} renewed_months < months")
                ok = False
        if not r.get("source_ref"):
            print(f"[WARN] {p}: rule#{i} sans source_ref")
    return ok


def check_notifications(p: Path, data) -> bool:
    if not isinstance(data, dict):
        print(f"[ERR] {p}: objet attendu")
        return False
    ok = True
    u = data.get("urgency") or {}
    crit, urg = u.get("critical_days"), u.get("urgent_days")
    for k, v in (("critical_days", crit), ("urgent_days", urg)):
        if v is not None and not _is_int(v):
            print(f"[ERR] {p}: urgency.{k} doit être un entier")
            ok = False
    if _is_int(crit) and _is_int(urg) and crit > urg:
        print(f"[ERR] {p}: urgency.critical_days > urgency.urgent_days")
        ok = False
    types = data.get("types") or {}
    if not isinstance(types, dict):
        print(f"[ERR] {p}: 'types' doit être un objet type -> libellé")
        ok = False
    else:
        for k, v in types.items():
            if not isinstance(v, str) or not v.strip():
                print(f"[ERR] {p}: types.{k} libellé vide")
                ok = False
    return ok


def run(rules_dir: Path = RULES) -> bool:
    ok = True
    for p in sorted(rules_dir.rglob("*.yml")):
        data = load_yaml(p)
        if data is None:
            ok = False
            continue
        if p.name == "periode_essai.yml":
            ok = check_periode_essai(p, data) and ok
        if p.name == "notifications.yml":
            ok = check_notifications(p, data) and ok
    return ok


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Contrôle de structure des fichiers de règles YAML")
    ap.add_argument("--rules-dir", type=Path, default=RULES, help="dossier des règles (défaut: ./rules)")
    args = ap.parse_args(argv)
    return 0 if run(args.rules_dir) else 1


if __name__ == "__main__":
    raise SystemExit(main())
