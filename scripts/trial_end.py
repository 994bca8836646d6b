#!/usr/bin/env python3
"""Calcule une fin de période d'essai en ligne de commande.

  trial_end.py CDI 2025-09-01
  trial_end.py CDI 2025-09-01 --renew
  trial_end.py CDD 2025-09-01 --end 2025-09-08 --json
"""
import argparse
import json
import sys

from rhdesk.services.trial_period import calculate_trial_end_date


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Fin de période d'essai (CDI/CDD)")
    ap.add_argument("contract_type", help="CDI ou CDD")
    ap.add_argument("start", help="date de début YYYY-MM-DD")
    ap.add_argument("--end", default=None, help="date de fin (obligatoire pour un CDD)")
    ap.add_argument("--renew", action="store_true", help="CDI : période renouvelée (4 mois)")
    ap.add_argument("--json", action="store_true", help="sortie JSON")
    args = ap.parse_args(argv)

    res = calculate_trial_end_date(args.contract_type, args.start, args.end, args.renew)
    if res is None:
        print("[ERR] calcul impossible (type non géré ou date manquante)", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(res.to_dict(), ensure_ascii=False))
    elif res.has_trial:
        print(f"{res.description}, fin le {res.end_date_fr}")
    else:
        print(res.description)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
