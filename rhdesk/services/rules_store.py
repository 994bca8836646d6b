# rhdesk/services/rules_store.py
from __future__ import annotations

from pathlib import Path
from datetime import date
from typing import Any, Dict, Optional
from functools import lru_cache
import logging
import os

import yaml

logger = logging.getLogger("rhdesk")

# Dossiers
APP_DIR = Path(__file__).resolve().parents[1]   # .../rhdesk
RULES_DIR = Path(os.getenv("RHDESK_RULES_DIR") or (APP_DIR.parent / "rules"))


def _mtime(p: Path) -> float:
    try:
        return p.stat().st_mtime
    except OSError:
        return 0.0


@lru_cache(maxsize=64)
def _load_yaml_cached(path_str: str, mtime: float) -> Dict[str, Any]:
    p = Path(path_str)
    if not p.exists():
        return {}
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except Exception as e:
        logger.warning("YAML illisible %s (%s), valeurs par défaut", p, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("YAML inattendu %s (objet attendu, reçu %s)", p, type(data).__name__)
        return {}
    return data


def load_rules_file(rel_path: str, rules_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Chargement YAML avec cache (clé: chemin + mtime). Fichier absent/invalide => {}."""
    p = Path(rules_dir or RULES_DIR) / rel_path
    return _load_yaml_cached(str(p), _mtime(p))


def _parse_date(s: Any) -> Optional[date]:
    if not s:
        return None
    if isinstance(s, date):
        return s
    try:
        return date.fromisoformat(str(s).strip())
    except ValueError:
        return None


def within_effective(rule: Dict[str, Any], d: date) -> bool:
    """Vérifie si la règle est applicable à la date d (bornes incluses)."""
    eff = rule.get("effective") or {}
    if not isinstance(eff, dict):
        return True
    f = _parse_date(eff.get("from"))
    t = _parse_date(eff.get("to"))
    if f and d < f:
        return False
    if t and d > t:
        return False
    return True


def to_int(val: Any, default: int, minimum: Optional[int] = None) -> int:
    """Convertit vers int ; valeur absente, illisible ou sous le minimum => default."""
    if val is None or isinstance(val, bool):
        return default
    try:
        out = int(str(val).strip())
    except (TypeError, ValueError):
        return default
    if minimum is not None and out < minimum:
        return default
    return out
