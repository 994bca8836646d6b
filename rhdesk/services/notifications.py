# rhdesk/services/notifications.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from rhdesk.services.rules_store import load_rules_file, to_int
from rhdesk.services.trial_period import DateLike, parse_calendar_date

RULES_FILE = "notifications.yml"

NOTIFICATION_TYPES = (
    "titre_sejour",
    "visite_medicale",
    "permis_conduire",
    "contrat_cdd",
    "avenant_1",
    "avenant_2",
)
STATUSES = ("active", "email_envoye", "resolue", "ignoree")

CLOSED_STATUSES = frozenset({"resolue", "ignoree"})
# Une notification déjà traitée l'emporte sur un doublon encore "active"
HANDLED_STATUSES = frozenset({"email_envoye"}) | CLOSED_STATUSES

FALLBACK_LABELS = {
    "titre_sejour": "Titre de séjour",
    "visite_medicale": "Visite médicale",
    "permis_conduire": "Permis de conduire",
    "contrat_cdd": "Contrat CDD",
    "avenant_1": "Avenant 1",
    "avenant_2": "Avenant 2",
}


def _config() -> Dict[str, Any]:
    return load_rules_file(RULES_FILE)


def urgency_thresholds() -> Dict[str, int]:
    u = _config().get("urgency") or {}
    if not isinstance(u, dict):
        u = {}
    return {
        "critical_days": to_int(u.get("critical_days"), 7),
        "urgent_days": to_int(u.get("urgent_days"), 15),
    }


def type_label(notif_type: Optional[str]) -> str:
    labels = _config().get("types") or {}
    if not isinstance(labels, dict):
        labels = {}
    key = notif_type or ""
    return labels.get(key) or FALLBACK_LABELS.get(key) or key


def days_remaining(due: DateLike, today: date) -> Optional[int]:
    """Jours avant l'échéance (négatif si dépassée) ; None si l'échéance est illisible."""
    d = parse_calendar_date(due)
    if d is None:
        return None
    return (d - today).days


def urgency_level(due: DateLike, today: date) -> str:
    """'critical' (≤ 7 j), 'urgent' (≤ 15 j) ou 'warning'."""
    days = days_remaining(due, today)
    if days is None:
        return "warning"
    t = urgency_thresholds()
    if days <= t["critical_days"]:
        return "critical"
    if days <= t["urgent_days"]:
        return "urgent"
    return "warning"


def _dedup_key(n: Mapping[str, Any]):
    due = parse_calendar_date(n.get("date_echeance"))
    return (n.get("profil_id"), n.get("type"), due.isoformat() if due else n.get("date_echeance"))


def _rank(n: Mapping[str, Any]):
    return (1 if n.get("statut") in HANDLED_STATUSES else 0, str(n.get("created_at") or ""))


def deduplicate(items: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Une notification par (salarié, type, échéance), ordre de première apparition conservé."""
    best: Dict[Any, Mapping[str, Any]] = {}
    for n in items:
        k = _dedup_key(n)
        if k not in best or _rank(n) > _rank(best[k]):
            best[k] = n
    return list(best.values())


def _matches_search(n: Mapping[str, Any], search: str) -> bool:
    if not search:
        return True
    s = search.strip().lower()
    if not s:
        return True
    profil = n.get("profil") or {}
    return any(s in str(profil.get(f) or "").lower() for f in ("nom", "prenom", "email"))


def filter_notifications(
    items: Iterable[Mapping[str, Any]],
    notif_type: Optional[str] = None,
    statut: str = "all",
    search: str = "",
) -> List[Mapping[str, Any]]:
    out = []
    for n in items:
        if notif_type and n.get("type") != notif_type:
            continue
        if statut and statut != "all" and n.get("statut") != statut:
            continue
        if not _matches_search(n, search):
            continue
        out.append(n)
    return out


def tab_counts(items: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
    """Notifications ouvertes (ni résolues ni ignorées) par type ; tous les types connus présents."""
    counts = {t: 0 for t in NOTIFICATION_TYPES}
    for n in items:
        if n.get("statut") in CLOSED_STATUSES:
            continue
        t = n.get("type")
        counts[t] = counts.get(t, 0) + 1
    return counts


def sort_by_due_date(items: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    # échéances illisibles en fin de liste
    def key(n):
        d = parse_calendar_date(n.get("date_echeance"))
        return (d is None, d or date.max)
    return sorted(items, key=key)


def triage(
    items: Iterable[Mapping[str, Any]],
    today: date,
    notif_type: Optional[str] = None,
    statut: str = "all",
    search: str = "",
) -> Dict[str, Any]:
    """Dédoublonne, compte par onglet, filtre, trie et annote (jours restants, urgence, libellé)."""
    unique = deduplicate(items)
    counts = tab_counts(unique)
    selected = sort_by_due_date(filter_notifications(unique, notif_type, statut, search))
    annotated = []
    for n in selected:
        row = dict(n)
        row["days_remaining"] = days_remaining(n.get("date_echeance"), today)
        row["urgency"] = urgency_level(n.get("date_echeance"), today)
        row["type_label"] = type_label(n.get("type"))
        annotated.append(row)
    return {"items": annotated, "counts": counts}
