# rhdesk/services/trial_period.py
"""
Calculateur de période d'essai selon les règles légales françaises.

Fonctions pures : aucune lecture de l'horloge, aucune persistance. Une saisie
incomplète (date de début absente, date de fin absente pour un CDD, type de
contrat non géré) n'est pas une erreur : le calcul renvoie None.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Union
import calendar
import logging

from rhdesk.services.rules_store import load_rules_file, within_effective, to_int

logger = logging.getLogger("rhdesk")

DateLike = Union[str, date, datetime, None]

RULES_FILE = "code_travail/periode_essai.yml"

NO_TRIAL_PHRASE = "Aucune période d'essai"
NO_TRIAL_DESCRIPTION = f"{NO_TRIAL_PHRASE} (CDD < 1 semaine)"

KIND_COMPUTED = "computed"
KIND_NONE = "none"

# Valeurs légales de repli si le YAML est absent ou illisible
DEFAULT_RULES: Dict[str, Dict[str, Any]] = {
    "CDI": {
        "months": 2,
        "renewed_months": 4,
        "source_ref": "C. trav., L1221-19 et L1221-21",
        "bloc": "ordre_public",
    },
    "CDD": {
        "long_threshold_days": 180,
        "long_months": 1,
        "days_per_trial_day": 7,
        "max_days": 14,
        "source_ref": "C. trav., L1242-10",
        "bloc": "ordre_public",
    },
}


@dataclass(frozen=True)
class TrialPeriod:
    """Résultat du calcul.

    end_date est inclusive (dernier jour de l'essai). kind vaut "computed"
    pour un essai réel, "none" pour un CDD de moins d'une semaine : dans ce
    cas end_date est la date de début et rien ne doit être enregistré sur la
    fiche salarié.
    """
    end_date: date
    description: str
    kind: str = KIND_COMPUTED
    rule: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)

    @property
    def has_trial(self) -> bool:
        return self.kind == KIND_COMPUTED

    @property
    def end_date_iso(self) -> str:
        return self.end_date.isoformat()

    @property
    def end_date_fr(self) -> str:
        return format_date_fr(self.end_date)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "end_date": self.end_date_iso,
            "end_date_fr": self.end_date_fr,
            "description": self.description,
            "kind": self.kind,
            "has_trial": self.has_trial,
        }


# -------- arithmétique de dates --------

def parse_calendar_date(value: DateLike) -> Optional[date]:
    """date / datetime (tronquée au jour) / 'YYYY-MM-DD[T...]' -> date, sinon None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s.split("T")[0])
    except ValueError:
        return None


def _require_date(value: DateLike) -> date:
    d = parse_calendar_date(value)
    if d is None:
        raise ValueError(f"Date invalide: {value!r}")
    return d


def duration_in_days(start: DateLike, end: DateLike) -> int:
    """Écart absolu en jours entre deux dates calendaires (symétrique)."""
    return abs((_require_date(end) - _require_date(start)).days)


def add_months(start: DateLike, months: int) -> date:
    """Ajoute des mois ; le quantième est ramené au dernier jour du mois cible (31/01 + 1 mois = 28/02)."""
    d = _require_date(start)
    idx = d.month - 1 + int(months)
    year = d.year + idx // 12
    month = idx % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_months_minus_one_day(start: DateLike, months: int) -> date:
    """Ajoute des mois et retourne la veille. 01/09/2025 + 2 mois -> 31/10/2025."""
    return add_months(start, months) - timedelta(days=1)


def add_days_minus_one_day(start: DateLike, days: int) -> date:
    """Ajoute des jours et retourne la veille. 01/09/2025 + 14 jours -> 14/09/2025."""
    return _require_date(start) + timedelta(days=int(days) - 1)


def format_date_fr(value: DateLike) -> str:
    """Formate une date au format français DD/MM/YYYY ('' si absente ou invalide)."""
    d = parse_calendar_date(value)
    if d is None:
        return ""
    return f"{d.day:02d}/{d.month:02d}/{d.year:04d}"


# -------- règles --------

def load_trial_rule(contract_type: str, on: date) -> Dict[str, Any]:
    """Règle applicable au type de contrat à la date `on` : YAML prioritaire, défauts légaux sinon."""
    base = dict(DEFAULT_RULES.get(contract_type) or {})
    data = load_rules_file(RULES_FILE)
    for r in data.get("rules") or []:
        if not isinstance(r, dict):
            continue
        if str(r.get("contract_type") or "").strip().upper() != contract_type:
            continue
        if not within_effective(r, on):
            continue
        base.update({k: v for k, v in r.items() if v is not None})
        break
    return base


def _rule_meta(rule: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "source": "code_travail",
        "source_ref": rule.get("source_ref"),
        "bloc": rule.get("bloc"),
        "url": rule.get("url"),
        "effective": rule.get("effective"),
    }


def _cdi(start: date, renew: bool) -> TrialPeriod:
    rule = load_trial_rule("CDI", start)
    if renew:
        months = to_int(rule.get("renewed_months"), 4, minimum=1)
        description = f"{months} mois (renouvelée)"
    else:
        months = to_int(rule.get("months"), 2, minimum=1)
        description = f"{months} mois"
    return TrialPeriod(add_months_minus_one_day(start, months), description, rule=_rule_meta(rule))


def _cdd(start: date, end: date) -> TrialPeriod:
    rule = load_trial_rule("CDD", start)
    threshold = to_int(rule.get("long_threshold_days"), 180, minimum=1)
    duration = duration_in_days(start, end)

    # CDD de 6 mois ou plus
    if duration >= threshold:
        months = to_int(rule.get("long_months"), 1, minimum=1)
        return TrialPeriod(add_months_minus_one_day(start, months), f"{months} mois", rule=_rule_meta(rule))

    # Moins de 6 mois : 1 jour par semaine, plafonné
    per_day = to_int(rule.get("days_per_trial_day"), 7, minimum=1)
    cap = to_int(rule.get("max_days"), 14, minimum=1)
    trial_days = min(duration // per_day, cap)
    if trial_days < 1:
        return TrialPeriod(start, NO_TRIAL_DESCRIPTION, kind=KIND_NONE, rule=_rule_meta(rule))

    suffix = "s" if trial_days > 1 else ""
    return TrialPeriod(
        add_days_minus_one_day(start, trial_days),
        f"{trial_days} jour{suffix}",
        rule=_rule_meta(rule),
    )


def calculate_trial_end_date(
    contract_type: Optional[str],
    start_date: DateLike,
    end_date: DateLike = None,
    renew: bool = False,
) -> Optional[TrialPeriod]:
    """
    Calcule la date de fin de période d'essai selon le type de contrat.

    - contract_type : "CDI", "CDD" (insensible à la casse) ; autre => None
    - start_date    : date de début (YYYY-MM-DD) ; absente => None
    - end_date      : date de fin, obligatoire pour un CDD ; absente => None
    - renew         : CDI uniquement, 4 mois au lieu de 2
    """
    start = parse_calendar_date(start_date)
    if start is None:
        logger.warning("Date de début manquante ou invalide (%r)", start_date)
        return None

    upper_type = str(contract_type or "").strip().upper()
    try:
        if upper_type == "CDI":
            return _cdi(start, bool(renew))

        if upper_type == "CDD":
            end = parse_calendar_date(end_date)
            if end is None:
                logger.warning("Date de fin manquante ou invalide pour un CDD (%r)", end_date)
                return None
            return _cdd(start, end)
    except (OverflowError, ValueError) as e:
        # dates hors calendrier (année > 9999 après ajout)
        logger.warning("Calcul de période d'essai impossible (%s)", e)
        return None

    logger.warning("Type de contrat non géré: %s", contract_type)
    return None
