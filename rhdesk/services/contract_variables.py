# rhdesk/services/contract_variables.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
import html
import re

from rhdesk.services.trial_period import (
    DateLike,
    TrialPeriod,
    calculate_trial_end_date,
)

PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

# Variables de modèle qui déclenchent le calcul de la période d'essai
TRIAL_DESCRIPTION_VAR = "periode_essai"
TRIAL_END_VARS = ("date_fin_periode_essai", "trial_end_date", "contract.trial_end_date")
TRIAL_PLACEHOLDERS = frozenset((TRIAL_DESCRIPTION_VAR,) + TRIAL_END_VARS)

# Colonne "fin de période d'essai" de la fiche salarié (profil)
EMPLOYEE_TRIAL_END_FIELD = "periode_essai"


@dataclass
class TrialInjection:
    """Ce que le calcul apporte à l'envoi d'un contrat.

    variables       : à fusionner dans les variables du contrat (dates au format DD/MM/YYYY)
    employee_update : à écrire sur la fiche salarié (date ISO), vide si rien à enregistrer
    """
    result: Optional[TrialPeriod] = None
    declared: bool = False
    variables: Dict[str, str] = field(default_factory=dict)
    employee_update: Dict[str, str] = field(default_factory=dict)


def extract_template_variables(text: Optional[str]) -> List[str]:
    """Variables {{nom}} présentes dans le texte, triées et sans doublon."""
    names = {m.group(1).strip() for m in PLACEHOLDER_RE.finditer(text or "")}
    return sorted(n for n in names if n)


def declares_trial_period(text: Optional[str]) -> bool:
    return any(name in TRIAL_PLACEHOLDERS for name in extract_template_variables(text))


def prepare_trial_variables(
    template_text: Optional[str],
    contract_type: Optional[str],
    start_date: DateLike,
    end_date: DateLike = None,
    renew: bool = False,
) -> TrialInjection:
    """
    Calcule la période d'essai seulement si le modèle la mentionne.

    - résultat None           : aucune variable injectée
    - essai nul (CDD < 7 j)   : description seule, pour affichage ; fiche salarié inchangée
    - essai calculé           : description + date de fin (DD/MM/YYYY) ; date ISO pour la fiche
    """
    if not declares_trial_period(template_text):
        return TrialInjection()

    result = calculate_trial_end_date(contract_type, start_date, end_date, renew)
    if result is None:
        return TrialInjection(declared=True)

    variables = {TRIAL_DESCRIPTION_VAR: result.description}
    if not result.has_trial:
        return TrialInjection(result=result, declared=True, variables=variables)

    for name in TRIAL_END_VARS:
        variables[name] = result.end_date_fr
    return TrialInjection(
        result=result,
        declared=True,
        variables=variables,
        employee_update={EMPLOYEE_TRIAL_END_FIELD: result.end_date_iso},
    )


def merge_variables(base: Optional[Mapping[str, Any]], injection: TrialInjection) -> Dict[str, Any]:
    """Variables saisies + variables calculées (les calculées priment).

    Essai nul : une date de fin saisie par ailleurs est retirée.
    """
    out: Dict[str, Any] = dict(base or {})
    if injection.result is not None and not injection.result.has_trial:
        for name in TRIAL_END_VARS:
            out.pop(name, None)
    out.update(injection.variables)
    return out


def render_contract_text(
    text: Optional[str],
    variables: Optional[Mapping[str, Any]],
    escape: bool = False,
) -> str:
    """
    Remplace chaque {{clé}} (ou {{ clé }}) par sa valeur.
    None => chaîne vide ; variable inconnue => placeholder laissé tel quel.
    escape=True échappe les valeurs pour un modèle HTML.
    """
    values = variables or {}

    def _sub(m: re.Match) -> str:
        key = m.group(1).strip()
        if key not in values:
            return m.group(0)
        v = values[key]
        s = "" if v is None else str(v)
        return html.escape(s) if escape else s

    return PLACEHOLDER_RE.sub(_sub, text or "")
