# rhdesk/schemas.py
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, Field


class _RHBase(BaseModel):
    model_config = ConfigDict(extra='allow')  # accepte des clés non déclarées


class RuleMeta(_RHBase):
    source: Optional[str] = None
    source_ref: Optional[str] = None
    bloc: Optional[str] = None
    url: Optional[str] = None
    effective: Optional[Dict[str, Any]] = None


# ---- Période d'essai
class TrialPeriodPayload(_RHBase):
    end_date: str
    end_date_fr: str
    description: str
    kind: str = "computed"
    has_trial: bool = True


class TrialEndResponse(_RHBase):
    applicable: bool = False
    result: Optional[TrialPeriodPayload] = None
    rule: Optional[RuleMeta] = None


# ---- Variables de contrat
class ContractVariablesRequest(_RHBase):
    template_text: str = ""
    contract_type: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    renew: bool = False
    variables: Dict[str, Any] = Field(default_factory=dict)


class ContractVariablesResponse(_RHBase):
    trial_declared: bool = False
    variables: Dict[str, Any] = Field(default_factory=dict)
    employee_update: Dict[str, Any] = Field(default_factory=dict)
    trial: Optional[TrialPeriodPayload] = None
    missing: List[str] = Field(default_factory=list)


class ContractPreviewRequest(ContractVariablesRequest):
    title: Optional[str] = None
    format: str = "html"  # "html" | "pdf"


class ContractSignatureRequest(ContractVariablesRequest):
    title: Optional[str] = None
    contract_id: Optional[str] = None
    employee_name: str
    employee_email: str


# ---- Notifications d'échéance
class NotificationProfile(_RHBase):
    prenom: Optional[str] = None
    nom: Optional[str] = None
    email: Optional[str] = None


class NotificationItem(_RHBase):
    id: Optional[str] = None
    type: str
    profil_id: Optional[str] = None
    date_echeance: str
    date_notification: Optional[str] = None
    statut: str = "active"
    email_envoye_at: Optional[str] = None
    metadata: Optional[Any] = None
    created_at: Optional[str] = None
    profil: Optional[NotificationProfile] = None


class NotificationTriageRequest(_RHBase):
    items: List[NotificationItem] = Field(default_factory=list)
    today: Optional[str] = None
    type: Optional[str] = None
    statut: str = "all"
    search: str = ""


class NotificationTriageResponse(_RHBase):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    counts: Dict[str, int] = Field(default_factory=dict)
