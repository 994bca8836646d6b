# rhdesk/main.py

# Standard library
from datetime import date
from typing import Optional, Dict, Any
from io import BytesIO
import logging

# Third-party
from fastapi import FastAPI
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.concurrency import run_in_threadpool

from rhdesk.schemas import (
    TrialEndResponse,
    ContractVariablesRequest,
    ContractVariablesResponse,
    ContractPreviewRequest,
    ContractSignatureRequest,
    NotificationTriageRequest,
    NotificationTriageResponse,
)

# Local modules
from rhdesk.services.trial_period import calculate_trial_end_date, parse_calendar_date
from rhdesk.services.contract_variables import (
    TrialInjection,
    extract_template_variables,
    merge_variables,
    prepare_trial_variables,
    render_contract_text,
)
from rhdesk.services.notifications import triage
from rhdesk.services.pdf_renderer import (
    CONTRACT_TEMPLATE,
    contract_context,
    render_contract_html,
    render_pdf_bytes,
)
from rhdesk.services.yousign_client import YousignClient, YousignAuthError, YousignClientError

# --- logger minimal ---
logger = logging.getLogger("rhdesk")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)

# --- app FastAPI ---
app = FastAPI(title="RH back-office", version="0.1")


# ========== Helpers ==========

def _safe_rule(rule: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Ne renvoie que les métadonnées utiles au front."""
    if not rule:
        return None
    return {
        "source": rule.get("source"),
        "source_ref": rule.get("source_ref"),
        "bloc": rule.get("bloc"),
        "url": rule.get("url"),
        "effective": rule.get("effective"),
    }


def _prepare(req: ContractVariablesRequest) -> tuple[TrialInjection, Dict[str, Any]]:
    injection = prepare_trial_variables(
        req.template_text, req.contract_type, req.start_date, req.end_date, req.renew
    )
    return injection, merge_variables(req.variables, injection)


def _render_body(req: ContractVariablesRequest) -> tuple[TrialInjection, str]:
    injection, variables = _prepare(req)
    return injection, render_contract_text(req.template_text, variables, escape=True)


def _make_yousign_client() -> YousignClient:
    return YousignClient()


# ========== API : Santé ==========

@app.get("/api/health")
async def api_health():
    return {"status": "ok"}


# ========== API : Période d’essai ==========

@app.get("/api/essai/trial-end", response_model=TrialEndResponse)
async def api_essai_trial_end(
    contract_type: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    renew: bool = False,
):
    # Saisie partielle => applicable=false, jamais d'erreur HTTP
    result = calculate_trial_end_date(contract_type, start_date, end_date, renew)
    if result is None:
        return {"applicable": False, "result": None, "rule": None}
    return {
        "applicable": result.has_trial,
        "result": result.to_dict(),
        "rule": _safe_rule(result.rule),
    }


# ========== API : Contrats ==========

@app.post("/api/contracts/variables", response_model=ContractVariablesResponse)
async def api_contract_variables(req: ContractVariablesRequest):
    injection, variables = _prepare(req)
    missing = [v for v in extract_template_variables(req.template_text) if v not in variables]
    return {
        "trial_declared": injection.declared,
        "variables": variables,
        "employee_update": injection.employee_update,
        "trial": injection.result.to_dict() if injection.result else None,
        "missing": missing,
    }


@app.post("/api/contracts/preview")
async def api_contract_preview(req: ContractPreviewRequest):
    injection, body = _render_body(req)
    trial = injection.result.to_dict() if injection.result else None
    try:
        html_str = render_contract_html(body, req.title, trial=trial)
    except Exception as e:
        logger.exception("preview render failed: %s", e)
        return JSONResponse({"error": "preview_failed", "detail": str(e)}, status_code=500)

    if (req.format or "html").strip().lower() != "pdf":
        return {"html": html_str, "trial": trial}

    try:
        pdf_bytes = await run_in_threadpool(
            render_pdf_bytes, CONTRACT_TEMPLATE,
            contract_context(body, req.title, trial=trial),
        )
    except Exception as e:
        logger.exception("pdf render failed: %s", e)
        return JSONResponse({"error": "pdf_failed", "detail": str(e)}, status_code=500)
    headers = {"Content-Disposition": 'inline; filename="contrat_preview.pdf"'}
    return StreamingResponse(BytesIO(pdf_bytes), media_type="application/pdf", headers=headers)


@app.post("/api/contracts/signature")
async def api_contract_signature(req: ContractSignatureRequest):
    client = _make_yousign_client()
    if not client.is_configured():
        return JSONResponse({"error": "yousign_unconfigured"}, status_code=503)

    injection, body = _render_body(req)
    trial = injection.result.to_dict() if injection.result else None
    try:
        pdf_bytes = await run_in_threadpool(
            render_pdf_bytes, CONTRACT_TEMPLATE,
            contract_context(body, req.title, trial=trial),
        )
    except Exception as e:
        logger.exception("pdf render failed: %s", e)
        return JSONResponse({"error": "pdf_failed", "detail": str(e)}, status_code=500)

    try:
        ids = await run_in_threadpool(
            client.send_for_signature, pdf_bytes, req.employee_name, req.employee_email, req.contract_id
        )
    except (YousignAuthError, YousignClientError) as e:
        logger.warning("yousign send failed: %s", e)
        return JSONResponse({"error": "signature_failed", "detail": str(e)}, status_code=502)

    return {
        **ids,
        "statut": "en_attente_signature",
        "employee_update": injection.employee_update,
    }


# ========== API : Notifications ==========

@app.post("/api/notifications/triage", response_model=NotificationTriageResponse)
async def api_notifications_triage(req: NotificationTriageRequest):
    today = parse_calendar_date(req.today) or date.today()
    items = [it.model_dump() for it in req.items]
    return triage(items, today, notif_type=req.type, statut=req.statut, search=req.search)
