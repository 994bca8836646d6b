# rhdesk/services/pdf_renderer.py

from pathlib import Path
from datetime import datetime
from typing import Any, Dict, Optional
from jinja2 import Environment, FileSystemLoader, select_autoescape

APP_DIR = Path(__file__).resolve().parents[1]
TEMPLATES_DIR = APP_DIR / "templates"

CONTRACT_TEMPLATE = "pdf/contract.html.j2"


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )


def render_html(template_rel_path: str, context: Dict[str, Any]) -> str:
    return _environment().get_template(template_rel_path).render(**context)


def contract_context(body_html: str, title: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    return {
        "title": title or "Contrat de travail",
        "body_html": body_html,
        "generated_at": datetime.now().strftime("%d/%m/%Y %H:%M"),
        **extra,
    }


def render_contract_html(body_html: str, title: Optional[str] = None, **extra: Any) -> str:
    """Habille le corps du contrat (variables déjà substituées) dans la mise en page A4."""
    return render_html(CONTRACT_TEMPLATE, contract_context(body_html, title, **extra))


# rendu PDF en mémoire (aperçu, envoi en signature)
def render_pdf_bytes(template_rel_path: str, context: dict) -> bytes:
    from weasyprint import HTML
    html_str = render_html(template_rel_path, context)
    # write_pdf() sans target retourne directement des bytes
    return HTML(string=html_str, base_url=str(TEMPLATES_DIR)).write_pdf()
