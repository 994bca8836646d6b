# rhdesk/services/yousign_client.py
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger("rhdesk")


class YousignAuthError(RuntimeError):
    pass


class YousignClientError(RuntimeError):
    pass


def _env(name: str) -> Optional[str]:
    v = os.getenv(name)
    if v is None or str(v).strip() == "":
        return None
    return v


def split_full_name(full_name: str) -> tuple[str, str]:
    """'Jean Paul Martin' -> ('Jean', 'Paul Martin') ; un seul mot sert de prénom et de nom."""
    parts = (full_name or "").strip().split()
    if not parts:
        return "", ""
    first = parts[0]
    last = " ".join(parts[1:]) or first
    return first, last


class YousignClient:
    """Client minimal pour l'API de signature électronique Yousign (v3).

    Enchaînement d'un envoi en signature :
      1. création de la demande (signature_request)
      2. dépôt du PDF du contrat
      3. ajout du salarié comme signataire
      4. activation (Yousign envoie alors l'e-mail au salarié)

    Configuration par variables d'environnement :
      - YOUSIGN_API_KEY
      - YOUSIGN_API_URL (défaut: bac à sable https://api-sandbox.yousign.app/v3)
      - RHDESK_YOUSIGN_DEBUG=1 pour tracer les appels
    """

    BASE_API = os.getenv("YOUSIGN_API_URL", "https://api-sandbox.yousign.app/v3")

    # Emplacement de la signature sur la première page du contrat
    SIGNATURE_FIELD = {"type": "signature", "page": 1, "x": 77, "y": 581}

    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key or _env("YOUSIGN_API_KEY")
        self._session = session or requests.Session()
        self._install_retries()
        self._debug: bool = str(os.getenv("RHDESK_YOUSIGN_DEBUG", "")).lower() in {"1", "true", "yes"}

    # ---------- infra ----------
    def _install_retries(self, total: int = 2, backoff: float = 0.5) -> None:
        retry = Retry(
            total=total,
            backoff_factor=backoff,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(["GET", "POST"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def _log(self, msg: str) -> None:
        if self._debug:
            logger.info("[YousignClient] %s", msg)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self, *, json: bool = True) -> Dict[str, str]:
        if not self.api_key:
            raise YousignAuthError("Clé API Yousign manquante (variable YOUSIGN_API_KEY)")
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if json:
            headers["Content-Type"] = "application/json"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.BASE_API.rstrip('/')}/{path.lstrip('/')}"

    def _post(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = self._url(path)
        self._log(f"POST {url}")
        try:
            resp = self._session.post(url, timeout=30, **kwargs)
        except requests.RequestException as e:
            raise YousignClientError(f"POST {path}: {e}") from e
        self._log(f"-> status={resp.status_code}")
        if not 200 <= resp.status_code < 300:
            raise YousignClientError(f"POST {path} {resp.status_code}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError:
            return {}

    # ---------- API ----------
    def create_signature_request(self, name: str, external_id: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": name,
            "delivery_mode": "email",
            "timezone": "Europe/Paris",
        }
        if external_id:
            payload["external_id"] = external_id
        return self._post("signature_requests", headers=self._headers(), json=payload)

    def upload_document(self, signature_request_id: str, pdf_bytes: bytes, filename: str) -> Dict[str, Any]:
        return self._post(
            f"signature_requests/{signature_request_id}/documents",
            headers=self._headers(json=False),
            data={"nature": "signable_document", "parse_anchors": "true"},
            files={"file": (filename, pdf_bytes, "application/pdf")},
        )

    def add_signer(self, signature_request_id: str, document_id: str, full_name: str, email: str) -> Dict[str, Any]:
        first_name, last_name = split_full_name(full_name)
        payload = {
            "info": {
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "locale": "fr",
            },
            "signature_level": "electronic_signature",
            "signature_authentication_mode": "no_otp",
            "fields": [{"document_id": document_id, **self.SIGNATURE_FIELD}],
        }
        return self._post(f"signature_requests/{signature_request_id}/signers", headers=self._headers(), json=payload)

    def activate(self, signature_request_id: str) -> Dict[str, Any]:
        return self._post(f"signature_requests/{signature_request_id}/activate", headers=self._headers(json=False))

    def send_for_signature(
        self,
        pdf_bytes: bytes,
        employee_name: str,
        employee_email: str,
        contract_id: Optional[str] = None,
    ) -> Dict[str, Optional[str]]:
        """Crée, alimente et active une demande de signature ; renvoie les identifiants Yousign."""
        if not employee_email or "@" not in employee_email:
            raise YousignClientError("E-mail du salarié manquant ou invalide")
        if not (employee_name or "").strip():
            raise YousignClientError("Nom du salarié manquant")

        sr = self.create_signature_request(f"Contrat de travail - {employee_name}", external_id=contract_id)
        sr_id = sr.get("id")
        if not sr_id:
            raise YousignClientError("signature_requests: 'id' absent de la réponse")

        filename = "contrat_{}.pdf".format("_".join(employee_name.split()))
        doc = self.upload_document(sr_id, pdf_bytes, filename)
        doc_id = doc.get("id")
        if not doc_id:
            raise YousignClientError("documents: 'id' absent de la réponse")
        signer = self.add_signer(sr_id, doc_id, employee_name, employee_email)
        self.activate(sr_id)
        return {
            "signature_request_id": sr_id,
            "document_id": doc_id,
            "signer_id": signer.get("id"),
        }
