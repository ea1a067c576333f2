"""
Publicação do relatório num canal do Microsoft Teams (Incoming Webhook).

Formato: Office 365 Connector Card (``MessageCard``). Quando há uma URL
pública configurada (não localhost), uma cópia HTML do relatório é gravada
em ``REPORTS_DIR`` e linkada no cartão.
"""

from __future__ import annotations

import re
import time
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from plano.config import REPORT_TITLE, REPORTS_DIR, Settings, get_settings
from plano.domain.errors import DeliveryError
from plano.domain.policies import limitar_percentuais
from plano.infra.logger import log_file_operation, log_system_event

_PUBLICO_RE = re.compile(r"^https?://(?!localhost|127\.0\.0\.1)", re.IGNORECASE)

HTML_DOC = (
    '<!doctype html><html><head><meta charset="utf-8">'
    '<meta name="viewport" content="width=device-width, initial-scale=1" />'
    "<title>Relatório de Produção</title>"
    "<style>html,body{{margin:0;padding:0;background:#ffffff}}</style>"
    "</head><body>{corpo}</body></html>"
)


def pode_publicar(base_url: Optional[str]) -> bool:
    return bool(base_url) and bool(_PUBLICO_RE.match(base_url))


def montar_payload(
    texto: str,
    data_hora: str,
    system_url: str,
    report_url: Optional[str] = None,
    logo_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Monta o MessageCard. O texto do resumo já vem em markdown."""
    secoes = [
        {"text": f"Segue o relatório de produção e data e horário do dia: {data_hora}.", "markdown": True},
        {"title": "Resumo consolidado do plano", "text": limitar_percentuais(texto), "markdown": True},
        {"text": f"Sistema: {system_url}", "markdown": True},
    ]
    acoes = [{"@type": "OpenUri", "name": "Abrir sistema", "targets": [{"os": "default", "uri": system_url}]}]
    if report_url:
        secoes.append({"text": f"Relatório completo: {report_url}", "markdown": True})
        acoes.append({"@type": "OpenUri", "name": "Ver relatório completo", "targets": [{"os": "default", "uri": report_url}]})

    payload: Dict[str, Any] = {
        "@type": "MessageCard",
        "@context": "https://schema.org/extensions",
        "summary": REPORT_TITLE,
        "title": REPORT_TITLE,
        "themeColor": "0078D7",
        "sections": secoes,
        "potentialAction": acoes,
    }
    if logo_url:
        payload["heroImage"] = {"image": logo_url}
    return payload


class TeamsWebhook:
    def __init__(self, settings: Optional[Settings] = None, reports_dir: Optional[Path] = None):
        self.settings = settings or get_settings()
        self.reports_dir = Path(reports_dir) if reports_dir is not None else REPORTS_DIR

    @property
    def configurado(self) -> bool:
        return bool(self.settings.teams_webhook_url)

    def status(self) -> Dict[str, Any]:
        s = self.settings
        return {
            "webhook_configurado": self.configurado,
            "public_base_url": s.public_base_url,
            "logo_public_url": s.logo_public_url,
            "link_publico": pode_publicar(s.public_base_url),
        }

    def publicar_html(self, html: str) -> Optional[str]:
        """Grava a cópia pública do relatório e devolve sua URL (ou None)."""
        base = self.settings.public_base_url
        if not pode_publicar(base):
            return None
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        nome = f"report-{int(time.time() * 1000)}.html"
        destino = self.reports_dir / nome
        destino.write_text(HTML_DOC.format(corpo=limitar_percentuais(html)), encoding="utf-8")
        log_file_operation("export", str(destino))
        return f"{base.rstrip('/')}/public/reports/{nome}"

    def send(self, texto: str, data_hora: str, html: Optional[str] = None) -> Dict[str, Any]:
        """Publica o cartão. Status HTTP fora de 2xx vira DeliveryError."""
        s = self.settings
        if not s.teams_webhook_url:
            raise DeliveryError("TEAMS_WEBHOOK_URL não configurado")

        report_url = None
        if html:
            try:
                report_url = self.publicar_html(html)
            except OSError as e:
                log_system_event("teams_html_publico_falhou", {"error": str(e)}, level="warning")

        payload = montar_payload(texto, data_hora, s.system_url, report_url, s.logo_public_url)
        try:
            resp = requests.post(s.teams_webhook_url, json=payload, timeout=s.webhook_timeout)
        except requests.RequestException as e:
            raise DeliveryError(f"Teams webhook falhou: {e}") from e
        if not (200 <= resp.status_code < 300):
            raise DeliveryError(f"Teams webhook falhou: {resp.status_code} {resp.text}")

        log_system_event("teams_publicado", {"report_url": report_url})
        return {"ok": True, "report_url": report_url}
