# plano/usecases/relatorios.py
"""
Relatório de produção da linha TORCIDA:
- resumo consolidado (planejado x produzido em toneladas, por item e total)
- renderização em HTML (e-mail) e markdown (Teams) a partir do mesmo resumo
- envio por e-mail + Teams com registro de auditoria
- status do plano e diagnóstico do Teams
"""

from __future__ import annotations

from datetime import datetime
from html import escape
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from plano.adapters.cripto import decrypt_email, encrypt_email
from plano.adapters.email_sender import SCREENSHOT_CID, SmtpEmailSender
from plano.adapters.materiais import carregar_materiais
from plano.adapters.parsers import formatar_br
from plano.adapters.webhook import TeamsWebhook
from plano.config import DB_PATH, DEFAULTS, REPORT_TIMEZONE, REPORT_TITLE, get_settings
from plano.domain.errors import DeliveryError, PlanoError, ValidationError
from plano.domain.models import EmailLog, MaterialRef, PlanoItem
from plano.domain.policies import limitar_percentuais, limitar_progresso
from plano.infra.logger import log_email, log_system_event, log_transaction
from plano.infra.repositories import DestinatarioRepo, EmailLogRepo, PlanoRepo


# ----------------------
# util
# ----------------------

def agora_str(agora: Optional[datetime] = None) -> str:
    """Data e hora no fuso do relatório (dd/mm/aaaa, HH:MM:SS)."""
    agora = agora or datetime.now(ZoneInfo(REPORT_TIMEZONE))
    return agora.strftime("%d/%m/%Y, %H:%M:%S")


def _pct(valor: float) -> str:
    return f"{formatar_br(valor, 1)}%"


def _progresso(produzido: float, planejado: float) -> float:
    if planejado <= 0:
        return 0.0
    return limitar_progresso(produzido / planejado * 100.0)


# ----------------------
# 1) Resumo consolidado
# ----------------------

def montar_resumo(planos: Iterable[PlanoItem], materiais: Mapping[str, MaterialRef]) -> Dict[str, Any]:
    """Resumo da linha TORCIDA.

    Por item:
        planejado = plano_caixas × Und × gramagem / 1000 (com referência
                    completa) ou o campo ``tons`` do plano
        produzido = bolsas × gramagem / 1000 (0 sem gramagem)
        falta     = max(planejado − produzido, 0)
        progresso = produzido / planejado em 0..100

    A função não consulta nada além das entradas: e-mail e Teams recebem
    os mesmos números.
    """
    itens: List[Dict[str, Any]] = []
    for p in planos:
        if DEFAULTS.marcador_linha not in (p.material or "").upper():
            continue
        ref = materiais.get(p.cod_material)
        gram = ref.gramagem_kg if ref else None
        und = ref.und_por_caixa if ref else None
        if gram and und:
            planejado = p.plano_caixas * und * gram / 1000.0
        else:
            planejado = p.tons
        produzido = p.bolsas_produzido * gram / 1000.0 if gram else 0.0
        itens.append({
            "cod_material": p.cod_material,
            "material": p.material,
            "planejado_ton": planejado,
            "produzido_ton": produzido,
            "falta_ton": max(planejado - produzido, 0.0),
            "progresso": _progresso(produzido, planejado),
        })

    total_planejado = sum(i["planejado_ton"] for i in itens)
    total_produzido = sum(i["produzido_ton"] for i in itens)
    return {
        "itens": itens,
        "total_planejado_ton": total_planejado,
        "total_produzido_ton": total_produzido,
        "falta_ton": max(total_planejado - total_produzido, 0.0),
        "progresso": _progresso(total_produzido, total_planejado),
    }


def render_texto_teams(resumo: Dict[str, Any]) -> str:
    """Resumo em markdown (uma linha por item, totais no fim)."""
    linhas = []
    for i in resumo["itens"]:
        linhas.append(
            f"- **{i['material']}** Planejado {formatar_br(i['planejado_ton'])}t | "
            f"Produzido {formatar_br(i['produzido_ton'])}t | "
            f"Falta {formatar_br(i['falta_ton'])}t | Progresso {_pct(i['progresso'])}"
        )
    if not linhas:
        linhas.append("_Nenhum item TORCIDA no plano._")
    linhas.append("")
    linhas.append(
        f"**Total** Planejado {formatar_br(resumo['total_planejado_ton'])}t | "
        f"Produzido {formatar_br(resumo['total_produzido_ton'])}t | "
        f"Falta {formatar_br(resumo['falta_ton'])}t | Progresso {_pct(resumo['progresso'])}"
    )
    return limitar_percentuais("\n".join(linhas))


def render_resumo_html(resumo: Dict[str, Any]) -> str:
    """Tabela HTML do resumo (bloco do e-mail e da cópia pública)."""
    td = 'style="padding:6px 8px;border-bottom:1px solid #e5e7eb"'
    corpo = []
    for i in resumo["itens"]:
        corpo.append(
            f"<tr><td {td}>{escape(i['material'])}</td>"
            f"<td {td}>{formatar_br(i['planejado_ton'])}t</td>"
            f"<td {td}>{formatar_br(i['produzido_ton'])}t</td>"
            f"<td {td}>{formatar_br(i['falta_ton'])}t</td>"
            f"<td {td}>{_pct(i['progresso'])}</td></tr>"
        )
    corpo.append(
        f"<tr style=\"font-weight:700\"><td {td}>Total</td>"
        f"<td {td}>{formatar_br(resumo['total_planejado_ton'])}t</td>"
        f"<td {td}>{formatar_br(resumo['total_produzido_ton'])}t</td>"
        f"<td {td}>{formatar_br(resumo['falta_ton'])}t</td>"
        f"<td {td}>{_pct(resumo['progresso'])}</td></tr>"
    )
    html = (
        '<table style="border-collapse:collapse;width:100%;font-size:14px">'
        "<thead><tr>"
        "<th align=\"left\">Material</th><th align=\"left\">Planejado</th>"
        "<th align=\"left\">Produzido</th><th align=\"left\">Falta Produzir</th>"
        "<th align=\"left\">Progresso</th>"
        "</tr></thead><tbody>" + "".join(corpo) + "</tbody></table>"
    )
    return limitar_percentuais(html)


def render_html(resumo: Dict[str, Any], data_hora: str, system_url: str, has_screenshot: bool = False) -> str:
    """Corpo completo do e-mail."""
    fonte = "font-family:system-ui,-apple-system,Segoe UI,Roboto,Arial,sans-serif"
    screenshot = ""
    if has_screenshot:
        screenshot = (
            '<div style="margin-top:16px;padding:12px;border:1px solid #e5e7eb;border-radius:8px;background:#f9fafb">'
            f'<h3 style="{fonte};font-size:16px;color:#1f2937;margin:0 0 8px 0">Captura da tela atual</h3>'
            f'<img src="cid:{SCREENSHOT_CID}" alt="Tela SIGP" style="max-width:100%;border-radius:6px" />'
            "</div>"
        )
    anexo = " A captura da tela foi anexada abaixo." if has_screenshot else ""
    html = (
        f'<div style="{fonte};background:#ffffff;color:#111827">'
        '<div style="margin-bottom:8px;padding:12px 0;border-bottom:1px solid #e5e7eb">'
        f'<h2 style="font-size:20px;margin:0;font-weight:800">{REPORT_TITLE}</h2>'
        f'<div style="font-size:12px;color:#374151">{escape(data_hora)}</div></div>'
        f'<p style="margin:12px 0;color:#374151">Segue o relatório de produção e data e horário do dia: {escape(data_hora)}.{anexo}</p>'
        '<div style="margin:16px 0;padding:12px;border:1px solid #e5e7eb;border-radius:8px;background:#f9fafb">'
        f'<h3 style="{fonte};font-size:16px;color:#1f2937;margin:0 0 8px 0">Resumo consolidado do plano</h3>'
        f"{render_resumo_html(resumo)}</div>"
        f"{screenshot}"
        '<div style="margin-top:16px;padding-top:8px;border-top:1px solid #e5e7eb;color:#6b7280;font-size:12px">'
        f'Sistema: <a href="{escape(system_url)}" style="color:#2563eb;text-decoration:none">{escape(system_url)}</a>'
        "</div></div>"
    )
    return limitar_percentuais(html)


def relatorio_resumo(db_path: str = DB_PATH, materiais: Optional[Mapping[str, MaterialRef]] = None) -> Tuple[List[str], List[List[Any]], Optional[str]]:
    """Colunas, linhas e mensagem para exibição tabular do resumo."""
    if materiais is None:
        materiais = carregar_materiais()
    resumo = montar_resumo(PlanoRepo(db_path).itens(), materiais)
    cols = ["Código", "Material", "Planejado (t)", "Produzido (t)", "Falta (t)", "Progresso"]
    rows = [
        [i["cod_material"], i["material"], formatar_br(i["planejado_ton"]), formatar_br(i["produzido_ton"]),
         formatar_br(i["falta_ton"]), _pct(i["progresso"])]
        for i in resumo["itens"]
    ]
    if not rows:
        return cols, rows, "Nenhum item TORCIDA no plano."
    rows.append(["", "TOTAL", formatar_br(resumo["total_planejado_ton"]), formatar_br(resumo["total_produzido_ton"]),
                 formatar_br(resumo["falta_ton"]), _pct(resumo["progresso"])])
    return cols, rows, None


# ----------------------
# 2) Envio
# ----------------------

def _resolver_emails(ids: Sequence[int], repo: DestinatarioRepo) -> List[str]:
    try:
        return [decrypt_email(d.email_enc) for d in repo.get_many(ids)]
    except PlanoError as e:
        raise DeliveryError(f"Falha ao resolver destinatários: {e}") from e


def run_enviar_relatorio(
    to_ids: Sequence[int] = (),
    cc_ids: Sequence[int] = (),
    bcc_ids: Sequence[int] = (),
    to_emails: Sequence[str] = (),
    cc_emails: Sequence[str] = (),
    bcc_emails: Sequence[str] = (),
    screenshot: Optional[bytes] = None,
    enviar_teams: bool = True,
    db_path: str = DB_PATH,
    materiais: Optional[Mapping[str, MaterialRef]] = None,
    email_sender=None,
    teams=None,
    agora: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Envia o relatório por e-mail (e ao Teams) e grava a auditoria.

    E-mails diretos têm precedência sobre os ids cadastrados. Falha de
    entrega não é propagada: o resultado volta com ``status='error'`` e o
    log de envios registra o erro.

    Raises:
        ValidationError: nenhum destinatário "Para" informado.
    """
    if not to_emails and not to_ids:
        raise ValidationError("Informe ao menos um destinatário (Para)")

    settings = get_settings()
    if materiais is None:
        materiais = carregar_materiais()
    email_sender = email_sender or SmtpEmailSender(settings)
    teams = teams or TeamsWebhook(settings)
    log_repo = EmailLogRepo(db_path)
    ids = {"to_ids": [int(i) for i in to_ids], "cc_ids": [int(i) for i in cc_ids], "bcc_ids": [int(i) for i in bcc_ids]}

    log_system_event("enviar_relatorio_start", ids)
    try:
        if to_emails:
            to, cc, bcc = list(to_emails), list(cc_emails), list(bcc_emails)
        else:
            dest_repo = DestinatarioRepo(db_path)
            to = _resolver_emails(ids["to_ids"], dest_repo)
            cc = _resolver_emails(ids["cc_ids"], dest_repo)
            bcc = _resolver_emails(ids["bcc_ids"], dest_repo)
        if not to:
            raise DeliveryError("Nenhum destinatário (Para) encontrado")

        data_hora = agora_str(agora)
        resumo = montar_resumo(PlanoRepo(db_path).itens(), materiais)
        html = render_html(resumo, data_hora, settings.system_url, has_screenshot=bool(screenshot))
        message_id = email_sender.send(REPORT_TITLE, html, to, cc=cc, bcc=bcc, screenshot=screenshot)
    except DeliveryError as e:
        log_id = log_repo.insert(EmailLog(status="error", error=str(e), **ids))
        log_email("error", len(to_ids) + len(to_emails), error=str(e))
        log_transaction("enviar_relatorio", ids, error=str(e))
        return {"status": "error", "message_id": None, "teams_status": "skipped", "error": str(e), "log_id": log_id}

    teams_status = "skipped"
    if enviar_teams and teams.configurado:
        try:
            teams.send(render_texto_teams(resumo), data_hora, html=html)
            teams_status = "success"
        except DeliveryError as e:
            teams_status = "error"
            log_system_event("teams_error", {"error": str(e)}, level="warning")

    log_id = log_repo.insert(EmailLog(status="success", message_id=message_id, teams_status=teams_status, **ids))
    log_email("success", len(to) + len(cc) + len(bcc), message_id=message_id, teams_status=teams_status)
    log_transaction("enviar_relatorio", ids, result={"message_id": message_id, "teams_status": teams_status})
    return {"status": "success", "message_id": message_id, "teams_status": teams_status, "error": None, "log_id": log_id}


def run_teste_teams(texto: Optional[str] = None, teams=None, agora: Optional[datetime] = None) -> Dict[str, Any]:
    """Publica uma mensagem de teste no Teams. Falhas sobem como DeliveryError."""
    teams = teams or TeamsWebhook()
    texto = texto or "Teste de integração do webhook do Teams"
    html = f"<h3>{escape(texto)}</h3><p>Envio em modo texto (sem imagem).</p>"
    return teams.send(f"### {texto}\n\nEnvio em modo texto (sem imagem).", agora_str(agora), html=html)


def run_status(db_path: str = DB_PATH) -> Dict[str, Any]:
    """Total de registros do plano e data da última atualização."""
    return PlanoRepo(db_path).status()


def listar_envios(db_path: str = DB_PATH, limite: int = 20) -> List[Dict[str, Any]]:
    """Últimos registros do log de envios (mais recente primeiro)."""
    return EmailLogRepo(db_path).list_recent(limite)


# ----------------------
# 3) Destinatários
# ----------------------

def adicionar_destinatario(alias: str, email: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Cadastra um destinatário; o endereço é gravado só criptografado."""
    alias = (alias or "").strip()
    email = (email or "").strip()
    if not alias or "@" not in email:
        raise ValidationError("Informe apelido e e-mail válidos")
    novo_id = DestinatarioRepo(db_path).add(alias, encrypt_email(email))
    log_system_event("destinatario_adicionado", {"id": novo_id, "alias": alias})
    return {"id": novo_id, "alias": alias}


def listar_destinatarios(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return DestinatarioRepo(db_path).list_aliases()
