"""
Envio do relatório por e-mail (SMTP).

STARTTLS por padrão; ``SMTP_SECURE=true`` usa SSL direto (porta 465).
A captura de tela opcional vai embutida no corpo via ``cid:sigp-screenshot``.
"""

from __future__ import annotations

import smtplib
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import List, Optional

from plano.config import Settings, get_settings
from plano.domain.errors import DeliveryError
from plano.infra.logger import log_email

SCREENSHOT_CID = "sigp-screenshot"


def montar_mensagem(
    remetente: str,
    assunto: str,
    html: str,
    to: List[str],
    cc: Optional[List[str]] = None,
    screenshot: Optional[bytes] = None,
    screenshot_subtype: str = "png",
) -> MIMEMultipart:
    msg = MIMEMultipart("related")
    msg["Subject"] = assunto
    msg["From"] = remetente
    msg["To"] = ", ".join(to)
    if cc:
        msg["Cc"] = ", ".join(cc)
    dominio = remetente.split("@")[-1] if "@" in remetente else None
    msg["Message-ID"] = make_msgid(domain=dominio)

    msg.attach(MIMEText(html, "html", "utf-8"))

    if screenshot:
        img = MIMEImage(screenshot, _subtype=screenshot_subtype)
        img.add_header("Content-ID", f"<{SCREENSHOT_CID}>")
        ext = "jpg" if screenshot_subtype == "jpeg" else screenshot_subtype
        img.add_header("Content-Disposition", "inline", filename=f"relatorio-embalagem-torcida.{ext}")
        msg.attach(img)
    return msg


class SmtpEmailSender:
    """Entrega via smtplib. Devolve o Message-ID; falhas viram DeliveryError."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def _conectar(self) -> smtplib.SMTP:
        s = self.settings
        if s.smtp_secure:
            return smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=30)
        return smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=30)

    def send(
        self,
        assunto: str,
        html: str,
        to: List[str],
        cc: Optional[List[str]] = None,
        bcc: Optional[List[str]] = None,
        screenshot: Optional[bytes] = None,
        screenshot_subtype: str = "png",
    ) -> str:
        s = self.settings
        if not s.smtp_host:
            raise DeliveryError("SMTP_HOST não configurado")
        remetente = s.email_from or s.smtp_user or ""
        destinos = list(to) + list(cc or []) + list(bcc or [])
        try:
            msg = montar_mensagem(remetente, assunto, html, to, cc, screenshot, screenshot_subtype)
            # a conexão fecha mesmo se o STARTTLS falhar
            with self._conectar() as server:
                if not s.smtp_secure:
                    server.starttls()
                if s.smtp_user and s.smtp_pass:
                    server.login(s.smtp_user, s.smtp_pass)
                server.sendmail(remetente, destinos, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            log_email("error", len(destinos), error=str(e))
            raise DeliveryError(f"Falha no envio SMTP: {e}") from e
        except Exception as e:
            log_email("error", len(destinos), error=str(e))
            raise DeliveryError(f"Falha inesperada no envio: {e}") from e
        log_email("success", len(destinos), message_id=msg["Message-ID"])
        return msg["Message-ID"]
