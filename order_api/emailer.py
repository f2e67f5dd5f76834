# order_api/emailer.py
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Optional

from fastapi import Request

from .config import Settings
from .errors import NotificationError

log = logging.getLogger(__name__)


class Mailer:
    """SMTP sender for the transactional e-mails (status updates, recovery codes)."""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_pass
        self.from_addr = settings.smtp_from
        self.starttls = settings.smtp_starttls
        self.timeout = settings.smtp_timeout

    def send(self, to_email: str, subject: str, body: str, html: Optional[str] = None) -> None:
        if not self.host:
            raise NotificationError("Servidor de e-mail não configurado")

        msg = EmailMessage()
        msg["From"] = self.from_addr
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body)
        if html:
            msg.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.user:
                    smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            log.exception("SMTP delivery to %s failed", to_email)
            raise NotificationError("Falha ao enviar e-mail") from e

        log.info("E-mail sent to %s: %s", to_email, subject)

    def send_status_update(self, name: str, email: str, merchandise: str, status: str) -> None:
        subject = f"Atualização do seu pedido: {merchandise}"
        body = f'Olá {name},\n\nSeu pedido da mercadoria "{merchandise}" agora está com status: {status}.'
        html = (
            f"<h3>Olá, {escape(name)}</h3>"
            f"<p>Sua mercadoria: <strong>{escape(merchandise)}</strong></p>"
            f"<p>Status do pedido: <strong>{escape(status)}</strong></p>"
            "<p>Obrigado por comprar conosco!</p>"
        )
        self.send(to_email=email, subject=subject, body=body, html=html)

    def send_recovery_code(self, email: str, code: str) -> None:
        self.send(
            to_email=email,
            subject="Código de recuperação de senha",
            body=f"Use este código para recuperar sua senha: {code}",
        )


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer
