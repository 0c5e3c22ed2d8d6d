# vecinity/services/notify_email.py

import html
import logging
import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

import resend

from vecinity.core.config import settings

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "nuevo": "Nuevo",
    "en_proceso": "En proceso",
    "resuelto": "Resuelto",
    "cerrado": "Cerrado",
}

# ===================================================================
# BASE TEMPLATE
# ===================================================================

TPL_BASE = """
<table width="100%%" cellpadding="0" cellspacing="0" style="background:#eef2f7;padding:24px;">
  <tr><td align="center">
    <table width="600" cellpadding="0" cellspacing="0"
           style="background:#ffffff;border-radius:12px;padding:24px;
                  font-family:Arial,Helvetica,sans-serif;color:#111827;
                  border:1px solid #e5e7eb;">
      <tr>
        <td align="center" style="padding-bottom:16px;">
          <div style="font-size:20px;font-weight:700;color:#3B82F6;">Vecinity</div>
          <div style="margin-top:2px;font-size:12px;color:#6b7280;">
            Reportes ciudadanos para una mejor comunidad
          </div>
        </td>
      </tr>
      <tr>
        <td style="font-size:14px;line-height:1.6;">
          %s
        </td>
      </tr>
      <tr>
        <td style="padding-top:16px;font-size:11px;color:#6b7280;border-top:1px solid #e5e7eb;">
          Este es un mensaje automático de <strong>Vecinity</strong>.
          Si no solicitaste esta acción puedes ignorar este correo.
          <div style="margin-top:4px;">© {YEAR} Vecinity</div>
        </td>
      </tr>
    </table>
  </td></tr>
</table>
"""

def _render(body: str) -> str:
    return TPL_BASE.replace("{YEAR}", str(datetime.now().year)) % body

def _sender() -> str:
    addr = settings.email_from_address
    return f"{settings.email_from_name} <{addr}>" if settings.email_from_name else addr

# ===================================================================
# Transports
# ===================================================================

def _send_email_via_smtp(to_email: str, subject: str, html_content: str) -> bool:
    if not settings.smtp_host or not settings.smtp_username or not settings.smtp_password \
            or not settings.email_from_address:
        logger.info("SMTP not configured, skipping email to %s", to_email)
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = _sender()
    msg["To"] = to_email
    msg.attach(MIMEText(html_content, "html"))

    if settings.smtp_use_ssl:
        server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=15)
    else:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=15)
        server.starttls()
    try:
        server.login(settings.smtp_username, settings.smtp_password)
        server.send_message(msg)
    finally:
        server.quit()
    return True

def _send_email_via_resend(to_email: str, subject: str, html_content: str) -> bool:
    if not settings.resend_api_key or not settings.email_from_address:
        logger.info("Resend not configured, skipping email to %s", to_email)
        return False

    resend.api_key = settings.resend_api_key
    resend.Emails.send({
        "from": _sender(),
        "to": [to_email],
        "subject": subject,
        "html": html_content,
    })
    return True

def _send_email(to_email: str, subject: str, html_content: str) -> bool:
    """Delivery failures are logged, never raised: mail is always sent after the write committed."""
    try:
        if settings.email_provider.lower() == "resend":
            return _send_email_via_resend(to_email, subject, html_content)
        return _send_email_via_smtp(to_email, subject, html_content)
    except Exception as e:
        logger.error("Failed to send email %r to %s: %s", subject, to_email, e, exc_info=True)
        return False

def _build_url(path: str) -> str:
    base = (settings.frontend_base_url or "").strip().rstrip("/")
    path = path.lstrip("/")
    if base:
        if not base.startswith(("http://", "https://")):
            base = f"https://{base}"
        return f"{base}/{path}"
    return f"/{path}"

def _link(link: str, text: str) -> str:
    return f"""
    <div style="margin:12px 0 8px 0;">
      <a href="{link}" style="display:inline-block;padding:10px 20px;background:#1d4ed8;
                color:#ffffff;border-radius:6px;font-weight:600;text-decoration:none;">{text}</a>
    </div>
    <div style="font-size:11px;color:#374151;background:#f3f4f6;padding:8px 10px;
                border-radius:4px;word-break:break-all;font-family:monospace;">{link}</div>
    """

# ===================================================================
# Messages
# ===================================================================

def send_reset_password(to_email: str, token: str) -> bool:
    link = _build_url(f"reset-password/{token}")
    body = f"""
    <p>Hola,</p>
    <p>Recibimos una solicitud para restablecer la contraseña de tu cuenta.</p>
    {_link(link, "Restablecer contraseña")}
    <p style="font-size:12px;color:#6b7280;">
      El enlace es válido por <strong>10 minutos</strong>.
    </p>
    """
    return _send_email(to_email, "Restablecer contraseña", _render(body))

def send_status_update(to_email: str, report_id: int, folio: str | None, estatus: str, comentario: str = "") -> bool:
    label = STATUS_LABELS.get(estatus, estatus)
    ref = folio or f"#{report_id}"
    note = f"<p><em>{html.escape(comentario)}</em></p>" if comentario else ""
    body = f"""
    <p>Hola,</p>
    <p>Tu reporte <strong>{html.escape(ref)}</strong> cambió de estatus a:</p>
    <p style="font-size:16px;font-weight:700;color:#1d4ed8;">{html.escape(label)}</p>
    {note}
    {_link(_build_url(f"reportes/{report_id}"), "Ver reporte")}
    """
    return _send_email(to_email, f"Reporte {ref}: {label}", _render(body))
