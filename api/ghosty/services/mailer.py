import logging
import smtplib
from email.message import EmailMessage

from ghosty import config

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    pass


def activation_link(token: str) -> str:
    return f"{config.APP_URL}/api/auth/activate?token={token}"


def _send(to_email: str, subject: str, text_body: str, html_body: str | None = None) -> None:
    if not config.SMTP_HOST:
        raise EmailDeliveryError("SMTP host not configured")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = config.EMAIL_FROM
    msg["To"] = to_email
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")

    try:
        with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=15) as smtp:
            smtp.starttls()
            if config.SMTP_USER:
                smtp.login(config.SMTP_USER, config.SMTP_PASSWORD)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailDeliveryError(str(exc)) from exc


def send_activation_email(to_email: str, token: str) -> None:
    link = activation_link(token)
    if config.DEV_MODE:
        logger.info(f"[mailer] dev mode, activation link for {to_email}: {link}")
        return

    text_body = (
        "Welcome to Ghosty!\n\n"
        "Activate your account by opening the link below. "
        f"It expires in {config.ACTIVATION_TOKEN_TTL_HOURS} hours.\n\n"
        f"{link}\n\n"
        "If you did not sign up, you can ignore this email."
    )
    html_body = (
        "<h2>Welcome to Ghosty!</h2>"
        "<p>Activate your account by clicking the button below. "
        f"It expires in {config.ACTIVATION_TOKEN_TTL_HOURS} hours.</p>"
        f'<p><a href="{link}">Activate account</a></p>'
        "<p>If you did not sign up, you can ignore this email.</p>"
    )
    _send(to_email, "Activate your Ghosty account", text_body, html_body)
    logger.info(f"[mailer] activation email sent to={to_email}")
