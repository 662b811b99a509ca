import os
import smtplib
import ssl
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Optional

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    """Raised when no configured SMTP relay accepted the message."""


@dataclass
class SMTPConfig:
    name: str
    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    use_tls: bool
    use_ssl: bool
    sender: str


def _bool_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _load_smtp(prefix: str) -> Optional[SMTPConfig]:
    host = os.environ.get(f"{prefix}_HOST")
    port_raw = os.environ.get(f"{prefix}_PORT")
    sender = os.environ.get(f"{prefix}_FROM")
    if not host or not port_raw or not sender:
        return None

    try:
        port = int(port_raw)
    except ValueError:
        raise EmailDeliveryError(f"Invalid {prefix}_PORT: {port_raw}")

    return SMTPConfig(
        name=prefix,
        host=host,
        port=port,
        user=os.environ.get(f"{prefix}_USER"),
        password=os.environ.get(f"{prefix}_PASS"),
        use_tls=_bool_env(os.environ.get(f"{prefix}_TLS"), default=True),
        use_ssl=_bool_env(os.environ.get(f"{prefix}_SSL"), default=False),
        sender=sender,
    )


def _relays() -> List[SMTPConfig]:
    return [cfg for cfg in (_load_smtp("SMTP_PRIMARY"), _load_smtp("SMTP_SECONDARY")) if cfg]


def _build_message(config: SMTPConfig, to_email: str, subject: str, html: str, text: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = config.sender
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(text)
    message.add_alternative(html, subtype="html")
    return message


def _deliver(config: SMTPConfig, message: EmailMessage) -> None:
    context = ssl.create_default_context()
    if config.use_ssl:
        with smtplib.SMTP_SSL(config.host, config.port, context=context, timeout=20) as server:
            if config.user and config.password:
                server.login(config.user, config.password)
            server.send_message(message)
        return

    with smtplib.SMTP(config.host, config.port, timeout=20) as server:
        server.ehlo()
        if config.use_tls:
            server.starttls(context=context)
            server.ehlo()
        if config.user and config.password:
            server.login(config.user, config.password)
        server.send_message(message)


def send_email(to_email: str, subject: str, html: str, text: str) -> None:
    """Send through the primary relay, falling back to the secondary one.

    Raises EmailDeliveryError when neither relay is configured or both fail.
    """
    relays = _relays()
    if not relays:
        raise EmailDeliveryError("SMTP_PRIMARY configuration missing")

    last_error: Optional[Exception] = None
    for config in relays:
        try:
            _deliver(config, _build_message(config, to_email, subject, html, text))
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("%s failed for %s: %s", config.name, to_email, exc)
            last_error = exc
            continue
        if config.name != "SMTP_PRIMARY":
            logger.info("Email sent via %s", config.name)
        return

    raise EmailDeliveryError(f"All SMTP relays failed: {last_error}")


def send_email_best_effort(to_email: Optional[str], subject: str, html: str, text: str) -> bool:
    if not to_email:
        logger.warning("Skipping email '%s': no recipient", subject)
        return False
    try:
        send_email(to_email, subject, html, text)
    except EmailDeliveryError as exc:
        logger.warning("Email '%s' to %s not delivered: %s", subject, to_email, exc)
        return False
    return True


def notify_email_address() -> Optional[str]:
    return os.environ.get("NOTIFY_EMAIL") or os.environ.get("ADMIN_EMAIL")
