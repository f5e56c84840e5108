"""Email digest channel for expiration alerts."""

import logging
import typing as t
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, select_autoescape

from kitchentory.core.config import SETTINGS
from kitchentory.core.models import AlertSeverity
from kitchentory.schemas.alert import Alert
from kitchentory.services.notifications import EmailSender

LOGGER = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
EMAIL_ENV = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)


async def send_email(
    to_email: str,
    subject: str,
    body: str,
    html_body: str | None = None,
) -> bool:
    """Send an email to a single recipient.

    Args:
        to_email (str): Recipient email address.
        subject (str): Email subject.
        body (str): Plain text email body.
        html_body (str | None): Optional HTML email body.

    Returns:
        bool: True if email was sent successfully, False otherwise.
    """
    if not SETTINGS.smtp_enabled:
        LOGGER.debug("SMTP not enabled, skipping email")
        return False

    if not to_email:
        LOGGER.warning("No recipient email provided")
        return False

    try:
        message: MIMEMultipart = MIMEMultipart("alternative")
        message["From"] = SETTINGS.smtp_from_email
        message["To"] = to_email
        message["Subject"] = subject

        message.attach(MIMEText(body, "plain"))

        if html_body is not None:
            message.attach(MIMEText(html_body, "html"))

        await aiosmtplib.send(
            message,
            hostname=SETTINGS.smtp_host,
            port=SETTINGS.smtp_port,
            username=SETTINGS.smtp_user if SETTINGS.smtp_user else None,
            password=SETTINGS.smtp_password if SETTINGS.smtp_password else None,
            use_tls=SETTINGS.smtp_port == 465,
            start_tls=SETTINGS.smtp_port == 587,
            timeout=10,
        )
        LOGGER.info("Email sent to %s", to_email)
        return True

    except Exception:  # pylint: disable=broad-except
        LOGGER.exception("Failed to send email to %s", to_email)
        return False


def render_template(template_name: str, **context: t.Any) -> str:
    """Render a Jinja2 email template with the given context.

    Args:
        template_name (str): The name of the template file.
        **context: Context variables for rendering the template.

    Returns:
        str: The rendered template as a string.
    """
    return EMAIL_ENV.get_template(template_name).render(**context)


def group_by_severity(
    alerts: t.Sequence[Alert],
) -> t.Dict[str, t.List[Alert]]:
    """Group alerts into severity buckets, most urgent first.

    Args:
        alerts (t.Sequence[Alert]): The alerts to group.

    Returns:
        t.Dict[str, t.List[Alert]]: Alerts keyed by severity value.
    """
    groups: t.Dict[str, t.List[Alert]] = {
        severity.value: []
        for severity in (
            AlertSeverity.EXPIRED,
            AlertSeverity.CRITICAL,
            AlertSeverity.WARNING,
            AlertSeverity.REMINDER,
        )
    }
    for alert in alerts:
        groups[alert.severity.value].append(alert)
    return groups


def format_digest_subject(alerts: t.Sequence[Alert]) -> str:
    """Build the digest subject from the most urgent severity present.

    Args:
        alerts (t.Sequence[Alert]): The alerts in the digest.

    Returns:
        str: The email subject.
    """
    groups: t.Dict[str, t.List[Alert]] = group_by_severity(alerts)
    expired: int = len(groups[AlertSeverity.EXPIRED.value])
    critical: int = len(groups[AlertSeverity.CRITICAL.value])

    if expired:
        return (
            f"🚨 [Kitchentory] {expired} item{'s' if expired > 1 else ''}"
            " expired"
        )
    if critical:
        return (
            f"⚠️ [Kitchentory] {critical}"
            f" item{'s' if critical > 1 else ''} expiring soon"
        )
    return "📅 [Kitchentory] Kitchen inventory update"


async def send_expiration_digest(
    alerts: t.Sequence[Alert], to_email: str
) -> bool:
    """Send a digest email describing a batch of alerts.

    Args:
        alerts (t.Sequence[Alert]): The alerts to describe.
        to_email (str): Recipient email address.

    Returns:
        bool: True if email was sent, False otherwise.
    """
    if not alerts:
        return False

    context: t.Dict[str, t.Any] = {
        "groups": group_by_severity(alerts),
        "app_url": SETTINGS.app_url,
    }
    return await send_email(
        to_email=to_email,
        subject=format_digest_subject(alerts),
        body=render_template("emails/expiration_alert.txt", **context),
        html_body=render_template("emails/expiration_alert.html", **context),
    )


def build_email_sender() -> EmailSender | None:
    """Return the digest sender for the configured recipient.

    Returns:
        EmailSender | None:
            A sender, or None when SMTP or the recipient is not configured.
    """
    if not SETTINGS.smtp_enabled or not SETTINGS.alert_email_recipient:
        return None

    recipient: str = SETTINGS.alert_email_recipient

    async def _send(alerts: t.Sequence[Alert]) -> bool:
        return await send_expiration_digest(alerts, recipient)

    return _send
