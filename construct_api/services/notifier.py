"""
Registration confirmation notifications

Sending is best effort: dispatch_notification logs failures and never raises,
so a broken mail server cannot change the outcome of a registration.
"""
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import List

from construct_api.models import EmailSettings, TeamRegistration


logger = logging.getLogger(__name__)


class Notifier(ABC):
    @abstractmethod
    def notify(self, record: TeamRegistration) -> None:
        """Tell the team their registration was received"""


class LogNotifier(Notifier):
    """Used when SMTP is not configured"""

    def notify(self, record: TeamRegistration) -> None:
        logger.info(f"📭 Skipping confirmation email for {record.lead.email}: email transport not configured")


def format_members(record: TeamRegistration) -> List[str]:
    if not record.members:
        return ["(leader only)"]
    return [f"{m.slot}. {m.name} <{m.email}>" for m in record.members]


def build_confirmation(record: TeamRegistration, sender: str, reply_to: str = None) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = f"Registration received: {record.team_name}"
    message["From"] = sender
    message["To"] = record.lead.email
    cc = [m.email for m in record.members if m.email]
    if cc:
        message["Cc"] = ", ".join(cc)
    if reply_to:
        message["Reply-To"] = reply_to

    lines = [
        f"Hi {record.lead.name},",
        "",
        f"We have received the registration for team \"{record.team_name}\" ({record.team_size} members).",
        "",
        f"Lead: {record.lead.name} <{record.lead.email}>",
        "Teammates:",
        *format_members(record),
    ]
    if record.campus:
        lines.append(f"Campus: {record.campus}" + (f" ({record.batch})" if record.batch else ""))
    lines += [
        "",
        "Your final-submission access code will be emailed separately before the deadline.",
        "Reply to this email if any detail is wrong.",
    ]
    message.set_content("\n".join(lines))
    return message


class SmtpNotifier(Notifier):
    def __init__(self, settings: EmailSettings):
        self.settings = settings

    def notify(self, record: TeamRegistration) -> None:
        s = self.settings
        sender = s.from_address or s.username or "no-reply@example.com"
        message = build_confirmation(record, sender, s.reply_to)

        smtp_class = smtplib.SMTP_SSL if s.use_ssl else smtplib.SMTP
        with smtp_class(s.smtp_host, s.smtp_port, timeout=s.timeout_seconds) as smtp:
            if s.use_tls and not s.use_ssl:
                smtp.starttls()
            smtp.login(s.username, s.password)
            smtp.send_message(message)
        logger.info(f"📧 Confirmation email sent to {record.lead.email}")


def build_notifier(settings: EmailSettings) -> Notifier:
    if settings.configured:
        return SmtpNotifier(settings)
    return LogNotifier()


def dispatch_notification(notifier: Notifier, record: TeamRegistration) -> None:
    """Run a notification, logging instead of propagating any failure"""
    try:
        notifier.notify(record)
    except Exception as e:
        logger.error(
            f"❌ Confirmation email failed for {record.lead.email}: {type(e).__name__}: {e}",
            exc_info=True
        )
