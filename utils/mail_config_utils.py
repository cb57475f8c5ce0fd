import logging
from pathlib import Path

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from jinja2 import Environment, FileSystemLoader, select_autoescape

from utils.settings import Settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


class MailNotConfigured(RuntimeError):
    pass


def get_mail_conf(settings: Settings) -> ConnectionConfig:
    if not settings.mail_configured:
        raise MailNotConfigured("Mail not configured. Set MAIL_USERNAME and MAIL_PASSWORD.")

    return ConnectionConfig(
        MAIL_USERNAME=settings.mail_username,
        MAIL_PASSWORD=settings.mail_password,
        MAIL_FROM=settings.mail_from,
        MAIL_FROM_NAME=settings.mail_from_name,
        MAIL_PORT=settings.mail_port,
        MAIL_SERVER=settings.mail_server,
        MAIL_STARTTLS=settings.mail_starttls,
        MAIL_SSL_TLS=settings.mail_ssl_tls,
        USE_CREDENTIALS=True,
        VALIDATE_CERTS=True,
        SUPPRESS_SEND=1 if settings.mail_suppress_send else 0,
    )


def render_invite_email(
    full_name: str,
    email: str,
    role: str,
    temporary_password: str,
    login_url: str,
    year: int,
) -> str:
    return templates.get_template("invite_email.html").render(
        full_name=full_name,
        email=email,
        role=role,
        temporary_password=temporary_password,
        login_url=login_url,
        year=year,
    )


async def send_invite_email(
    settings: Settings,
    to: str,
    full_name: str,
    role: str,
    temporary_password: str,
    year: int,
    login_url: str = "#",
) -> None:
    """Send the account invitation with the temporary password"""
    conf = get_mail_conf(settings)
    message = MessageSchema(
        subject="You're invited to Smart Leave Management",
        recipients=[to],
        body=render_invite_email(full_name, to, role, temporary_password, login_url, year),
        subtype=MessageType.html,
    )

    fm = FastMail(conf)
    await fm.send_message(message)
    logger.info("Invite email sent", extra={"recipient": to})
