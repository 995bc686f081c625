import smtplib
from email.message import EmailMessage
from typing import Iterable, Optional

from notify.base import format_body, format_subject
from shared.config.schema import NotifyConfig
from shared.errors import NotificationFailure
from shared.models.models import PositionClosedEvent


def send_email(
    smtp_host: str,
    smtp_port: int,
    username: Optional[str],
    password: Optional[str],
    from_addr: str,
    to_addrs: Iterable[str],
    subject: str,
    content: str,
    use_tls: bool = True,
    timeout: float = 10.0,
) -> None:
    message = EmailMessage()
    message["From"] = from_addr
    message["To"] = ",".join(to_addrs)
    message["Subject"] = subject
    message.set_content(content)
    with smtplib.SMTP(smtp_host, smtp_port, timeout=timeout) as smtp:
        if use_tls:
            smtp.starttls()
        if username and password:
            smtp.login(username, password)
        smtp.send_message(message)


class EmailNotifier:
    """平仓时发送邮件（SMTP + STARTTLS）。"""

    def __init__(
        self,
        *,
        smtp_host: str,
        smtp_port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        email_from: Optional[str] = None,
        email_to: Iterable[str] = (),
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = int(smtp_port)
        self.username = username
        self.password = password
        self.email_from = email_from or username or ""
        self.email_to = list(email_to)
        self.use_tls = use_tls
        self.timeout = float(timeout)

    @classmethod
    def from_config(cls, cfg: NotifyConfig) -> "EmailNotifier":
        return cls(
            smtp_host=cfg.smtp_host,
            smtp_port=cfg.smtp_port,
            username=cfg.username,
            password=cfg.password,
            email_from=cfg.email_from,
            email_to=cfg.email_to,
            use_tls=cfg.use_tls,
            timeout=cfg.timeout,
        )

    def notify_position_closed(self, event: PositionClosedEvent) -> None:
        if not self.email_to:
            raise NotificationFailure("no email recipients configured")
        try:
            send_email(
                self.smtp_host,
                self.smtp_port,
                self.username,
                self.password,
                self.email_from,
                self.email_to,
                format_subject(event),
                format_body(event),
                use_tls=self.use_tls,
                timeout=self.timeout,
            )
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationFailure(f"smtp send failed: {exc}") from exc
