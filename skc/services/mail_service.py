"""Service for sending account lifecycle emails."""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from skc.domain.models.user import User

logger = logging.getLogger(__name__)


class MailService:
    """Service for sending account emails via SMTP.

    Delivery is best-effort: failures are logged and reported through the
    return value, never raised to the caller.
    """

    def __init__(
        self,
        base_url: str,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "SKC",
    ):
        self.base_url = base_url.rstrip("/")
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username or ""
        self.smtp_password = smtp_password or ""
        self.from_email = from_email or ""
        self.from_name = from_name
        self.enabled = bool(self.smtp_host and self.from_email)

    def send_activation_email(self, user: User) -> bool:
        """Send the link that activates a self-registered account."""
        url = f"{self.base_url}/account/activate?key={user.activation_key}"
        return self._send_templated(
            user,
            subject="SKC account activation",
            intro="Your SKC account has been created, please click on the link below to activate it:",
            url=url,
            label="Activate account",
        )

    def send_creation_email(self, user: User) -> bool:
        """Send the link an administrator-created user follows to set a password."""
        url = f"{self.base_url}/account/reset/finish?key={user.reset_key}"
        return self._send_templated(
            user,
            subject="SKC account creation",
            intro="Your SKC account has been created, please click on the link below to choose a password:",
            url=url,
            label="Choose password",
        )

    def send_password_reset_mail(self, user: User) -> bool:
        """Send the password reset link, valid for 24 hours."""
        url = f"{self.base_url}/account/reset/finish?key={user.reset_key}"
        return self._send_templated(
            user,
            subject="SKC password reset",
            intro="For your SKC account a password reset was requested, please click on the link below to reset it:",
            url=url,
            label="Reset password",
        )

    def _send_templated(self, user: User, subject: str, intro: str, url: str, label: str) -> bool:
        if not user.email:
            logger.warning("Email doesn't exist for user '%s'", user.login)
            return False

        if not self.enabled:
            # Log the link for development
            logger.info("[EMAIL] %s for %s: %s", subject, user.email, url)
            return True

        greeting = f"Dear {user.first_name or user.login}"
        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <p>{html.escape(greeting)}</p>
                <p>{intro}</p>
                <p><a href="{html.escape(url, quote=True)}">{label}</a></p>
                <p>Regards,<br/><em>SKC Team.</em></p>
            </body>
        </html>
        """

        text_body = f"""
        {greeting}

        {intro}
        {url}

        Regards,
        SKC Team.
        """

        return self._send_email(user.email, subject, html_body, text_body)

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        """
        Send an email via SMTP.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_body: HTML body
            text_body: Plain text body

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            msg.attach(MIMEText(text_body, "plain", "utf-8"))
            msg.attach(MIMEText(html_body, "html", "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                if self.smtp_username:
                    server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            logger.debug("Sent email '%s' to %s", subject, to_email)
            return True

        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Email could not be sent to user '%s': %s", to_email, exc)
            return False
