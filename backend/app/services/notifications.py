"""Best-effort e-mail notifications.

Every send is submitted to a small thread pool and returns immediately.
Delivery failures are logged and never reach the caller.
"""
import logging
import smtplib
from concurrent.futures import ThreadPoolExecutor
from email.message import EmailMessage

from app.config import Settings

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Fire-and-forget SMTP notifier."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._executor = ThreadPoolExecutor(
            max_workers=settings.NOTIFY_MAX_WORKERS,
            thread_name_prefix="notifier",
        )

    def send_event_notification(self, email: str, event_title: str, message: str) -> None:
        body = f"{event_title}\n\n{message}\n"
        self._dispatch(email, f"Event Update: {event_title}", body)

    def send_welcome_email(self, email: str, role: str) -> None:
        body = (
            "Your account has been successfully created.\n\n"
            f"Role: {role}\n\n"
            "You can now log in and start managing events!\n"
        )
        self._dispatch(email, "Welcome to Event Management App!", body)

    def shutdown(self) -> None:
        # Stalled sends are bounded by the SMTP socket timeout; do not wait on them.
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _dispatch(self, to: str, subject: str, body: str) -> None:
        try:
            self._executor.submit(self._deliver, to, subject, body)
        except RuntimeError:
            logger.error("Notifier is shut down; dropped '%s' for %s", subject, to)

    def _deliver(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.settings.MAIL_FROM
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        if not self.settings.MAIL_ENABLED:
            logger.info("Mail disabled; would send '%s' to %s", subject, to)
            return

        try:
            with smtplib.SMTP(
                self.settings.SMTP_HOST,
                self.settings.SMTP_PORT,
                timeout=self.settings.NOTIFY_TIMEOUT_SECONDS,
            ) as smtp:
                if self.settings.SMTP_STARTTLS:
                    smtp.starttls()
                if self.settings.SMTP_USER:
                    smtp.login(self.settings.SMTP_USER, self.settings.SMTP_PASSWORD)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send '%s' to %s", subject, to)
            return
        logger.info("Sent '%s' to %s", subject, to)
