# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Outgoing mail.

The services only know the ``send_email(to, subject, html) -> bool``
capability.  :class:`SmtpMailer` is the production implementation;
:class:`MailDispatcher` runs sends on a small thread pool so a slow or dead
SMTP server never holds up an HTTP response.  Failures are logged, never
raised to the caller.
"""

import smtplib
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import partial
from typing import Optional, Protocol
from urllib.parse import quote

from core.config import settings
from core.logger import logger, mask_email


class Mailer(Protocol):
    def send_email(self, to: str, subject: str, html: str) -> bool:
        ...


class SmtpMailer:
    """Send HTML mail through the configured SMTP relay."""

    def __init__(self, cfg=None):
        self._cfg = cfg or settings

    def send_email(self, to: str, subject: str, html: str) -> bool:
        cfg = self._cfg
        if not cfg.smtp_host:
            # Development mode – nothing to send through
            logger.warning(
                "SMTP not configured, skipping mail to %s (subject=%r)",
                mask_email(to),
                subject,
            )
            return True

        msg = MIMEMultipart()
        msg["From"] = f"{cfg.smtp_from_name} <{cfg.smtp_from}>"
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html", "utf-8"))

        try:
            with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.smtp_timeout_seconds) as server:
                server.starttls()
                if cfg.smtp_user:
                    server.login(cfg.smtp_user, cfg.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send mail to %s: %s", mask_email(to), exc)
            return False

        logger.info("Mail %r sent to %s", subject, mask_email(to))
        return True


# ---------------------------------------------------------------------------
# Message bodies
# ---------------------------------------------------------------------------

_BUTTON_STYLE = (
    "display: inline-block; background: linear-gradient(to right, #3B82F6, #9333EA); "
    "color: white; padding: 12px 24px; text-decoration: none; border-radius: 8px; "
    "margin: 16px 0;"
)


def _action_url(app_url: str, path: str, token: str) -> str:
    return f"{app_url.rstrip('/')}/{path}?token={quote(token)}"


def verification_email_html(url: str, expire_hours: int) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #3B82F6;">Welcome to VoyageX!</h1>
  <p>Please verify your email address by clicking the button below:</p>
  <a href="{url}" style="{_BUTTON_STYLE}">Verify Email</a>
  <p>Or copy and paste this link in your browser:</p>
  <p>{url}</p>
  <p>This link will expire in {expire_hours} hours.</p>
</div>
""".strip()


def password_reset_email_html(url: str, expire_minutes: int) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #3B82F6;">Reset Your Password</h1>
  <p>You requested to reset your password. Click the button below to proceed:</p>
  <a href="{url}" style="{_BUTTON_STYLE}">Reset Password</a>
  <p>Or copy and paste this link in your browser:</p>
  <p>{url}</p>
  <p>This link will expire in {expire_minutes} minutes.</p>
  <p>If you didn't request this, please ignore this email.</p>
</div>
""".strip()


# ---------------------------------------------------------------------------
# Background dispatch
# ---------------------------------------------------------------------------


def _log_outcome(to: str, subject: str, future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("Mail %r to %s raised", subject, mask_email(to), exc_info=exc)
    elif not future.result():
        logger.warning("Mail %r to %s was not delivered", subject, mask_email(to))


class MailDispatcher:
    """Fire-and-forget sending of the account mails."""

    def __init__(self, mailer: Mailer, max_workers: Optional[int] = None, cfg=None):
        self._mailer = mailer
        # links and expiry wording in the bodies come from this config
        self._cfg = cfg or settings
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers or self._cfg.mail_workers,
            thread_name_prefix="mail",
        )
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def send_verification_email(self, to: str, token: str) -> None:
        cfg = self._cfg
        url = _action_url(cfg.app_url, "verify-email", token)
        html = verification_email_html(url, cfg.email_verification_expire_hours)
        self._submit(to, "Verify your email address", html)

    def send_password_reset_email(self, to: str, token: str) -> None:
        cfg = self._cfg
        url = _action_url(cfg.app_url, "reset-password", token)
        html = password_reset_email_html(url, cfg.password_reset_expire_minutes)
        self._submit(to, "Reset your password", html)

    def _submit(self, to: str, subject: str, html: str) -> None:
        future = self._pool.submit(self._mailer.send_email, to, subject, html)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(partial(_log_outcome, to, subject))
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every mail submitted so far has been attempted."""
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        self._pool.shutdown(wait=True)
