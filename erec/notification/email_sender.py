"""SMTP delivery for notification digests.

A failed send is retried twice more, sleeping 1s then 2s, before the receipt
is marked ``FAILED``.  Recipients are identified in logs and receipts by
reviewer code (or ``admin``); the address itself is never logged.
"""
from __future__ import annotations

import logging
import smtplib
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Literal

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 1

DeliveryStatus = Literal["SENT", "FAILED", "SKIPPED"]


@dataclass
class DeliveryReceipt:
    recipient: str
    email: str
    subject: str
    status: DeliveryStatus
    timestamp: datetime
    smtp_response: str | None
    attempt_count: int


def backoff_delay(attempt: int) -> int:
    """Seconds to wait after failed *attempt* (1-based): 1, 2, 4, ..."""
    return BACKOFF_SECONDS * 2 ** (attempt - 1)


class DigestSender:
    """Deliver HTML digests through a plain SMTP relay."""

    def __init__(self, smtp_host: str, smtp_port: int = 25, mail_from: str = "noreply@erec.local") -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.mail_from = mail_from

    def _message(self, email: str, subject: str, body: str) -> str:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.mail_from
        msg["To"] = email
        msg.attach(MIMEText(body, "html"))
        return msg.as_string()

    def _deliver(self, email: str, payload: str) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.sendmail(self.mail_from, [email], payload)

    def send(self, recipient: str, email: str | None, subject: str, body: str) -> DeliveryReceipt:
        """Send one digest; *recipient* is the label used in logs and receipts."""

        def receipt(status: DeliveryStatus, response: str | None, attempts: int) -> DeliveryReceipt:
            return DeliveryReceipt(
                recipient=recipient,
                email=email or "",
                subject=subject,
                status=status,
                timestamp=datetime.now(timezone.utc),
                smtp_response=response,
                attempt_count=attempts,
            )

        if not email:
            logger.info("No e-mail on file for %s; digest skipped", recipient)
            return receipt("SKIPPED", None, 0)

        payload = self._message(email, subject, body)
        error: str | None = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                self._deliver(email, payload)
            except (smtplib.SMTPException, OSError) as exc:
                error = str(exc)
                logger.warning("Digest %r to %s failed on attempt %d: %s", subject, recipient, attempt, error)
                if attempt < MAX_ATTEMPTS:
                    time.sleep(backoff_delay(attempt))
                continue
            logger.info("Digest %r sent to %s", subject, recipient)
            return receipt("SENT", "250 OK", attempt)

        logger.error("Giving up on digest %r to %s after %d attempts", subject, recipient, MAX_ATTEMPTS)
        return receipt("FAILED", error, MAX_ATTEMPTS)
