"""Logging setup.

Reviewer e-mail addresses and phone numbers show up in uploaded rosters and
notification recipients; ``ContactSafeFilter`` masks them on every handler
so they never reach stdout.  Reviewer codes (``DRAPL-001``) and REC codes
are left readable.
"""
import logging
import logging.config
import re

REDACTED = "[REDACTED]"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
# Philippine mobile (0917-123-4567, +639171234567) and NANP-style landlines
_PHONE_RES = (
    re.compile(r"(?<!\d)(?:\+63|0)9\d{2}[-\s]?\d{3}[-\s]?\d{4}(?!\d)"),
    re.compile(r"\b(?:\+1[-.\s]?)?(?:\(?\d{3}\)?[-.\s])\d{3}[-.\s]\d{4}\b"),
)


def redact_contacts(text: str) -> str:
    text = _EMAIL_RE.sub(REDACTED, text)
    for pattern in _PHONE_RES:
        text = pattern.sub(REDACTED, text)
    return text


class ContactSafeFilter(logging.Filter):
    """Redact e-mail addresses and phone numbers from the message and its args."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_contacts(record.msg)

        args = record.args
        if isinstance(args, tuple):
            record.args = tuple(redact_contacts(a) if isinstance(a, str) else a for a in args)
        elif isinstance(args, dict):
            record.args = {k: redact_contacts(v) if isinstance(v, str) else v for k, v in args.items()}
        return True


def build_logging_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"contacts": {"()": ContactSafeFilter}},
        "formatters": {"plain": {"format": LOG_FORMAT}},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "filters": ["contacts"],
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": level.upper()},
        "loggers": {
            # access lines repeat the request path for every dashboard poll
            "uvicorn.access": {"handlers": ["stdout"], "level": "WARNING", "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    }


def setup_logging() -> None:
    from erec.core.settings import get_settings

    logging.config.dictConfig(build_logging_config(get_settings().log_level))
