"""Canonical status, priority and form-type vocabularies.

Reviewer and protocol status
----------------------------
Stored status is one of ``In Progress`` / ``Completed``.  Aggregate views
add ``Partially Completed`` for protocol groups where only some reviewers
have finished, and display labels ``Overdue`` / ``Due Soon`` derived from
the due date at read time.  Derived labels are never persisted.

Form types
----------
Reviewers submit one of the committee's assessment forms.  Codes arrive in
several spellings (``PRA``, ``Form 06B1 PRA``, ``PRA FORM``); lookups strip
a trailing ``FORM`` before matching.
"""
from __future__ import annotations

# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------

STATUS_IN_PROGRESS = "In Progress"
STATUS_COMPLETED = "Completed"
STATUS_PARTIALLY_COMPLETED = "Partially Completed"
STATUS_OVERDUE = "Overdue"
STATUS_DUE_SOON = "Due Soon"

VALID_REVIEWER_STATUSES: frozenset[str] = frozenset({STATUS_IN_PROGRESS, STATUS_COMPLETED})

# ---------------------------------------------------------------------------
# Notices
# ---------------------------------------------------------------------------

PRIORITY_ORDER: dict[str, int] = {
    "high": 0,
    "medium": 1,
    "low": 2,
    "none": 3,
}

VALID_PRIORITIES: frozenset[str] = frozenset(PRIORITY_ORDER.keys())

# ---------------------------------------------------------------------------
# Notification settings
# ---------------------------------------------------------------------------

VALID_FREQUENCIES: frozenset[str] = frozenset({"daily", "weekly", "twice-weekly"})

# ---------------------------------------------------------------------------
# Form types
# ---------------------------------------------------------------------------

FORM_TYPE_NAMES: dict[str, str] = {
    "CFEFR": "Continuing Full Ethics Form Review",
    "Form 04A CERF": "Continuing Ethics Review Form",
    "Form 06B1 PRA": "Protocol Review Assessment Form",
    "Form 06B2 PRA-EX": "Protocol Review Assessment-Exemption Form",
    "Form 06C ICA": "Informed Consent Assessment Form",
    "PRA": "Protocol Review Assessment Form",
    "PRA-EX": "Protocol Review Assessment-Exemption Form",
    "PRA_EX": "Protocol Review Assessment-Exemption Form",
    "ICA": "Informed Consent Assessment Form",
}

FORM_URLS: dict[str, str] = {
    "ICA": "https://forms.office.com/r/0nQCTjvBsv",
    "PRA": "https://forms.office.com/r/4WuaHiiJar",
    "PRA-EX": "https://forms.office.com/r/vT231a87fj",
    "PRA_EX": "https://forms.office.com/r/vT231a87fj",
    "CFEFR": "https://forms.office.com/r/n6RU8EuT3P",
    "Form 06C ICA": "https://forms.office.com/r/0nQCTjvBsv",
    "Form 06B1 PRA": "https://forms.office.com/r/4WuaHiiJar",
    "Form 06B2 PRA-EX": "https://forms.office.com/r/vT231a87fj",
}

# ---------------------------------------------------------------------------
# Release periods
# ---------------------------------------------------------------------------

RELEASE_ORDINALS: dict[str, int] = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
}

MONTH_NAMES: list[str] = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

# ---------------------------------------------------------------------------
# Spreadsheet column aliases (first match wins)
# ---------------------------------------------------------------------------

COLUMN_ALIASES: dict[str, list[str]] = {
    "protocol_name": ["Main Folder", "Folder", "Research Title"],
    "reviewer": ["Reviewer"],
    "document_type": ["Document", "Form"],
    "protocol_file": ["Link", "Folder Link", "E-Link"],
    "rec_code": ["SPUP REC Code", "REC Code"],
    "principal_investigator": ["Principal Investigator"],
    "adviser": ["Adviser"],
    "course_program": ["Course/Program"],
}

#: Canonical names of columns every upload is expected to carry.
REQUIRED_COLUMNS: dict[str, str] = {
    "Main Folder": "protocol_name",
    "Reviewer": "reviewer",
    "Document": "document_type",
    "Link": "protocol_file",
}
