"""Assessment form lookups."""
from __future__ import annotations

import re
from dataclasses import dataclass

from erec.core.constants import FORM_TYPE_NAMES, FORM_URLS
from erec.review.matching import reviewer_matches

_FORM_SUFFIX_RE = re.compile(r"\s*FORM$", re.IGNORECASE)


@dataclass(frozen=True)
class ReviewerForm:
    form_type: str
    form_name: str
    form_url: str


def _normalize(code: str) -> str:
    return _FORM_SUFFIX_RE.sub("", code).strip()


def form_type_name(code: str | None) -> str:
    if not code:
        return "N/A"
    return FORM_TYPE_NAMES.get(_normalize(code), code)


def form_url(code: str | None) -> str:
    if not code:
        return ""
    return FORM_URLS.get(_normalize(code), "")


def reviewer_form(protocol, reviewer_id: str, reviewer_name: str) -> ReviewerForm:
    """Resolve the form *reviewer* must submit for *protocol*.

    The reviewer's own ``document_type`` wins; the protocol-level value is
    the fallback.
    """
    if protocol is None:
        return ReviewerForm(form_type="", form_name="N/A", form_url="")

    document_type = ""
    for entry in protocol.reviewers or []:
        if reviewer_matches(entry, reviewer_id, reviewer_name) and entry.get("document_type"):
            document_type = entry["document_type"]
            break

    if not document_type:
        document_type = protocol.document_type or ""

    return ReviewerForm(
        form_type=document_type,
        form_name=form_type_name(document_type),
        form_url=form_url(document_type),
    )
