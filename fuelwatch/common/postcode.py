"""UK postcode normalisation and validation."""

from __future__ import annotations

import re

UK_UNIT_POSTCODE_RE = re.compile(r"^([A-Z]{1,2}\d[A-Z\d]?)\s(\d[A-Z]{2})$")
UK_OUTWARD_CODE_RE = re.compile(r"^[A-Z]{1,2}\d[A-Z\d]?$")
_EMBEDDED_POSTCODE_RE = re.compile(r"\b([A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2})\b")

_PUNCTUATION_RE = re.compile(r"[\.,;:'\"`_\-/\\()\[\]{}|~!?@#$%^&*+=]")
_WHITESPACE_RE = re.compile(r"\s+")


def is_valid_uk_unit_postcode(value: str) -> bool:
    return bool(UK_UNIT_POSTCODE_RE.match(value))


def is_valid_outward_code(value: str) -> bool:
    return bool(UK_OUTWARD_CODE_RE.match(value))


def normalise_postcode(raw: str | None) -> str | None:
    if raw is None:
        return None

    cleaned = raw.strip()
    if not cleaned:
        return None

    cleaned = cleaned.upper()
    # Some feeds put the full address in the postcode field.
    if len(cleaned) > 8:
        embedded = _EMBEDDED_POSTCODE_RE.search(cleaned)
        if embedded:
            cleaned = embedded.group(1)
    cleaned = _PUNCTUATION_RE.sub("", cleaned)
    cleaned = _WHITESPACE_RE.sub("", cleaned)

    if len(cleaned) < 5 or len(cleaned) > 8:
        return None

    cleaned = f"{cleaned[:-3]} {cleaned[-3:]}"

    if not is_valid_uk_unit_postcode(cleaned):
        return None

    return cleaned


def normalise_outward_code(raw: str | None) -> str | None:
    if raw is None:
        return None
    cleaned = _WHITESPACE_RE.sub("", raw).upper()
    if not is_valid_outward_code(cleaned):
        return None
    return cleaned


def prefix_key(value: str | None) -> str:
    """Whitespace-free, case-folded form used for postcode prefix matching."""
    if not value:
        return ""
    return _WHITESPACE_RE.sub("", value).casefold()


def postcode_has_prefix(postcode: str | None, prefix: str) -> bool:
    return prefix_key(postcode).startswith(prefix_key(prefix))
