"""Deterministic parsing of "call X and say Y" requests."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

CALL_PATTERNS = [
    re.compile(r"call\s+(.+?)\s+and\s+say\s+(.+)", re.IGNORECASE),
    re.compile(r"call\s+(.+?)\s+and\s+tell\s+(?:them|him|her)\s+(.+)", re.IGNORECASE),
    re.compile(r"call\s+(.+?)\s+and\s+inform\s+(?:them|him|her)\s+(.+)", re.IGNORECASE),
    re.compile(r"call\s+(.+?)\s+(?:to\s+)?say\s+(.+)", re.IGNORECASE),
    re.compile(r"call\s+(.+?)\s+(?:to\s+)?tell\s+(?:them|him|her)\s+(.+)", re.IGNORECASE),
    re.compile(
        r"make\s+(?:a\s+)?(?:phone\s+)?call\s+(?:to\s+)?(.+?)\s+and\s+say\s+(.+)", re.IGNORECASE
    ),
    re.compile(
        r"make\s+(?:a\s+)?(?:phone\s+)?call\s+(?:to\s+)?(.+?)\s+and\s+tell\s+(?:them|him|her)\s+(.+)",
        re.IGNORECASE,
    ),
    re.compile(r"phone\s+(.+?)\s+(?:and|to)\s+(?:say|tell|inform)\s+(.+)", re.IGNORECASE),
    re.compile(r"dial\s+(.+?)\s+(?:and|to)\s+(?:say|tell|inform)\s+(.+)", re.IGNORECASE),
]

_NAME_SEPARATOR = re.compile(r"\s*,\s*and\s+|\s+and\s+|\s*,\s*", re.IGNORECASE)


@dataclass(slots=True)
class CallRequest:
    contacts: List[str] = field(default_factory=list)
    message: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict:
        return {"type": "call", "contacts": list(self.contacts), "message": self.message}


def split_contact_names(names: str) -> List[str]:
    """Split ``"Sarah, Mike and David"`` into individual names."""
    return [name.strip() for name in _NAME_SEPARATOR.split(names.strip()) if name.strip()]


def call_request_from_match(match: re.Match[str]) -> CallRequest:
    """Build a request from a match whose groups are (names, message)."""
    if match.re.groups < 2:
        return CallRequest(error="Pattern must capture the contacts and the message")
    contacts = split_contact_names(match.group(1) or "")
    message = (match.group(2) or "").strip()
    if not contacts or not message:
        return CallRequest(error="Could not extract contacts and message")
    return CallRequest(contacts=contacts, message=message)


def parse_call_request(text: str) -> CallRequest:
    """Try every known phrasing in turn and return the first usable parse."""
    for pattern in CALL_PATTERNS:
        match = pattern.search(text)
        if match is None:
            continue
        request = call_request_from_match(match)
        if request.ok:
            logger.debug("Parsed call request with %s: %s", pattern.pattern, request.contacts)
            return request

    return CallRequest(
        error="Could not parse call request. Please use format like: 'call [names] and say [message]'"
    )
