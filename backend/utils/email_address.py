from __future__ import annotations

import re

# RFC 5321 practical upper bound for a forward-path address.
MAX_EMAIL_LENGTH = 254

# U+FEFF is whitespace for browsers' String.prototype.trim but not for str.isspace.
EMAIL_PATTERN = re.compile(r"[^\s\ufeff@]+@[^\s\ufeff@]+\.[^\s\ufeff@]+")
SURROUNDING_WHITESPACE = re.compile(r"^[\s\ufeff]+|[\s\ufeff]+$")


def normalize_email(value: str) -> str:
    return SURROUNDING_WHITESPACE.sub("", value).lower()


def is_valid_email(value: str) -> bool:
    return EMAIL_PATTERN.fullmatch(value) is not None


def is_within_length_limit(value: str) -> bool:
    return len(value) <= MAX_EMAIL_LENGTH
