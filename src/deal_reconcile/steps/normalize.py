"""Identifier normalization: phones, chat links, stage labels and names.

Everything here is a pure function that degrades to ``None`` (or the input,
for labels) instead of raising on malformed values.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Mapping

_PHONE_PUNCTUATION = re.compile(r"[\s\-()\[\].]")
_NON_DIGITS = re.compile(r"\D")
_NAME_PUNCTUATION = re.compile(r"[&.,]")
_CHAT_ID_PATTERN = re.compile(r"/chat/(\d+)")

STAGE_ALIASES: Mapping[str, str] = {"DEVOLUCIÓN": "DEVOLUCION"}


@dataclass(frozen=True)
class PhoneRules:
    """Country rule set for phone normalization.

    ``lossy_fallback`` controls the last-resort guess that keeps the last
    ``national_length`` digits of otherwise unrecognised input. The guess can
    produce a wrong number for malformed input.
    """

    country_code: str = "57"
    national_length: int = 10
    mobile_prefixes: tuple[str, ...] = ("3",)
    min_length: int = 7
    lossy_fallback: bool = True

    @property
    def international_length(self) -> int:
        return 1 + len(self.country_code) + self.national_length


COLOMBIA = PhoneRules()


def normalize_phone(raw: str | None, rules: PhoneRules = COLOMBIA) -> str | None:
    if not raw:
        return None
    phone = _PHONE_PUNCTUATION.sub("", raw)
    if len(phone) < rules.min_length:
        return None

    code = rules.country_code
    prefixed = f"+{code}"
    unprefixed_length = rules.international_length - 1

    if phone.startswith(prefixed) and len(phone) == rules.international_length:
        return phone
    if phone.startswith(code) and len(phone) == unprefixed_length:
        return f"+{phone}"
    if (
        len(phone) == rules.national_length
        and phone.isdigit()
        and phone.startswith(rules.mobile_prefixes)
    ):
        return f"{prefixed}{phone}"
    if phone.startswith("+"):
        return phone
    # Noisy exports drop or repeat a digit after the country code.
    if phone.startswith(code) and unprefixed_length - 1 <= len(phone) <= unprefixed_length + 1:
        return f"+{phone}"
    if len(phone) == rules.national_length and phone.isdigit():
        return f"{prefixed}{phone}"

    if not rules.lossy_fallback:
        return None
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) < rules.national_length:
        return None
    return f"{prefixed}{digits[-rules.national_length:]}"


def phone_tail(phone: str | None, length: int = 8) -> str | None:
    """Last ``length`` digits of a phone, used for partial matching."""
    if not phone:
        return None
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) < length:
        return None
    return digits[-length:]


def extract_secondary_id(url: str | None, pattern: re.Pattern[str] = _CHAT_ID_PATTERN) -> str | None:
    if not url:
        return None
    match = pattern.search(url)
    return match.group(1) if match else None


def normalize_stage(label: str, aliases: Mapping[str, str] = STAGE_ALIASES) -> str:
    return aliases.get(label, label)


def normalize_name(name: str | None) -> str:
    """Lowercase, strip accents, turn ``& . ,`` into spaces, collapse whitespace."""
    if not name:
        return ""
    decomposed = unicodedata.normalize("NFD", name.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(_NAME_PUNCTUATION.sub(" ", stripped).split())
