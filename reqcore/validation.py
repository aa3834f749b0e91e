"""Padded IP validation and translated validation messages."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

REGEX_PADDED_IP = r"^((25[0-5]|2[0-4]\d|1\d\d|0\d\d)\.?\b){4}$"
PADDED_IP_TAG = "padded_ip"
PADDED_IP_MESSAGE = "{0} بایستی به فرمت 000.000.000.000 باشد"

_PADDED_IP = re.compile(REGEX_PADDED_IP, re.ASCII)


def is_padded_ip(value: str) -> bool:
    """True for a dotted IPv4 address with every octet written in three digits."""
    if len(value) != 15:
        return False
    return _PADDED_IP.match(value) is not None


VALIDATORS = {PADDED_IP_TAG: is_padded_ip}


@dataclass
class Translator:
    """Message templates per validation tag with ``{0}``, ``{1}`` placeholders."""

    locale: str = "fa"
    messages: dict[str, str] = field(default_factory=dict)

    def add(self, tag: str, message: str) -> None:
        if tag in self.messages:
            raise ValueError(f"translation for tag {tag!r} already exists")
        self.messages[tag] = message

    def translate(self, tag: str, field: str, *args) -> str:
        try:
            text = self.messages[tag]
        except KeyError:
            raise KeyError(f"no translation for tag {tag!r}") from None
        for index, value in enumerate((field, *args)):
            text = text.replace("{%d}" % index, str(value))
        return text


def init_translator() -> Translator:
    """Build the Persian translator with the padded IP message registered."""
    translator = Translator(locale="fa")
    translator.add(PADDED_IP_TAG, PADDED_IP_MESSAGE)
    return translator