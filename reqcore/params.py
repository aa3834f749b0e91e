"""Parameter and dictionary lookups and the security-module contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

CVV1 = "Cvv1"
CVV2 = "Cvv2"
ENCRYPT = "E"
DECRYPT = "D"


@dataclass
class ParamsModel:
    """Named string parameters; unknown names give an empty string."""

    params: dict[str, str] = field(default_factory=dict)

    def get_value(self, name: str) -> str:
        return self.params.get(name, "")


@dataclass
class DictionaryModel:
    """Message descriptions by key; unknown keys give an empty string."""

    message_desc: dict[str, str] = field(default_factory=dict)

    def get_dictionary_value(self, name: str) -> str:
        return self.message_desc.get(name, "")


@runtime_checkable
class SecurityModule(Protocol):
    """Operations a card security module offers. Failures are raised."""

    def set_key(self, key_id: str, value: str) -> None: ...

    def get_key(self, key_id: str) -> str: ...

    def cvv(self, pan: str, exp: str, cvv_type: str) -> str: ...

    def pvv(self, pan: str, pin_block: str) -> str: ...

    def offset(self, pan: str, pin_block: str) -> str: ...

    def mac(self, data: str) -> str: ...

    def translate(self, pan: str, pin_block: str, tpk_2nd: str) -> str: ...

    def crypt(self, data: str, mode: str) -> str: ...