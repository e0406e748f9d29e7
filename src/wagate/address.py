"""Recipient address normalization."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from wagate.errors import InvalidAddressError

CONTACT_SUFFIX = "@c.us"
GROUP_SUFFIX = "@g.us"

INVALID_ADDRESS_HINT = (
    'Parameter "to" must be an international phone number made of digits only '
    f"(e.g. 62812xxxx) or a full chat id ending in {CONTACT_SUFFIX} or {GROUP_SUFFIX}"
)


class AddressKind(StrEnum):
    CONTACT = "contact"
    GROUP = "group"


@dataclass(frozen=True)
class Address:
    """Canonical chat address, tagged as a contact or a group."""

    value: str
    kind: AddressKind

    @property
    def is_group(self) -> bool:
        return self.kind is AddressKind.GROUP

    def __str__(self) -> str:
        return self.value


def normalize(raw: object) -> Address:
    """Turn a user-supplied recipient token into a canonical address.

    Tokens already ending in a contact or group suffix are returned unchanged.
    Digit-only tokens are treated as international phone numbers and get the
    contact suffix. Anything else raises `InvalidAddressError`. JSON integers
    are accepted as phone numbers since clients often send them unquoted.
    """

    if isinstance(raw, int) and not isinstance(raw, bool):
        raw = str(raw)
    if not isinstance(raw, str):
        raise InvalidAddressError(raw, INVALID_ADDRESS_HINT)
    if raw.endswith(CONTACT_SUFFIX):
        return Address(raw, AddressKind.CONTACT)
    if raw.endswith(GROUP_SUFFIX):
        return Address(raw, AddressKind.GROUP)
    # str.isdigit() accepts non-ASCII digits, the chat network only knows 0-9.
    if raw and raw.isascii() and raw.isdigit():
        return Address(f"{raw}{CONTACT_SUFFIX}", AddressKind.CONTACT)
    raise InvalidAddressError(raw, INVALID_ADDRESS_HINT)
