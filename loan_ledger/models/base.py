"""Base models shared by ledger entities."""

from dataclasses import dataclass


@dataclass
class Address:
    """Postal address of a client.

    Every field is optional because client records are often captured
    incrementally:
    - street/number/complement: street address (``number`` may be ``"S/N"``)
    - neighborhood: bairro
    - state: UF abbreviation (e.g. ``"SP"``)
    - postal_code: CEP, digits or ``00000-000``
    - country: ISO 3166-1 alpha-2 code (default: ``"BR"``)
    """

    street: str = ""
    number: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    complement: str = ""
    country: str = "BR"
