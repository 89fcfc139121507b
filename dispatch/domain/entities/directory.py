"""Reference records owned by external catalogs, read here only for notifications."""

from dataclasses import dataclass

from dispatch.domain.value_objects.enums import Locale


@dataclass
class Partner:
    id: int
    name: str
    contact_email: str | None = None
    locale: Locale = Locale.EN


@dataclass
class Branch:
    id: int
    partner_id: int
    name: str
    address: str | None = None


@dataclass
class Customer:
    id: int
    name: str
    email: str | None = None
    locale: Locale = Locale.EN
    # Synthetic/system accounts whose address is not a deliverable mailbox.
    is_placeholder: bool = False


@dataclass
class Category:
    id: int
    name: str


@dataclass
class Service:
    id: int
    category_id: int
    name: str
