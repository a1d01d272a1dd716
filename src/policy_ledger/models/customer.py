"""Customer models used for policy bindings."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CustomerCreate:
    """Input model for registering a customer."""

    name: str
    phone: str = ""
    email: str = ""


@dataclass
class CustomerView:
    id: int
    name: str
    phone: str
    email: str
