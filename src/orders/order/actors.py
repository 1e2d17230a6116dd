"""Actors — the people operating on an order.

Actors are supplied by the caller on every operation and are never persisted,
except as names embedded in history entries, lock holders and assignments.
"""

from dataclasses import dataclass
from enum import Enum

from orders.order.errors import InvalidInput


class Role(Enum):
    COORDINATOR = "coordinator"
    FULFILLMENT = "fulfillment"


@dataclass(frozen=True)
class Actor:
    name: str
    role: Role
    id: str | None = None

    @classmethod
    def build(cls, name: str | None, role: str | Role | None, actor_id: str | None = None) -> "Actor":
        """Build an actor from loosely typed input (headers, command fields)."""
        name = (name or "").strip()
        if not name:
            raise InvalidInput({"actor_name": ["Actor name is required"]})
        try:
            role = Role(role)
        except ValueError:
            raise InvalidInput({"actor_role": [f"Unknown role: {role}"]}) from None
        return cls(name=name, role=role, id=actor_id or None)

    @property
    def is_coordinator(self) -> bool:
        return self.role == Role.COORDINATOR

    @property
    def is_fulfillment(self) -> bool:
        return self.role == Role.FULFILLMENT
