"""Authenticated caller identity."""

from enum import StrEnum

from pydantic import BaseModel


class ActorRole(StrEnum):
    """Which side of the marketplace the caller is on."""

    CONCIERGERIE = "conciergerie"
    EMPLOYEE = "employee"


class Actor(BaseModel):
    """Already-authenticated principal behind a request.

    For a conciergerie `identifier` is the conciergerie name, for an employee it is the employee ID.
    """

    role: ActorRole
    identifier: str

    @classmethod
    def conciergerie(cls, name: str) -> "Actor":
        """Build a conciergerie actor."""
        return cls(role=ActorRole.CONCIERGERIE, identifier=name)

    @classmethod
    def employee(cls, employee_id: str) -> "Actor":
        """Build an employee actor."""
        return cls(role=ActorRole.EMPLOYEE, identifier=employee_id)

    @property
    def is_conciergerie(self) -> bool:
        return self.role == ActorRole.CONCIERGERIE

    @property
    def is_employee(self) -> bool:
        return self.role == ActorRole.EMPLOYEE
