from __future__ import annotations

from dataclasses import dataclass

PROFESSOR = "professor"
STUDENT = "student"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller, built from a verified identity-provider token.

    user_id is the token subject.  email and name come from the profile
    claims and are copied onto assignments and submissions so listings
    never need a user lookup.
    """

    user_id: str
    roles: frozenset[str]
    email: str = ""
    name: str = ""

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.user_id
