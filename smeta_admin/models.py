from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from smeta_admin.tokens import is_token_expired

T = TypeVar("T")


class UnknownRoleError(ValueError):
    pass


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    OPERATOR = "OPERATOR"
    DIREKTOR = "DIREKTOR"
    BOSS = "BOSS"
    BUGALTERIYA = "BUGALTERIYA"
    PTO = "PTO"
    SNABJENIYA = "SNABJENIYA"
    SKLAD = "SKLAD"
    PRORAB = "PRORAB"
    HAYDOVCHI = "HAYDOVCHI"
    MODERATOR = "MODERATOR"

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        if isinstance(value, Role):
            return value
        normalized = str(value or "").strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            raise UnknownRoleError(f"Unknown role: {value!r}") from None


class SessionStatus(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATED = "AUTHENTICATED"


@dataclass(frozen=True)
class RequestState(Generic[T]):
    data: T | None = None
    loading: bool = False
    error: BaseException | None = None


# Mutations share the shape; only their lifecycle differs.
MutationState = RequestState


@dataclass(frozen=True)
class Session:
    user_id: str
    name: str
    phone: str
    role: Role
    access_token: str
    refresh_token: str | None = None
    org_id: str | None = None

    def is_expired(self, now: float | None = None) -> bool:
        return is_token_expired(self.access_token, now=now)

    @staticmethod
    def from_payload(
        user: dict[str, Any],
        access_token: str,
        refresh_token: str | None = None,
    ) -> "Session":
        user_id = str(user.get("id", "")).strip()
        if not user_id:
            raise ValueError("User payload is missing an id")

        name = str(user.get("name") or "").strip()
        if not name:
            parts = [str(user.get(key) or "").strip() for key in ("firstName", "lastName")]
            name = " ".join(part for part in parts if part)

        org_id = str(user.get("orgId") or "").strip() or None

        return Session(
            user_id=user_id,
            name=name,
            phone=str(user.get("phone") or "").strip(),
            role=Role.parse(user.get("role", "")),
            access_token=access_token,
            refresh_token=refresh_token,
            org_id=org_id,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "isAuthenticated": True,
            "user": {
                "id": self.user_id,
                "name": self.name,
                "phone": self.phone,
                "role": self.role.value,
                "orgId": self.org_id,
            },
        }


@dataclass(frozen=True)
class AuthState:
    status: SessionStatus = SessionStatus.UNAUTHENTICATED
    session: Session | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED

    @property
    def role(self) -> Role | None:
        if self.session is None or not self.is_authenticated:
            return None
        return self.session.role


@dataclass(frozen=True)
class NavItem:
    title: str
    target: str
    required_roles: frozenset[Role] = field(default_factory=frozenset)
