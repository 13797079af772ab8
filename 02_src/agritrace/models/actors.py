"""Actor references and display identities."""

from dataclasses import dataclass
from enum import Enum

from ..errors import ValidationError


class ActorKind(str, Enum):
    """What an actor reference points at."""

    USER = "user"
    UNIT = "unit"


class Role(str, Enum):
    """Platform roles held by users of the identity store."""

    FARMER = "FARMER"
    ADMIN = "ADMIN"
    PROCESSOR = "PROCESSOR"
    TRADER = "TRADER"
    TRANSPORTER = "TRANSPORTER"
    BUYER = "BUYER"


@dataclass(frozen=True)
class ActorRef:
    """Tagged reference to the party responsible for an event."""

    kind: ActorKind
    id: str

    @classmethod
    def user(cls, user_id: str) -> "ActorRef":
        return cls(ActorKind.USER, user_id)

    @classmethod
    def unit(cls, vti_id: str) -> "ActorRef":
        return cls(ActorKind.UNIT, vti_id)

    @classmethod
    def parse(cls, value: "ActorRef | str | None") -> "ActorRef":
        """Coerce "unit:<id>", "user:<id>" or a bare user id into an ActorRef."""
        if isinstance(value, ActorRef):
            return value
        if not value or not isinstance(value, str):
            raise ValidationError("actorRef is required and must be a string")

        prefix, sep, rest = value.partition(":")
        if sep and rest:
            try:
                return cls(ActorKind(prefix), rest)
            except ValueError:
                pass
        return cls.user(value)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "id": self.id}


@dataclass(frozen=True)
class ActorProfile:
    """Display identity of an actor. Never used for authorization."""

    name: str
    role: str
    avatar_url: str | None = None

    def to_dict(self) -> dict:
        return {"name": self.name, "role": self.role, "avatarUrl": self.avatar_url}


@dataclass
class UserProfile:
    """A user record in the identity store."""

    id: str
    name: str
    role: Role
    avatar_url: str | None = None

    def to_profile(self) -> ActorProfile:
        return ActorProfile(name=self.name, role=self.role.value, avatar_url=self.avatar_url)
