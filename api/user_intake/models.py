import datetime
import uuid
from dataclasses import dataclass, field

from .errors import InvalidInput, MalformedInput

MAX_FIELD_LENGTH = 256
REQUIRED_FIELDS = ("userName", "userEmail")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class UserRecord:
    """A registered user as written to the document store.

    ``id`` and ``timestamp`` are assigned at construction and never change.
    """

    userName: str
    userEmail: str
    id: str = field(default_factory=_new_id)
    timestamp: datetime.datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not self.userName or not self.userEmail:
            raise InvalidInput()

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "userName": self.userName,
            "userEmail": self.userEmail,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class UserRegistration:
    userName: str
    userEmail: str

    @classmethod
    def from_payload(cls, payload) -> "UserRegistration":
        if not isinstance(payload, dict):
            raise MalformedInput()

        values = {}
        problems = []
        for name in REQUIRED_FIELDS:
            raw = payload.get(name)
            value = raw.strip() if isinstance(raw, str) else ""
            if not value:
                problems.append(f"'{name}' must be a non-empty string")
            elif len(value) > MAX_FIELD_LENGTH:
                problems.append(f"'{name}' must be at most {MAX_FIELD_LENGTH} characters")
            values[name] = value

        if problems:
            raise InvalidInput("; ".join(problems) + ".")
        return cls(**values)

    def to_record(self) -> UserRecord:
        return UserRecord(userName=self.userName, userEmail=self.userEmail)
