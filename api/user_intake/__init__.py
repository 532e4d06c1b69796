from .auth import JwtTokenValidator, TokenValidator, parse_authorization
from .config import Settings, load_local_env_file
from .errors import (
    ConfigurationError,
    DependencyFailure,
    IntakeError,
    InvalidInput,
    MalformedInput,
    Unauthenticated,
)
from .handler import RegistrationHandler, cors_headers
from .models import UserRecord, UserRegistration
from .store import CosmosUserStore, UserStore

__all__ = [
    "ConfigurationError",
    "CosmosUserStore",
    "DependencyFailure",
    "IntakeError",
    "InvalidInput",
    "JwtTokenValidator",
    "MalformedInput",
    "RegistrationHandler",
    "Settings",
    "TokenValidator",
    "Unauthenticated",
    "UserRecord",
    "UserRegistration",
    "UserStore",
    "cors_headers",
    "load_local_env_file",
    "parse_authorization",
]
