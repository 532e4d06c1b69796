# errors.py
# Failure taxonomy for the registration endpoint. Every failure is terminal for
# the request and maps to one HTTP status; messages are safe to show callers.


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is missing or unparsable."""


class IntakeError(Exception):
    kind = "IntakeError"
    status_code = 500
    default_message = "Request failed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"ok": False, "error": self.kind, "message": self.message}


class Unauthenticated(IntakeError):
    kind = "Unauthenticated"
    status_code = 401
    default_message = "Authentication required."


class MalformedInput(IntakeError):
    kind = "MalformedInput"
    status_code = 400
    default_message = "Request body must be a JSON object."


class InvalidInput(IntakeError):
    kind = "InvalidInput"
    status_code = 400
    default_message = "Missing required fields: userName, userEmail"


class DependencyFailure(IntakeError):
    kind = "DependencyFailure"
    status_code = 502
    default_message = "Upstream service unavailable."
