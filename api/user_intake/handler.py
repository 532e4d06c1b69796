# handler.py
# POST /api/users
#   Received -> Authenticated -> Validated -> Persisted -> Responded
# Any step can exit early with an IntakeError, which becomes the HTTP response.

import json
import logging

import azure.functions as func

from .auth import TokenValidator, parse_authorization
from .config import Settings
from .errors import IntakeError, MalformedInput, Unauthenticated
from .models import UserRecord, UserRegistration
from .store import UserStore


def cors_headers(req: func.HttpRequest, allowed_origins) -> dict:
    origin = req.headers.get("Origin")
    if not origin or origin not in allowed_origins:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Vary": "Origin",
        "Access-Control-Allow-Methods": "POST,OPTIONS",
        "Access-Control-Allow-Headers": "Authorization,Content-Type",
        "Access-Control-Max-Age": "86400",
    }


class RegistrationHandler:
    """Validates a registration request and stores one UserRecord for it.

    The handler keeps no per-request state, so one instance serves every
    invocation in the worker process.
    """

    def __init__(self, settings: Settings, validator: TokenValidator, store: UserStore):
        self.settings = settings
        self.validator = validator
        self.store = store

    def _json(self, req: func.HttpRequest, body: dict, status_code: int, headers=None) -> func.HttpResponse:
        return func.HttpResponse(
            json.dumps(body),
            status_code=status_code,
            mimetype="application/json",
            headers={**cors_headers(req, self.settings.allowed_origins), **(headers or {})},
        )

    def _authenticate(self, req: func.HttpRequest) -> dict:
        token = parse_authorization(req.headers.get("Authorization"))
        return self.validator.validate(token)

    @staticmethod
    def _registration(req: func.HttpRequest) -> UserRegistration:
        try:
            payload = req.get_json()
        except ValueError:
            raise MalformedInput("Invalid JSON") from None
        if not isinstance(payload, dict):
            raise MalformedInput()
        return UserRegistration.from_payload(payload)

    def process(self, req: func.HttpRequest) -> UserRecord:
        self._authenticate(req)
        record = self._registration(req).to_record()
        self.store.save(record)
        return record

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        logging.info("Received a user registration request.")
        if req.method == "OPTIONS":
            return func.HttpResponse(status_code=204, headers=cors_headers(req, self.settings.allowed_origins))

        try:
            record = self.process(req)
        except IntakeError as e:
            headers = {"WWW-Authenticate": "Bearer"} if isinstance(e, Unauthenticated) else None
            return self._json(req, e.to_body(), e.status_code, headers)
        except Exception:
            logging.exception("User registration failed.")
            return self._json(req, {"ok": False, "error": "InternalError", "message": "Internal server error"}, 500)

        logging.info("Processed user %s", record.userName)
        return self._json(
            req,
            {
                "ok": True,
                "id": record.id,
                "userName": record.userName,
                "message": f"User '{record.userName}' registered.",
            },
            200,
        )
