import json

import azure.functions as func
import pytest

from user_intake import RegistrationHandler, Settings, Unauthenticated

VALID_TOKEN = "validtoken123"


class FakeValidator:
    def __init__(self, valid_tokens=(VALID_TOKEN,), error=None):
        self.valid_tokens = set(valid_tokens)
        self.error = error
        self.seen = []

    def validate(self, token):
        self.seen.append(token)
        if self.error is not None:
            raise self.error
        if token not in self.valid_tokens:
            raise Unauthenticated("Invalid token.")
        return {"sub": "workflow"}


class MemoryStore:
    def __init__(self, error=None):
        self.error = error
        self.records = []

    def save(self, record):
        if self.error is not None:
            raise self.error
        self.records.append(record)


@pytest.fixture
def settings():
    return Settings(
        cosmos_endpoint="https://example.documents.azure.com:443/",
        cosmos_database="users-db",
        cosmos_container="users",
        jwt_secret="unit-test-secret-that-is-long-enough-for-hs256",
    )


@pytest.fixture
def validator():
    return FakeValidator()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def handler(settings, validator, store):
    return RegistrationHandler(settings, validator=validator, store=store)


def make_request(body=None, *, token=VALID_TOKEN, headers=None, method="POST", raw=None):
    all_headers = {"Content-Type": "application/json"}
    if token is not None:
        all_headers["Authorization"] = f"Bearer {token}"
    all_headers.update(headers or {})
    if raw is None:
        raw = json.dumps(body).encode("utf-8") if body is not None else b""
    return func.HttpRequest(method=method, url="/api/users", headers=all_headers, params={}, body=raw)


def response_json(resp):
    return json.loads(resp.get_body().decode("utf-8"))
