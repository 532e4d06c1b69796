import datetime
import logging

from azure.cosmos.exceptions import CosmosHttpResponseError

from conftest import FakeValidator, MemoryStore, make_request, response_json
from user_intake import DependencyFailure, RegistrationHandler, Unauthenticated
from user_intake.store import CosmosUserStore

ALICE = {"userName": "alice", "userEmail": "alice@example.com"}


def test_registers_user(handler, store):
    before = datetime.datetime.now(datetime.timezone.utc)
    resp = handler.handle(make_request(ALICE))
    after = datetime.datetime.now(datetime.timezone.utc)

    assert resp.status_code == 200
    assert resp.mimetype == "application/json"
    body = response_json(resp)
    assert body["ok"] is True
    assert body["userName"] == "alice"
    assert "alice" in body["message"]

    assert len(store.records) == 1
    record = store.records[0]
    assert record.userName == "alice"
    assert record.userEmail == "alice@example.com"
    assert record.id == body["id"]
    assert before <= record.timestamp <= after


def test_logs_processed_user(handler, caplog):
    caplog.set_level(logging.INFO)
    handler.handle(make_request(ALICE))
    assert "Processed user alice" in caplog.text


def test_missing_authorization_header(handler, store, validator):
    resp = handler.handle(make_request(ALICE, token=None))

    assert resp.status_code == 401
    assert resp.headers.get("WWW-Authenticate") == "Bearer"
    assert response_json(resp)["error"] == "Unauthenticated"
    assert store.records == []
    assert validator.seen == []


def test_empty_authorization_header(handler, store):
    resp = handler.handle(make_request(ALICE, token=None, headers={"Authorization": "  "}))
    assert resp.status_code == 401
    assert store.records == []


def test_wrong_scheme(handler, store, validator):
    resp = handler.handle(make_request(ALICE, token=None, headers={"Authorization": "Basic dXNlcjpwYXNz"}))
    assert resp.status_code == 401
    assert validator.seen == []
    assert store.records == []


def test_invalid_token(handler, store):
    resp = handler.handle(make_request(ALICE, token="forged"))

    assert resp.status_code == 401
    assert store.records == []
    assert "forged" not in resp.get_body().decode("utf-8")


def test_authentication_runs_before_body_parsing(handler, store):
    resp = handler.handle(make_request(token="forged", raw=b"{not json"))
    assert resp.status_code == 401
    assert response_json(resp)["error"] == "Unauthenticated"


def test_empty_user_name(handler, store):
    resp = handler.handle(make_request({"userName": "", "userEmail": "bob@example.com"}))

    assert resp.status_code == 400
    assert response_json(resp)["error"] == "InvalidInput"
    assert store.records == []


def test_empty_user_email(handler, store):
    resp = handler.handle(make_request({"userName": "bob", "userEmail": ""}))
    assert resp.status_code == 400
    assert response_json(resp)["error"] == "InvalidInput"
    assert store.records == []


def test_missing_fields(handler, store):
    resp = handler.handle(make_request({"name": "bob"}))
    assert resp.status_code == 400
    assert response_json(resp)["error"] == "InvalidInput"
    assert store.records == []


def test_body_not_json(handler, store):
    resp = handler.handle(make_request(raw=b"userName=alice"))
    assert resp.status_code == 400
    assert response_json(resp)["error"] == "MalformedInput"
    assert store.records == []


def test_empty_body(handler, store):
    resp = handler.handle(make_request())
    assert resp.status_code == 400
    assert response_json(resp)["error"] == "MalformedInput"
    assert store.records == []


def test_body_not_an_object(handler, store):
    resp = handler.handle(make_request([ALICE]))
    assert resp.status_code == 400
    assert response_json(resp)["error"] == "MalformedInput"
    assert store.records == []


def test_store_failure_is_dependency_failure(settings, validator):
    class FailingContainer:
        def create_item(self, body, **kwargs):
            raise CosmosHttpResponseError(status_code=503, message="AccountKey=abc; Service Unavailable")

    handler = RegistrationHandler(settings, validator=validator, store=CosmosUserStore(FailingContainer()))
    resp = handler.handle(make_request(ALICE))

    assert resp.status_code == 502
    text = resp.get_body().decode("utf-8")
    body = response_json(resp)
    assert body["error"] == "DependencyFailure"
    assert "id" not in body
    assert "alice" not in text
    assert "AccountKey" not in text


def test_identity_authority_failure(settings, store):
    validator = FakeValidator(error=DependencyFailure("Identity authority unavailable."))
    handler = RegistrationHandler(settings, validator=validator, store=store)

    resp = handler.handle(make_request(ALICE))

    assert resp.status_code == 502
    assert store.records == []


def test_unexpected_error_is_hidden(settings, validator):
    store = MemoryStore(error=KeyError("partition key path /tenant"))
    handler = RegistrationHandler(settings, validator=validator, store=store)

    resp = handler.handle(make_request(ALICE))

    assert resp.status_code == 500
    assert "partition" not in resp.get_body().decode("utf-8")


def test_duplicate_requests_create_separate_records(handler, store):
    handler.handle(make_request(ALICE))
    handler.handle(make_request(ALICE))

    assert len(store.records) == 2
    assert store.records[0].id != store.records[1].id


def test_options_preflight(handler, store, validator):
    resp = handler.handle(make_request(method="OPTIONS", token=None, headers={"Origin": "http://localhost:4280"}))

    assert resp.status_code == 204
    assert resp.headers.get("Access-Control-Allow-Origin") == "http://localhost:4280"
    assert "Authorization" in resp.headers.get("Access-Control-Allow-Headers")
    assert store.records == []
    assert validator.seen == []


def test_cors_only_for_allowed_origins(handler):
    allowed = handler.handle(make_request(ALICE, headers={"Origin": "http://localhost:3000"}))
    blocked = handler.handle(make_request(ALICE, headers={"Origin": "https://evil.example.com"}))

    assert allowed.headers.get("Access-Control-Allow-Origin") == "http://localhost:3000"
    assert "Access-Control-Allow-Origin" not in blocked.headers


def test_error_responses_carry_cors_headers(handler):
    resp = handler.handle(make_request(ALICE, token=None, headers={"Origin": "http://localhost:3000"}))
    assert resp.status_code == 401
    assert resp.headers.get("Access-Control-Allow-Origin") == "http://localhost:3000"


def test_unauthenticated_body_shape(handler):
    body = response_json(handler.handle(make_request(ALICE, token=None)))
    assert body == {"ok": False, "error": "Unauthenticated", "message": Unauthenticated.default_message}
