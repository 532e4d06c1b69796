# function_app.py
# v2 Function App with:
#   - register_user : POST a user registration (Bearer token required), stored in Cosmos DB
#   - health        : liveness probe, touches no dependency
#
# Settings are documented in user_intake/config.py. Workflow automation (e.g. a
# Logic App) calls POST /api/users as its HTTP action target.

import json
import logging
import os
import threading
from typing import Optional

import azure.functions as func
from azure.core.exceptions import AzureError

from user_intake import (
    ConfigurationError,
    CosmosUserStore,
    DependencyFailure,
    JwtTokenValidator,
    RegistrationHandler,
    Settings,
    load_local_env_file,
)

# Local env loading (dev convenience)
load_local_env_file(os.path.join(os.path.dirname(__file__), ".env"))

if os.getenv("ENABLE_DEBUGPY") == "1":
    import debugpy

    host = os.getenv("DEBUGPY_HOST", "127.0.0.1")
    port = int(os.getenv("DEBUGPY_PORT", "5678"))
    try:
        debugpy.listen((host, port))
        logging.info("debugpy listening on %s:%s", host, port)
    except RuntimeError:
        pass  # already listening
    if os.getenv("WAIT_FOR_DEBUGGER") == "1":
        logging.info("Waiting for debugger to attach...")
        debugpy.wait_for_client()

# ---------------------------
# Handler (built once per worker process)
# ---------------------------
_handler_lock = threading.Lock()
_handler: Optional[RegistrationHandler] = None


def _build_handler() -> RegistrationHandler:
    settings = Settings.from_env()
    logging.info("Loaded %r", settings)
    return RegistrationHandler(
        settings,
        validator=JwtTokenValidator.from_settings(settings),
        store=CosmosUserStore.from_settings(settings),
    )


def get_handler() -> RegistrationHandler:
    global _handler
    if _handler is not None:
        return _handler

    with _handler_lock:
        if _handler is None:
            _handler = _build_handler()
    return _handler


def handle_registration(req: func.HttpRequest) -> func.HttpResponse:
    try:
        handler = get_handler()
    except ConfigurationError as e:
        logging.error("Registration configuration error: %s", e)
        return func.HttpResponse(
            json.dumps({"ok": False, "error": "ConfigurationError", "message": "Service is not configured."}),
            status_code=500,
            mimetype="application/json",
        )
    except AzureError:
        # cold start: building the Cosmos client contacts the account
        logging.error("Could not reach a dependency while building the handler", exc_info=True)
        error = DependencyFailure()
        return func.HttpResponse(json.dumps(error.to_body()), status_code=error.status_code, mimetype="application/json")
    return handler.handle(req)


def health_status() -> func.HttpResponse:
    return func.HttpResponse(json.dumps({"status": "ok"}), status_code=200, mimetype="application/json")


# ---------------------------
# v2 FunctionApp + routes
# ---------------------------
app = func.FunctionApp()


@app.function_name(name="register_user")
@app.route(route="users", methods=["POST", "OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
def register_user(req: func.HttpRequest) -> func.HttpResponse:
    return handle_registration(req)


@app.function_name(name="health")
@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health(req: func.HttpRequest) -> func.HttpResponse:
    return health_status()
