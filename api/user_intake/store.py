# store.py
# Single-record inserts into a Cosmos DB container.
#
# Auth precedence:
#   1) COSMOS_KEY (account key)
#   2) DefaultAzureCredential (managed identity when deployed, az login locally)

import logging
import math
from typing import Protocol

from azure.core.exceptions import AzureError
from azure.cosmos import CosmosClient
from azure.identity import DefaultAzureCredential

from .config import Settings
from .errors import DependencyFailure
from .models import UserRecord


class UserStore(Protocol):
    def save(self, record: UserRecord) -> None:
        """Write the record once, or raise DependencyFailure."""
        ...


def _cosmos_client(settings: Settings) -> CosmosClient:
    timeout = max(1, math.ceil(settings.cosmos_timeout))
    if settings.cosmos_key:
        logging.info("Cosmos auth mode: account key")
        return CosmosClient(settings.cosmos_endpoint, credential=settings.cosmos_key, connection_timeout=timeout)
    logging.info("Cosmos auth mode: DefaultAzureCredential")
    return CosmosClient(settings.cosmos_endpoint, credential=DefaultAzureCredential(), connection_timeout=timeout)


class CosmosUserStore:
    def __init__(self, container, timeout: float = 10.0):
        self._container = container
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "CosmosUserStore":
        container = (
            _cosmos_client(settings)
            .get_database_client(settings.cosmos_database)
            .get_container_client(settings.cosmos_container)
        )
        return cls(container, timeout=settings.cosmos_timeout)

    def save(self, record: UserRecord) -> None:
        try:
            self._container.create_item(body=record.to_document(), timeout=self._timeout)
        except AzureError as e:
            logging.error("Error writing user record %s to Cosmos DB", record.id, exc_info=True)
            raise DependencyFailure("Could not store user record.") from e
