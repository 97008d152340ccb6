"""Azure Cosmos DB connector helpers.

Usage:
1. Install dependency: pip install azure-cosmos
2. Set environment variables: COSMOS_ENDPOINT, COSMOS_KEY
3. Import and call `get_container_client()` to reach an existing container,
   or `get_container()` to provision it.

This module targets the database `hierarchical-poc-db`, container
`hierarchical-container`, with the hierarchical partition key
`/tenantId` -> `/subscriptionId`.
"""

import logging
import os
from typing import List, Optional, Sequence

from azure.cosmos import CosmosClient, PartitionKey

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "hierarchical-poc-db"
DEFAULT_CONTAINER = "hierarchical-container"
DEFAULT_PARTITION_PATHS = ["/tenantId", "/subscriptionId"]
DEFAULT_THROUGHPUT = 400

# Service limit on hierarchical partition key depth
MAX_PARTITION_DEPTH = 3

REQUEST_CHARGE_HEADER = "x-ms-request-charge"

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def parse_flag(value: Optional[str], default: bool = True, name: str = "COSMOS_VERIFY_SSL") -> bool:
    """Parse an on/off setting. Raises RuntimeError for anything unrecognised."""
    if value is None or not value.strip():
        return default
    token = value.strip().lower()
    if token in TRUE_VALUES:
        return True
    if token in FALSE_VALUES:
        return False
    raise RuntimeError(f"{name} must be one of {TRUE_VALUES + FALSE_VALUES}, got {value!r}")


def get_cosmos_client(
    endpoint: Optional[str] = None,
    key: Optional[str] = None,
    verify: Optional[bool] = None,
) -> CosmosClient:
    """Return a CosmosClient using given values or environment variables.

    Raises RuntimeError if credentials are missing. Set COSMOS_VERIFY_SSL=false
    to talk to the local emulator, which uses a self-signed certificate.
    """
    endpoint = endpoint or os.getenv("COSMOS_ENDPOINT")
    key = key or os.getenv("COSMOS_KEY")

    if not endpoint or not key:
        raise RuntimeError("COSMOS_ENDPOINT and COSMOS_KEY environment variables must be set")

    if verify is None:
        verify = parse_flag(os.getenv("COSMOS_VERIFY_SSL"))

    logger.debug("Connecting to %s (verify=%s)", endpoint, verify)
    return CosmosClient(endpoint, key, connection_verify=verify)


def get_database(client: CosmosClient, database_name: str = DEFAULT_DATABASE):
    """Return a DatabaseProxy for `database_name` (creates if missing)."""
    return client.create_database_if_not_exists(id=database_name)


def build_partition_key(partition_paths: Sequence[str]) -> PartitionKey:
    """Return the container partition key definition for `partition_paths`.

    One path gives a plain hash key; two or three give a hierarchical
    (MultiHash) key whose levels follow the list order.
    """
    paths: List[str] = list(partition_paths)
    if not paths:
        raise ValueError("At least one partition key path is required")
    if len(paths) > MAX_PARTITION_DEPTH:
        raise ValueError(
            f"Hierarchical partition keys support at most {MAX_PARTITION_DEPTH} levels, got {len(paths)}"
        )
    for path in paths:
        if not path.startswith("/"):
            raise ValueError(f"Partition key path must start with '/': {path!r}")

    if len(paths) == 1:
        return PartitionKey(path=paths[0])
    return PartitionKey(path=paths, kind="MultiHash")


def ensure_container(
    database,
    container_name: str = DEFAULT_CONTAINER,
    partition_paths: Sequence[str] = DEFAULT_PARTITION_PATHS,
    throughput: Optional[int] = DEFAULT_THROUGHPUT,
):
    """Return a ContainerProxy inside `database` (creates if missing).

    The hierarchy depth is the length of `partition_paths`. Note that an
    existing container keeps its original partition key definition;
    `create_container_if_not_exists` does not alter it.
    """
    partition_key = build_partition_key(partition_paths)
    logger.debug("Ensuring container %s with paths %s", container_name, list(partition_paths))
    return database.create_container_if_not_exists(
        id=container_name,
        partition_key=partition_key,
        offer_throughput=throughput,
    )


def get_container(
    client: CosmosClient,
    database_name: str = DEFAULT_DATABASE,
    container_name: str = DEFAULT_CONTAINER,
    partition_paths: Sequence[str] = DEFAULT_PARTITION_PATHS,
    throughput: Optional[int] = DEFAULT_THROUGHPUT,
):
    """Return a ContainerProxy for the given names (creates if missing)."""
    db = get_database(client, database_name)
    return ensure_container(db, container_name, partition_paths, throughput)


def get_container_client(
    database_name: str = DEFAULT_DATABASE,
    container_name: str = DEFAULT_CONTAINER,
    endpoint: Optional[str] = None,
    key: Optional[str] = None,
):
    """Return a ContainerProxy for an existing container without creating anything.

    Reads `COSMOS_ENDPOINT` and `COSMOS_KEY` from environment unless given.
    A missing database or container only shows up as a 404 on the first request.
    """
    client = get_cosmos_client(endpoint, key)
    return client.get_database_client(database_name).get_container_client(container_name)


def last_request_charge(container) -> float:
    """Return the RU charge reported for the container's latest response."""
    headers = container.client_connection.last_response_headers or {}
    return float(headers.get(REQUEST_CHARGE_HEADER, 0))


__all__ = [
    "parse_flag",
    "get_cosmos_client",
    "get_database",
    "build_partition_key",
    "ensure_container",
    "get_container",
    "get_container_client",
    "last_request_charge",
]
