"""In-memory stand-ins for the azure-cosmos proxies used by the POC.

The fake container stores documents per logical partition and reports a
request charge for each call. Query charges grow with the number of
logical partitions the filter cannot rule out, so a filter that pins more
hierarchy levels is charged less.
"""

import random
import re

import pytest
from azure.cosmos import exceptions

POINT_READ_CHARGE = 1.0
WRITE_CHARGE = 7.5
QUERY_BASE_CHARGE = 2.5
QUERY_PARTITION_CHARGE = 0.5

_PARAM = re.compile(r"p\.(\w+)\s*=\s*(@\w+)")


class FakeConnection:
    def __init__(self):
        self.last_response_headers = {}

    def charge(self, value):
        self.last_response_headers = {"x-ms-request-charge": str(value)}


class FakePager:
    def __init__(self, pages, connection, charges):
        self._pages = pages
        self._connection = connection
        self._charges = charges

    def __iter__(self):
        for page in self.by_page():
            yield from page

    def by_page(self):
        for page, charge in zip(self._pages, self._charges):
            self._connection.charge(charge)
            yield iter(page)


class FakeContainer:
    def __init__(self, id="hierarchical-container", partition_key=None, hierarchy=("tenantId", "subscriptionId")):
        self.id = id
        self.partition_key = partition_key
        self.hierarchy = hierarchy
        self.client_connection = FakeConnection()
        self.partitions = {}
        self.calls = []

    def _key(self, doc):
        return tuple(doc[field] for field in self.hierarchy)

    def create_item(self, body, **kwargs):
        self.calls.append(("create_item", body["id"]))
        partition = self.partitions.setdefault(self._key(body), {})
        if body["id"] in partition:
            raise exceptions.CosmosResourceExistsError(
                status_code=409, message="Entity with the specified id already exists in the system."
            )
        stored = dict(body, _rid="rid", _etag="etag", _ts=0)
        partition[body["id"]] = stored
        self.client_connection.charge(WRITE_CHARGE)
        return dict(stored)

    def read_item(self, item, partition_key, **kwargs):
        self.calls.append(("read_item", item))
        doc = self.partitions.get(tuple(partition_key), {}).get(item)
        if doc is None:
            raise exceptions.CosmosResourceNotFoundError(
                status_code=404, message="Entity with the specified id does not exist in the system."
            )
        self.client_connection.charge(POINT_READ_CHARGE)
        return dict(doc)

    def query_items(self, query, parameters=None, max_item_count=None, **kwargs):
        self.calls.append(("query_items", query))
        values = {p["name"]: p["value"] for p in parameters or []}
        filters = {field: values[name] for field, name in _PARAM.findall(query)}

        # Prefix of hierarchy levels pinned by the filter decides the fan-out
        prefix = []
        for field in self.hierarchy:
            if field not in filters:
                break
            prefix.append(filters[field])
        scanned = [key for key in self.partitions if list(key[: len(prefix)]) == prefix]

        matches = [
            dict(doc)
            for key in scanned
            for doc in self.partitions[key].values()
            if all(doc.get(field) == value for field, value in filters.items())
        ]
        size = max_item_count or 100
        pages = [matches[i:i + size] for i in range(0, len(matches), size)] or [[]]
        total = QUERY_BASE_CHARGE + QUERY_PARTITION_CHARGE * len(scanned)
        charges = [total / len(pages)] * len(pages)
        return FakePager(pages, self.client_connection, charges)


class FakeDatabase:
    def __init__(self, id="hierarchical-poc-db"):
        self.id = id
        self.containers = {}
        self.container_calls = []

    def create_container_if_not_exists(self, id, partition_key, offer_throughput=None, **kwargs):
        self.container_calls.append({"id": id, "partition_key": partition_key, "offer_throughput": offer_throughput})
        if id not in self.containers:
            self.containers[id] = FakeContainer(id=id, partition_key=partition_key)
        return self.containers[id]

    def get_container_client(self, container):
        # Lookup only; nothing is registered
        return self.containers.get(container) or FakeContainer(id=container)


class FakeClient:
    def __init__(self):
        self.databases = {}

    def create_database_if_not_exists(self, id, **kwargs):
        if id not in self.databases:
            self.databases[id] = FakeDatabase(id=id)
        return self.databases[id]

    def get_database_client(self, database):
        return self.databases.get(database) or FakeDatabase(id=database)


@pytest.fixture
def container():
    return FakeContainer()


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "COSMOS_ENDPOINT",
        "COSMOS_KEY",
        "COSMOS_VERIFY_SSL",
        "COSMOS_DATABASE",
        "COSMOS_CONTAINER",
        "COSMOS_THROUGHPUT",
        "POC_IDENTITY_COUNT",
        "POC_SAMPLE_COUNT",
        "POC_PAGE_SIZE",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
