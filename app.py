import logging
import os
import random
import time
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from azure.cosmos import exceptions
from dotenv import load_dotenv

from consent import DEFAULT_NAME, generate_identities, new_consent, partition_key_for
from database import (
    DEFAULT_CONTAINER,
    DEFAULT_DATABASE,
    DEFAULT_PARTITION_PATHS,
    DEFAULT_THROUGHPUT,
    ensure_container,
    get_cosmos_client,
    get_database,
    parse_flag,
)
from probes import (
    ProbeResult,
    QueryResult,
    by_name,
    by_tenant,
    by_tenant_and_subscription,
    insert_consent,
    query_consents,
    read_consent,
    report_created,
    report_loop,
    report_point_read,
    report_query,
    write_read_loop,
)

logger = logging.getLogger("hierarchical_poc")


@dataclass
class Settings:
    endpoint: Optional[str] = None
    key: Optional[str] = None
    verify_ssl: bool = True
    database: str = DEFAULT_DATABASE
    container: str = DEFAULT_CONTAINER
    throughput: int = DEFAULT_THROUGHPUT
    identity_count: int = 5
    sample_count: int = 100
    page_size: Optional[int] = None
    log_level: str = "WARNING"


@dataclass
class BenchmarkRun:
    first_read: ProbeResult
    reads: List[ProbeResult] = field(default_factory=list)
    queries: List[QueryResult] = field(default_factory=list)


def _positive_int(environ: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise RuntimeError(f"{name} must be at least 1, got {value}")
    return value


def _log_level(environ: Mapping[str, str]) -> str:
    level = (environ.get("LOG_LEVEL") or "WARNING").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise RuntimeError(f"LOG_LEVEL must be a logging level name such as DEBUG or INFO, got {level!r}")
    return level


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from the environment (see .env for local overrides)."""
    environ = os.environ if environ is None else environ
    return Settings(
        endpoint=environ.get("COSMOS_ENDPOINT"),
        key=environ.get("COSMOS_KEY"),
        verify_ssl=parse_flag(environ.get("COSMOS_VERIFY_SSL")),
        database=environ.get("COSMOS_DATABASE") or DEFAULT_DATABASE,
        container=environ.get("COSMOS_CONTAINER") or DEFAULT_CONTAINER,
        throughput=_positive_int(environ, "COSMOS_THROUGHPUT", DEFAULT_THROUGHPUT),
        identity_count=_positive_int(environ, "POC_IDENTITY_COUNT", 5),
        sample_count=_positive_int(environ, "POC_SAMPLE_COUNT", 100),
        page_size=_positive_int(environ, "POC_PAGE_SIZE", None),
        log_level=_log_level(environ),
    )


def run(settings: Settings, client=None, rng: Optional[random.Random] = None) -> BenchmarkRun:
    """Provision resources, then run the point-read, loop and query probes."""
    if client is None:
        client = get_cosmos_client(settings.endpoint, settings.key, verify=settings.verify_ssl)
    rng = rng or random.Random()

    database = get_database(client, settings.database)
    print(f"Created database:\t{database.id}")

    container = ensure_container(
        database, settings.container, DEFAULT_PARTITION_PATHS, settings.throughput
    )
    print(f"Created container:\t{container.id}")

    identities = generate_identities(settings.identity_count)
    tenant_id, subscription_id = identities[0]

    consent = new_consent(tenant_id, subscription_id, DEFAULT_NAME)
    report_created(insert_consent(container, consent))

    first_read = read_consent(container, consent.id, partition_key_for(consent))
    report_point_read(first_read)

    start = time.perf_counter()
    reads = write_read_loop(container, identities, settings.sample_count, rng)
    report_loop(reads, (time.perf_counter() - start) * 1000)

    shapes = [
        ("WITHOUT Hierarchical Partition Key", by_name(DEFAULT_NAME)),
        ("WITH ONE level of Hierarchical Partition Key", by_tenant(tenant_id)),
        ("WITH TWO level of Hierarchical Partition Key", by_tenant_and_subscription(tenant_id, subscription_id)),
    ]
    queries = []
    for label, (sql, parameters) in shapes:
        result = query_consents(container, sql, parameters, label, max_item_count=settings.page_size)
        report_query(result)
        queries.append(result)

    return BenchmarkRun(first_read=first_read, reads=reads, queries=queries)


def main() -> None:
    load_dotenv()
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        run(settings)
    except exceptions.CosmosHttpResponseError:
        logger.exception("Cosmos DB request failed")
        raise


if __name__ == "__main__":
    main()
