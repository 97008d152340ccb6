"""Timed probes against the consent container.

Every probe issues one request (or one paged query) and records the RU
charge the service reported along with the wall-clock time it took.
Calls are strictly sequential, so the container's last response headers
always belong to the request that just finished.
"""

import logging
import random
import statistics
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from consent import Consent, Identity, partition_key_for, random_consent
from database import last_request_charge

logger = logging.getLogger(__name__)

Parameters = List[Dict[str, Any]]


@dataclass
class ProbeResult:
    item: Consent
    request_charge: float
    elapsed_ms: float


@dataclass
class QueryPage:
    items: List[Consent]
    request_charge: float
    elapsed_ms: float


@dataclass
class QueryResult:
    label: str
    pages: List[QueryPage] = field(default_factory=list)

    @property
    def items(self) -> List[Consent]:
        return [item for page in self.pages for item in page.items]

    @property
    def page_charges(self) -> List[float]:
        return [page.request_charge for page in self.pages]

    @property
    def request_charge(self) -> float:
        return sum(self.page_charges)

    @property
    def elapsed_ms(self) -> float:
        return self.pages[-1].elapsed_ms if self.pages else 0.0


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def insert_consent(container, consent: Consent) -> ProbeResult:
    """Create `consent` in the container; the service routes it by its key fields."""
    start = time.perf_counter()
    created = container.create_item(body=consent.to_dict())
    elapsed = _elapsed_ms(start)
    charge = last_request_charge(container)
    logger.debug("Created %s (%.2f RU)", consent.id, charge)
    return ProbeResult(Consent.from_dict(created), charge, elapsed)


def read_consent(container, consent_id: str, partition_key: Sequence[str]) -> ProbeResult:
    """Point-read one consent. The key must match at every hierarchy level."""
    start = time.perf_counter()
    doc = container.read_item(item=consent_id, partition_key=list(partition_key))
    elapsed = _elapsed_ms(start)
    charge = last_request_charge(container)
    logger.debug("Read %s under %s (%.2f RU)", consent_id, list(partition_key), charge)
    return ProbeResult(Consent.from_dict(doc), charge, elapsed)


def write_read_loop(
    container,
    identities: Sequence[Identity],
    count: int = 100,
    rng: Optional[random.Random] = None,
) -> List[ProbeResult]:
    """Insert `count` random consents, reading each one back right away.

    Returns the read results; their charges feed the average report.
    """
    rng = rng or random.Random()
    reads = []
    for _ in range(count):
        consent = random_consent(identities, rng)
        created = insert_consent(container, consent)
        reads.append(read_consent(container, created.item.id, partition_key_for(consent)))
    return reads


def by_name(name: str) -> Tuple[str, Parameters]:
    return (
        "SELECT * FROM p WHERE p.name = @name",
        [{"name": "@name", "value": name}],
    )


def by_tenant(tenant_id: str) -> Tuple[str, Parameters]:
    return (
        "SELECT * FROM p WHERE p.tenantId = @tenantId",
        [{"name": "@tenantId", "value": tenant_id}],
    )


def by_tenant_and_subscription(tenant_id: str, subscription_id: str) -> Tuple[str, Parameters]:
    return (
        "SELECT * FROM p WHERE p.tenantId = @tenantId AND p.subscriptionId = @subscriptionId",
        [
            {"name": "@tenantId", "value": tenant_id},
            {"name": "@subscriptionId", "value": subscription_id},
        ],
    )


def query_consents(
    container,
    query: str,
    parameters: Parameters,
    label: str,
    max_item_count: Optional[int] = None,
) -> QueryResult:
    """Run a query page by page, recording the charge of each page.

    Elapsed time on each page is measured from the start of the query.
    """
    kwargs: Dict[str, Any] = {
        "query": query,
        "parameters": parameters,
        "enable_cross_partition_query": True,
    }
    if max_item_count:
        kwargs["max_item_count"] = max_item_count

    result = QueryResult(label)
    start = time.perf_counter()
    for page in container.query_items(**kwargs).by_page():
        # One backend request per page assumes a single physical partition,
        # true for the default 400 RU/s container. With more, this undercounts.
        items = [Consent.from_dict(doc) for doc in page]
        charge = last_request_charge(container)
        result.pages.append(QueryPage(items, charge, _elapsed_ms(start)))
        logger.debug("%s: page of %d items (%.2f RU)", label, len(items), charge)
    return result


def average_charge(results: Sequence[ProbeResult]) -> float:
    if not results:
        return 0.0
    return statistics.fmean(r.request_charge for r in results)


def report_created(result: ProbeResult) -> None:
    item = result.item
    print(f"Created item:\t{item.id}\t[{item.tenantId}]\t[{item.subscriptionId}]\n\n")


def report_point_read(result: ProbeResult) -> None:
    print(f"Request Charge for Point Read WITH Hierarchical Partition Key\t{result.request_charge}")
    print(f"Time Elapsed(ms):\t{result.elapsed_ms:.0f}\n\n")


def report_loop(reads: Sequence[ProbeResult], elapsed_ms: float) -> None:
    print(f"Created and read {len(reads)} items. Time Elapsed(ms):\t{elapsed_ms:.0f}")
    print(f"Average read request charge:\t{average_charge(reads)}\n\n")


def report_query(result: QueryResult) -> None:
    for page in result.pages:
        for item in page.items:
            print(f"Found item:\t{item.name}")
        print(f"Request Charge for query {result.label}\t{page.request_charge}")
        print(f"Time Elapsed(ms):\t{page.elapsed_ms:.0f}\n\n")

