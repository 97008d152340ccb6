#!/usr/bin/env python3
"""Point-read one consent from the POC container and print its request charge.

Usage: python3 -m scripts.read_consent <id> <tenantId> <subscriptionId>  (from the repo root)
Connection settings come from COSMOS_ENDPOINT / COSMOS_KEY (a .env file works too).
Override the target with COSMOS_DATABASE and COSMOS_CONTAINER. Nothing is created;
a missing database or container is reported as not found.
"""
import os
import sys

from azure.cosmos import exceptions
from dotenv import load_dotenv

from database import DEFAULT_CONTAINER, DEFAULT_DATABASE, get_container_client
from probes import read_consent


def main(argv=None):
    argv = sys.argv if argv is None else argv
    if len(argv) != 4:
        print("Usage: python3 -m scripts.read_consent <id> <tenantId> <subscriptionId>")
        sys.exit(2)

    consent_id, tenant_id, subscription_id = argv[1:]

    load_dotenv()
    container = get_container_client(
        database_name=os.getenv("COSMOS_DATABASE") or DEFAULT_DATABASE,
        container_name=os.getenv("COSMOS_CONTAINER") or DEFAULT_CONTAINER,
    )

    try:
        result = read_consent(container, consent_id, [tenant_id, subscription_id])
    except exceptions.CosmosResourceNotFoundError:
        # 404 also covers a mistyped database or container name
        print(f"Consent {consent_id} not found under [{tenant_id}] [{subscription_id}]")
        sys.exit(1)

    item = result.item
    print(f"Found item:\t{item.id}\t{item.name}\t{item.scope}\tstatus={item.status}")
    print(f"Request Charge for Point Read WITH Hierarchical Partition Key\t{result.request_charge}")
    print(f"Time Elapsed(ms):\t{result.elapsed_ms:.0f}")


if __name__ == "__main__":
    main()
