"""Consent records and the identifiers they are stored under.

A consent lives in the container under a two-level key: tenant, then
subscription. Its id embeds scope, name and tenant so it stays unique
across the container.
"""

import random
import string
import uuid
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple

from database import DEFAULT_PARTITION_PATHS

NAME_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_NAME = "default"

Identity = Tuple[str, str]  # (tenantId, subscriptionId)


@dataclass(frozen=True)
class Consent:
    id: str
    tenantId: str
    subscriptionId: str
    name: str
    scope: str
    status: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Consent":
        """Build a Consent from a stored document, dropping system properties."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in doc.items() if k in known})


def make_scope(subscription_id: str) -> str:
    return f"_subscriptions_{subscription_id}"


def make_consent_id(scope: str, name: str, tenant_id: str) -> str:
    return f"{scope}_{name}_{tenant_id}"


def partition_key_for(consent: Consent, paths: Sequence[str] = DEFAULT_PARTITION_PATHS) -> List[str]:
    """Return the composite partition key of `consent`, one value per level.

    Raises KeyError for a path that is not a Consent field.
    """
    doc = consent.to_dict()
    return [doc[path.lstrip("/")] for path in paths]


def generate_identities(count: int = 5) -> List[Identity]:
    """Return `count` fresh (tenantId, subscriptionId) pairs."""
    return [(str(uuid.uuid4()), str(uuid.uuid4())) for _ in range(count)]


def random_name(rng: Optional[random.Random] = None, length: int = 8) -> str:
    rng = rng or random.Random()
    return "".join(rng.choice(NAME_ALPHABET) for _ in range(length))


def new_consent(tenant_id: str, subscription_id: str, name: str = DEFAULT_NAME) -> Consent:
    scope = make_scope(subscription_id)
    return Consent(
        id=make_consent_id(scope, name, tenant_id),
        tenantId=tenant_id,
        subscriptionId=subscription_id,
        name=name,
        scope=scope,
        status=True,
    )


def random_consent(identities: Sequence[Identity], rng: Optional[random.Random] = None) -> Consent:
    """Build a consent with a random name under a randomly chosen identity."""
    if not identities:
        raise ValueError("At least one identity is required")
    rng = rng or random.Random()
    tenant_id, subscription_id = rng.choice(identities)
    return new_consent(tenant_id, subscription_id, random_name(rng))


__all__ = [
    "Consent",
    "Identity",
    "make_scope",
    "make_consent_id",
    "partition_key_for",
    "generate_identities",
    "random_name",
    "new_consent",
    "random_consent",
]
