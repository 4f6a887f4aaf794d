"""State fingerprinting: the result cache key."""

import hashlib
import json
from collections.abc import Iterable

from gridcore.domain.entities import InteractionState, QueryFingerprint


def compute_fingerprint(
    state: InteractionState,
    *,
    model_identity: str,
    eager_loads: Iterable[str],
    visible_columns: Iterable[str] = (),
) -> QueryFingerprint:
    """Hash of everything that changes the executed query.

    Equal inputs give equal fingerprints; any differing query-affecting field
    gives a different one. Visible columns are included because they decide
    the search targets and the row shape.
    """
    payload = {
        "model": model_identity,
        "state": state.query_affecting_fields(),
        "eager_loads": sorted(set(eager_loads)),
        "visible_columns": list(visible_columns),
    }
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return QueryFingerprint(hashlib.sha256(serialized.encode("utf-8")).hexdigest())
