from __future__ import annotations

import hashlib
import json
from typing import Any

from geocoins.sim.core import GameSession
from geocoins.sim.world import CellStore


def _canonical_digest(payload: dict[str, Any]) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def world_hash(store: CellStore) -> str:
    return _canonical_digest(store.to_dict())


def session_hash(session: GameSession) -> str:
    payload = session.to_dict()
    payload["event_trace"] = session.get_event_trace()
    return _canonical_digest(payload)
