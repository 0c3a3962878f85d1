"""
Формы записей, которые сохраняет внешний слой (UI/локальное хранилище).

Ядро эти списки не читает - только строит значения и (де)сериализует их.
  SAVED_CONTRACTS_NAMESPACE → [{id, name, spec, code, savedAt}, ...]
  BADGES_NAMESPACE          → [{token_id, recipient, metadata, status}, ...]
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import orjson

from .ledger import BadgeRecord
from .model import ContractSpec

SAVED_CONTRACTS_NAMESPACE = "qubibuilder_saved_contracts"
BADGES_NAMESPACE = "qubic_sbts"


def saved_contract(
    spec: ContractSpec,
    code: str,
    *,
    contract_id: Optional[str] = None,
    saved_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    ts = (saved_at or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return {
        "id": contract_id or str(uuid.uuid4()),
        "name": spec.name,
        "spec": spec.to_dict(),
        "code": code,
        "savedAt": ts.isoformat().replace("+00:00", "Z"),
    }


def badge_entry(badge: BadgeRecord) -> Dict[str, Any]:
    return badge.to_dict()


def dumps(records: Iterable[Dict[str, Any]]) -> bytes:
    return orjson.dumps(list(records))


def loads(data: bytes | str) -> List[Dict[str, Any]]:
    """Пустое/отсутствующее значение хранилища → пустой список."""
    if not data:
        return []
    parsed = orjson.loads(data)
    if not isinstance(parsed, list):
        raise ValueError("stored records must be a JSON list")
    return parsed
