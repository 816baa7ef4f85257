# app/crud/acl_override.py
from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import MAX_INT_ID
from app.db.errors import translate_store_errors
from app.models.acl_override import AclOverride
from app.schemas.acl import OverrideDocument, is_valid_key

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _require_id(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if not 0 <= value <= MAX_INT_ID:
        raise ValueError(f"{name} must be between 0 and {MAX_INT_ID}, got {value!r}")
    return value


def acl_key(tenant_id: int, user_id: int) -> str:
    """
    Storage key for a user's overrides in a tenant.

    The shape "acl:user:<tenantId>:<userId>" (tenant first, plain decimal) is
    read by migration and inspection tooling and must not change.
    """
    t = _require_id("tenant_id", tenant_id)
    u = _require_id("user_id", user_id)
    return f"acl:user:{t}:{u}"


def _decode_field(key: str, field: str, value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("ignoring malformed %r in override document %s", field, key)
        return []
    entries = [v for v in value if isinstance(v, str) and is_valid_key(v)]
    if len(entries) != len(value):
        logger.warning(
            "dropping %d malformed %r entries in override document %s", len(value) - len(entries), field, key
        )
    return entries


def _decode(key: str, raw: str | None) -> OverrideDocument:
    """
    Each field is decoded on its own, so a broken "add" never costs the
    "remove" list (and the other way round).
    """
    if not raw:
        return OverrideDocument()
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("ignoring malformed override document %s: not JSON", key)
        return OverrideDocument()
    if not isinstance(parsed, dict):
        logger.warning("ignoring malformed override document %s: not an object", key)
        return OverrideDocument()
    return OverrideDocument(
        add=_decode_field(key, "add", parsed.get("add")),
        remove=_decode_field(key, "remove", parsed.get("remove")),
    )


async def get_overrides(db: AsyncSession, tenant_id: int, user_id: int) -> OverrideDocument:
    """Stored document for (tenant, user); an empty one when none was ever written."""
    key = acl_key(tenant_id, user_id)
    stmt = select(AclOverride.value).where(AclOverride.key == key)
    with translate_store_errors("override lookup"):
        raw = (await db.execute(stmt)).scalar_one_or_none()
    return _decode(key, raw)


async def set_overrides(
    db: AsyncSession,
    tenant_id: int,
    user_id: int,
    doc: OverrideDocument,
) -> OverrideDocument:
    """
    Replace the whole document for (tenant, user). Not a merge: callers that want
    an incremental change read, modify and write back.

    The write is a single INSERT .. ON CONFLICT (key) DO UPDATE so concurrent
    writers to one key never interleave; last writer wins.
    """
    key = acl_key(tenant_id, user_id)
    doc = OverrideDocument.model_validate(doc.model_dump())

    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"override upsert is not supported on {dialect!r}")

    stmt = insert(AclOverride).values(
        key=key,
        tenant_id=tenant_id,
        user_id=user_id,
        value=doc.model_dump_json(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["key"],
        set_={"value": stmt.excluded.value, "updated_at": func.now()},
    )
    with translate_store_errors("override write"):
        await db.execute(stmt)
        await db.commit()

    logger.info(
        "override written %s (add=%d remove=%d)", key, len(doc.add), len(doc.remove)
    )
    return doc
