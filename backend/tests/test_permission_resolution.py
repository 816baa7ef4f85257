# tests/test_permission_resolution.py
from __future__ import annotations

import asyncio
import json
import logging

import pytest

from app.auth.permissions import CATALOG, PermissionCatalog
from app.core.errors import DependencyUnavailable, UnknownRoleError
from app.core.roles import Role
from app.crud import acl_override as override_store
from app.crud import tenant_membership as membership_store
from app.crud.acl_override import acl_key, set_overrides
from app.crud.tenant_membership import remove_membership, upsert_membership
from app.models.acl_override import AclOverride
from app.models.tenant_membership import TenantMembership
from app.schemas.acl import OverrideDocument
from app.services.permissions import PermissionResolver, apply_overrides, resolve_permissions

from factories import create_member, create_tenant, create_user


# ---------------------------------------------------------
# Pure merge
# ---------------------------------------------------------
def test_repeated_adds_are_idempotent():
    base = {"dashboard.view"}
    once = apply_overrides(base, OverrideDocument(add=["pos.use"]))
    many = apply_overrides(base, OverrideDocument.model_construct(add=["pos.use"] * 3, remove=[]))
    assert once == many == {"dashboard.view", "pos.use"}


def test_remove_wins_over_add_for_the_same_key():
    base = {"dashboard.view", "customers.write"}
    doc = OverrideDocument(add=["customers.write", "pos.use"], remove=["customers.write", "pos.use"])
    assert apply_overrides(base, doc) == {"dashboard.view"}


def test_removing_an_absent_key_is_a_noop():
    assert apply_overrides({"pos.use"}, OverrideDocument(remove=["bars.manage"])) == {"pos.use"}


def test_merge_does_not_mutate_the_baseline():
    base = CATALOG.defaults_for_role(Role.WAITER)
    apply_overrides(base, OverrideDocument(remove=["pos.use"]))
    assert "pos.use" in CATALOG.defaults_for_role(Role.WAITER)


# ---------------------------------------------------------
# Resolution against the stores
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_non_member_gets_empty_list_even_with_overrides(db):
    tenant = await create_tenant(db)
    user = await create_user(db, "ghost@example.com")
    await set_overrides(db, tenant.id, user.id, OverrideDocument(add=["pos.use"]))

    assert await resolve_permissions(db, user.id, tenant.id) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("role", list(Role))
async def test_role_defaults_without_overrides(db, role):
    tenant = await create_tenant(db)
    user = await create_member(db, tenant, f"{role.value.lower()}@example.com", role)

    permissions = await resolve_permissions(db, user.id, tenant.id)
    assert set(permissions) == CATALOG.defaults_for_role(role)
    assert len(permissions) == len(set(permissions))


@pytest.mark.asyncio
async def test_manager_with_add_and_remove(db):
    tenant = await create_tenant(db)
    user = await create_member(db, tenant, "manager@example.com", Role.MANAGER)
    await set_overrides(
        db, tenant.id, user.id, OverrideDocument(add=["settings.access.manage"], remove=["customers.write"])
    )

    permissions = set(await resolve_permissions(db, user.id, tenant.id))
    expected = (CATALOG.defaults_for_role(Role.MANAGER) | {"settings.access.manage"}) - {"customers.write"}
    assert permissions == expected
    assert "dashboard.view" in permissions
    assert "customers.read" in permissions


@pytest.mark.asyncio
async def test_manager_example_against_a_small_catalog(db):
    catalog = PermissionCatalog(
        ["dashboard.view", "customers.read", "customers.write", "pos.use"],
        {role: [] for role in Role} | {Role.MANAGER: ["dashboard.view", "customers.read", "customers.write"]},
    )
    tenant = await create_tenant(db)
    user = await create_member(db, tenant, "manager@example.com", Role.MANAGER)
    await set_overrides(db, tenant.id, user.id, OverrideDocument(add=["pos.use"], remove=["customers.write"]))

    permissions = await PermissionResolver(db, catalog=catalog).resolve(user.id, tenant.id)
    assert permissions == ["customers.read", "dashboard.view", "pos.use"]


@pytest.mark.asyncio
async def test_remove_wins_when_stored_document_overlaps(db):
    tenant = await create_tenant(db)
    user = await create_member(db, tenant, "waiter@example.com", Role.WAITER)
    await set_overrides(db, tenant.id, user.id, OverrideDocument(add=["pos.use"], remove=["pos.use"]))

    assert "pos.use" not in await resolve_permissions(db, user.id, tenant.id)


@pytest.mark.asyncio
async def test_malformed_add_does_not_undo_stored_removals(db):
    tenant = await create_tenant(db)
    user = await create_member(db, tenant, "waiter@example.com", Role.WAITER)
    raw = json.dumps({"add": "bars.read", "remove": ["pos.use"]})
    db.add(AclOverride(key=acl_key(tenant.id, user.id), tenant_id=tenant.id, user_id=user.id, value=raw))
    await db.commit()

    assert await resolve_permissions(db, user.id, tenant.id) == ["customers.read", "dashboard.view"]


@pytest.mark.asyncio
async def test_override_write_is_visible_to_next_resolution(db):
    tenant = await create_tenant(db)
    user = await create_member(db, tenant, "cashier@example.com", Role.CASHIER)
    resolver = PermissionResolver(db)

    assert "bars.read" not in await resolver.resolve(user.id, tenant.id)
    result = await resolver.set_overrides(tenant.id, user.id, OverrideDocument(add=["bars.read"]))
    assert result["ok"] is True
    assert "bars.read" in result["permissions"]
    assert "bars.read" in await resolver.resolve(user.id, tenant.id)


@pytest.mark.asyncio
async def test_role_change_and_removal_take_effect(db):
    tenant = await create_tenant(db)
    user = await create_member(db, tenant, "staff@example.com", Role.HOUSEKEEPING)

    await upsert_membership(db, tenant.id, user.id, Role.RECEPTIONIST)
    assert set(await resolve_permissions(db, user.id, tenant.id)) == CATALOG.defaults_for_role(Role.RECEPTIONIST)

    assert await remove_membership(db, tenant.id, user.id) is True
    assert await resolve_permissions(db, user.id, tenant.id) == []


@pytest.mark.asyncio
async def test_inactive_membership_counts_as_non_member(db):
    tenant = await create_tenant(db)
    user = await create_user(db, "former@example.com")
    await upsert_membership(db, tenant.id, user.id, Role.MANAGER, is_active=False)

    assert await resolve_permissions(db, user.id, tenant.id) == []


@pytest.mark.asyncio
async def test_roles_are_per_tenant(db):
    hotel = await create_tenant(db, name="Hotel")
    bar = await create_tenant(db, name="Bar")
    user = await create_member(db, hotel, "both@example.com", Role.RECEPTIONIST)
    await upsert_membership(db, bar.id, user.id, Role.WAITER)

    assert set(await resolve_permissions(db, user.id, hotel.id)) == CATALOG.defaults_for_role(Role.RECEPTIONIST)
    assert set(await resolve_permissions(db, user.id, bar.id)) == CATALOG.defaults_for_role(Role.WAITER)


@pytest.mark.asyncio
async def test_tenant_code_and_numeric_string_claims(db):
    tenant = await create_tenant(db, code="acme-hotel")
    user = await create_member(db, tenant, "code@example.com", Role.WAITER)

    expected = sorted(CATALOG.defaults_for_role(Role.WAITER))
    assert await resolve_permissions(db, user.id, "acme-hotel") == expected
    assert await resolve_permissions(db, user.id, str(tenant.id)) == expected
    assert await resolve_permissions(db, user.id, "unknown-hotel") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "user_id, tenant_id",
    [(1, 2**31), (1, "99999999999999999999"), (2**63, 1), (1, -3), (1, "-3")],
)
async def test_ids_outside_the_column_range_resolve_to_empty(db, user_id, tenant_id):
    tenant = await create_tenant(db)
    await create_member(db, tenant, "real@example.com", Role.ADMIN)

    assert await resolve_permissions(db, user_id, tenant_id) == []


@pytest.mark.asyncio
async def test_upsert_membership_rejects_unknown_role(db):
    with pytest.raises(ValueError):
        await upsert_membership(db, 1, 1, "CONCIERGE")


# ---------------------------------------------------------
# Failure modes
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_unknown_stored_role_is_logged_and_raised(db, caplog):
    tenant = await create_tenant(db)
    user = await create_user(db, "drift@example.com")
    db.add(TenantMembership(tenant_id=tenant.id, user_id=user.id, role="CONCIERGE", is_active=True))
    await db.commit()

    caplog.set_level(logging.ERROR, logger="app.services.permissions")
    with pytest.raises(UnknownRoleError):
        await resolve_permissions(db, user.id, tenant.id)
    assert "CONCIERGE" in caplog.text


@pytest.mark.asyncio
async def test_membership_outage_propagates(db, monkeypatch):
    async def _down(*args, **kwargs):
        raise DependencyUnavailable("membership store down")

    monkeypatch.setattr(membership_store, "resolve_role", _down)
    with pytest.raises(DependencyUnavailable):
        await resolve_permissions(db, 1, 1)


@pytest.mark.asyncio
async def test_override_outage_propagates_without_partial_result(db, monkeypatch):
    tenant = await create_tenant(db)
    user = await create_member(db, tenant, "manager@example.com", Role.MANAGER)
    calls = []

    async def _down(*args, **kwargs):
        calls.append(args)
        raise DependencyUnavailable("override store down")

    monkeypatch.setattr(override_store, "get_overrides", _down)
    with pytest.raises(DependencyUnavailable):
        await resolve_permissions(db, user.id, tenant.id)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_slow_store_times_out(db, monkeypatch):
    async def _slow(*args, **kwargs):
        await asyncio.sleep(5)
        return Role.ADMIN.value

    monkeypatch.setattr(membership_store, "resolve_role", _slow)
    with pytest.raises(DependencyUnavailable, match="timed out"):
        await PermissionResolver(db).resolve(1, 1, timeout=0.05)
