from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Mapping, Sequence

from app.core.errors import CatalogIntegrityError, UnknownRoleError
from app.core.roles import Role


@dataclass(frozen=True)
class Permission:
    # dashboard.*
    DASHBOARD_VIEW: str = "dashboard.view"

    # customers.*
    CUSTOMERS_READ: str = "customers.read"
    CUSTOMERS_WRITE: str = "customers.write"

    # inventory.*
    INVENTORY_READ: str = "inventory.read"
    INVENTORY_MANAGE: str = "inventory.manage"

    # bars.*
    BARS_READ: str = "bars.read"
    BARS_MANAGE: str = "bars.manage"

    # hotels.*
    HOTELS_READ: str = "hotels.read"
    HOTELS_MANAGE: str = "hotels.manage"

    # pos.*
    POS_USE: str = "pos.use"

    # reports.*
    REPORTS_VIEW: str = "reports.view"
    REPORTS_MANAGE: str = "reports.manage"

    # suppliers.*
    SUPPLIERS_READ: str = "suppliers.read"
    SUPPLIERS_MANAGE: str = "suppliers.manage"

    # bookings.*
    BOOKINGS_READ: str = "bookings.read"
    BOOKINGS_MANAGE: str = "bookings.manage"

    # invoices.*
    INVOICES_READ: str = "invoices.read"
    INVOICES_MANAGE: str = "invoices.manage"

    # settings.* (restricts access-control management)
    SETTINGS_ACCESS_MANAGE: str = "settings.access.manage"


PERM = Permission()


@dataclass(frozen=True)
class PermissionMeta:
    label: str
    group: str
    description: str = ""


# Display order for settings UI; keys are listed group by group.
PERMISSION_META: Mapping[str, PermissionMeta] = {
    PERM.DASHBOARD_VIEW: PermissionMeta("View Dashboard", "Dashboard", "See the main KPIs and overview widgets."),
    PERM.CUSTOMERS_READ: PermissionMeta("Customers - Read", "Customers", "View customer profiles and basic details."),
    PERM.CUSTOMERS_WRITE: PermissionMeta("Customers - Manage", "Customers", "Create, edit, or delete customers."),
    PERM.INVENTORY_READ: PermissionMeta("Inventory - Read", "Inventory", "View stock items and quantities."),
    PERM.INVENTORY_MANAGE: PermissionMeta("Inventory - Manage", "Inventory", "Add, edit, or adjust stock and items."),
    PERM.BARS_READ: PermissionMeta("Bars - Read", "Bars", "View bar menus and sales data."),
    PERM.BARS_MANAGE: PermissionMeta("Bars - Manage", "Bars", "Create or update bar items and pricing."),
    PERM.HOTELS_READ: PermissionMeta("Hotels - Read", "Hotels", "View rooms, housekeeping, and hotel data."),
    PERM.HOTELS_MANAGE: PermissionMeta("Hotels - Manage", "Hotels", "Edit rooms, rates, and housekeeping settings."),
    PERM.POS_USE: PermissionMeta("Use POS", "POS", "Access the point-of-sale to create bills."),
    PERM.REPORTS_VIEW: PermissionMeta("Reports - View", "Reports", "Access standard reports and analytics."),
    PERM.REPORTS_MANAGE: PermissionMeta("Reports - Manage", "Reports", "Create custom reports and export data."),
    PERM.SUPPLIERS_READ: PermissionMeta("Suppliers - Read", "Suppliers", "View suppliers list and details."),
    PERM.SUPPLIERS_MANAGE: PermissionMeta("Suppliers - Manage", "Suppliers", "Add or edit suppliers and contracts."),
    PERM.BOOKINGS_READ: PermissionMeta("Bookings - Read", "Bookings", "View bookings and availability."),
    PERM.BOOKINGS_MANAGE: PermissionMeta("Bookings - Manage", "Bookings", "Create, modify, or cancel bookings."),
    PERM.INVOICES_READ: PermissionMeta("Invoices - Read", "Invoices", "View invoices and billing history."),
    PERM.INVOICES_MANAGE: PermissionMeta("Invoices - Manage", "Invoices", "Create, edit, or void invoices."),
    PERM.SETTINGS_ACCESS_MANAGE: PermissionMeta(
        "Access Control - Manage", "Settings", "Grant or revoke permissions for other users."
    ),
}

ALL_PERMISSIONS: tuple[str, ...] = tuple(PERMISSION_META)

_MANAGER = (
    PERM.DASHBOARD_VIEW,
    PERM.CUSTOMERS_READ,
    PERM.CUSTOMERS_WRITE,
    PERM.INVENTORY_READ,
    PERM.INVENTORY_MANAGE,
    PERM.BARS_READ,
    PERM.BARS_MANAGE,
    PERM.HOTELS_READ,
    PERM.HOTELS_MANAGE,
    PERM.POS_USE,
    PERM.REPORTS_VIEW,
    PERM.REPORTS_MANAGE,
    PERM.SUPPLIERS_READ,
    PERM.SUPPLIERS_MANAGE,
    PERM.BOOKINGS_READ,
    PERM.BOOKINGS_MANAGE,
    PERM.INVOICES_READ,
    PERM.INVOICES_MANAGE,
)

ROLE_BASE_PERMISSIONS: Mapping[Role, Sequence[str]] = {
    Role.ADMIN: ALL_PERMISSIONS,
    # everything except access-control management
    Role.MANAGER: _MANAGER,
    Role.RECEPTIONIST: (
        PERM.DASHBOARD_VIEW,
        PERM.CUSTOMERS_READ,
        PERM.CUSTOMERS_WRITE,
        PERM.BOOKINGS_READ,
        PERM.BOOKINGS_MANAGE,
        PERM.INVOICES_READ,
        PERM.INVOICES_MANAGE,
    ),
    Role.CASHIER: (
        PERM.DASHBOARD_VIEW,
        PERM.POS_USE,
        PERM.INVOICES_READ,
        PERM.INVOICES_MANAGE,
        PERM.REPORTS_VIEW,
    ),
    Role.WAITER: (
        PERM.DASHBOARD_VIEW,
        PERM.CUSTOMERS_READ,
        PERM.POS_USE,
    ),
    Role.HOUSEKEEPING: (
        PERM.DASHBOARD_VIEW,
        PERM.HOTELS_READ,
    ),
}


class PermissionCatalog:
    """
    Immutable role -> default permission table, validated once at construction.

    Every key a role references must exist in the universe; a catalog that fails
    this check raises CatalogIntegrityError and the process should not start.
    """

    def __init__(
        self,
        permissions: Iterable[str],
        role_defaults: Mapping[Role, Iterable[str]],
        meta: Mapping[str, PermissionMeta] | None = None,
    ):
        ordered = list(permissions)
        universe = frozenset(ordered)
        if len(universe) != len(ordered):
            dupes = sorted({p for p in ordered if ordered.count(p) > 1})
            raise CatalogIntegrityError(f"Duplicate permission keys: {dupes}")

        defaults: dict[Role, FrozenSet[str]] = {}
        for role in Role:
            if role not in role_defaults:
                raise CatalogIntegrityError(f"Role {role.value} has no default permission set")
            keys = frozenset(role_defaults[role])
            unknown = keys - universe
            if unknown:
                raise CatalogIntegrityError(
                    f"Role {role.value} references unknown permissions: {sorted(unknown)}"
                )
            defaults[role] = keys

        self._ordered: tuple[str, ...] = tuple(ordered)
        self._universe = universe
        self._defaults: Mapping[Role, FrozenSet[str]] = defaults
        self._meta: Mapping[str, PermissionMeta] = dict(meta or {})

    def all_permissions(self) -> FrozenSet[str]:
        return self._universe

    def roles(self) -> list[Role]:
        return list(self._defaults)

    def defaults_for_role(self, role: Role | str) -> FrozenSet[str]:
        decoded = Role.parse(role)
        if decoded is None or decoded not in self._defaults:
            raise UnknownRoleError(role)
        return self._defaults[decoded]

    def unknown_keys(self, keys: Iterable[str]) -> list[str]:
        return sorted({k for k in keys if k not in self._universe})

    def describe(self) -> list[dict]:
        """Every key with its label and group, in catalog order (for the settings UI)."""
        out = []
        for key in self._ordered:
            m = self._meta.get(key)
            out.append(
                {
                    "key": key,
                    "label": m.label if m else key,
                    "group": m.group if m else key.split(".", 1)[0].title(),
                    "description": m.description if m else "",
                }
            )
        return out


CATALOG = PermissionCatalog(ALL_PERMISSIONS, ROLE_BASE_PERMISSIONS, PERMISSION_META)


def _as_set(perms: Iterable[str] | None) -> FrozenSet[str]:
    if not perms:
        return frozenset()
    return perms if isinstance(perms, frozenset) else frozenset(perms)


def can(perms: Iterable[str] | None, required: str) -> bool:
    """Exact match only; there are no wildcards."""
    return required in _as_set(perms)


def can_any(perms: Iterable[str] | None, required: Sequence[str]) -> bool:
    if not required:
        return True
    have = _as_set(perms)
    return any(k in have for k in required)


def can_all(perms: Iterable[str] | None, required: Sequence[str]) -> bool:
    if not required:
        return True
    have = _as_set(perms)
    return all(k in have for k in required)
