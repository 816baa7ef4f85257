# app/core/roles.py

import enum


class Role(str, enum.Enum):
    ADMIN = "ADMIN"                # everything, including access-control settings
    MANAGER = "MANAGER"
    RECEPTIONIST = "RECEPTIONIST"
    CASHIER = "CASHIER"
    WAITER = "WAITER"
    HOUSEKEEPING = "HOUSEKEEPING"

    @classmethod
    def parse(cls, value: "Role | str | None") -> "Role | None":
        """Decode a stored role name; None when it is not one of ours."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None
