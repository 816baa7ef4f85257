# Import models here so Alembic can discover metadata.
from app.models.user import User  # noqa: F401

from app.models.tenant import Tenant  # noqa: F401
from app.models.tenant_membership import TenantMembership  # noqa: F401
from app.models.acl_override import AclOverride  # noqa: F401
