"""
Multi-Tenant Service: Tenant Scope and Scoping Helpers

WHY: Every operation in the commerce core runs on behalf of exactly one
tenant (store). The tenant is carried by an explicit TenantScope handle
passed as the first argument to every service call, never by a module
global or thread-local, so nothing can leak from one operation into a later
one handled by the same worker.

SECURITY INVARIANTS:
1. Every service call requires a bound scope (scope.require())
2. Rows loaded by raw id are checked against the scope (get_owned)
3. List queries filter by the scope's tenant (scoped_query)
4. Cross-tenant access attempts are logged and raise CrossTenantError
   (never silently filtered to "not found")

USAGE:
    from salepilot.services.tenant_service import tenant_scope, get_owned

    with tenant_scope(store_id, user_id=user_id) as scope:
        sale = sales_service.create_sale(scope, request)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..extensions import db
from ..errors import (
    CrossTenantError,
    NotFoundError,
    PermissionDeniedError,
    TenantStateError,
    ValidationError,
)
from ..models import Store
from ..permissions import capabilities_for_roles, validate_capability_code
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)


def _normalize_tenant_id(tenant_id) -> Optional[int]:
    if tenant_id is None or isinstance(tenant_id, bool):
        return None
    if isinstance(tenant_id, int):
        return tenant_id
    text = str(tenant_id).strip()
    if not text:
        return None
    if not text.isdigit():
        raise ValidationError("Tenant id must be an integer", details={"tenant_id": text})
    return int(text)


class TenantScope:
    """
    Per-operation tenant binding.

    - set(): binds a tenant; blank/None ids are logged and ignored
    - get(): bound tenant id or None
    - clear(): unbinds unconditionally
    - require(): bound tenant id, or TenantStateError

    capabilities=None means unrestricted (system/CLI operations). Any other
    value is the exact set of capability codes the caller holds.
    """

    def __init__(self, tenant_id=None, *, user_id: int | None = None,
                 capabilities: Iterable[str] | None = None):
        self._tenant_id: Optional[int] = None
        self.user_id = user_id
        self.capabilities = frozenset(capabilities) if capabilities is not None else None
        if self.capabilities:
            unknown = sorted(c for c in self.capabilities if not validate_capability_code(c))
            if unknown:
                raise ValidationError("Unknown capability codes", details={"capabilities": unknown})
        if tenant_id is not None:
            self.set(tenant_id)

    def __repr__(self) -> str:
        return f"<TenantScope tenant_id={self._tenant_id} user_id={self.user_id}>"

    def set(self, tenant_id) -> None:
        normalized = _normalize_tenant_id(tenant_id)
        if normalized is None:
            logger.warning("Ignoring attempt to bind a blank tenant id")
            return
        self._tenant_id = normalized
        logger.debug("Tenant scope bound to %s", normalized)

    def get(self) -> Optional[int]:
        return self._tenant_id

    def clear(self) -> None:
        if self._tenant_id is not None:
            logger.debug("Tenant scope cleared (was %s)", self._tenant_id)
        self._tenant_id = None

    def is_set(self) -> bool:
        return self._tenant_id is not None

    def require(self) -> int:
        if self._tenant_id is None:
            raise TenantStateError("No tenant bound to the current operation")
        return self._tenant_id

    def has_capability(self, code: str) -> bool:
        return self.capabilities is None or code in self.capabilities

    def require_capability(self, code: str) -> None:
        if not self.has_capability(code):
            logger.warning(
                "Capability %s denied for user %s in tenant %s",
                code, self.user_id, self._tenant_id,
            )
            raise PermissionDeniedError(
                f"Missing capability: {code}",
                details={"capability": code},
            )


@contextmanager
def tenant_scope(tenant_id, *, user_id: int | None = None,
                 capabilities: Iterable[str] | None = None):
    """Bind a scope for the duration of the block; always cleared on exit."""
    scope = TenantScope(tenant_id, user_id=user_id, capabilities=capabilities)
    try:
        yield scope
    finally:
        scope.clear()


@dataclass(frozen=True)
class Principal:
    """
    Authenticated caller as handed over by the identity provider.

    capabilities, when given, wins over roles. With neither, the principal
    holds no capabilities at all.
    """
    tenant_id: int
    user_id: int | None = None
    roles: tuple[str, ...] = field(default_factory=tuple)
    capabilities: frozenset[str] | None = None


def scope_for_principal(principal: Principal) -> TenantScope:
    if principal.capabilities is not None:
        capabilities = principal.capabilities
    else:
        capabilities = capabilities_for_roles(principal.roles)
    scope = TenantScope(principal.tenant_id, user_id=principal.user_id, capabilities=capabilities)
    # Blank ids are ignored by set(); a principal must always carry a tenant
    scope.require()
    return scope


def require_store(scope: TenantScope) -> Store:
    """Load the scope's Store row, rejecting unknown or inactive tenants."""
    store_id = scope.require()
    store = db.session.get(Store, store_id)
    if store is None:
        raise NotFoundError(f"Store {store_id} not found")
    if not store.is_active:
        raise TenantStateError(f"Store {store_id} is inactive")
    return store


def _log_cross_tenant_attempt(scope: TenantScope, model, entity_id, owner_tenant_id) -> None:
    logger.warning(
        "Cross-tenant access denied: user=%s tenant=%s attempted %s id=%s owned by tenant=%s",
        scope.user_id, scope.get(), model.__name__, entity_id, owner_tenant_id,
    )


def get_owned(scope: TenantScope, model, entity_id, *, lock: bool = False):
    """
    Load a tenant-owned row by raw id.

    Raises:
        NotFoundError: no row with that id
        CrossTenantError: the row belongs to another tenant
    """
    tenant_id = scope.require()
    if entity_id is None:
        raise ValidationError(f"{model.__name__} id is required")
    query = db.session.query(model).filter(model.id == entity_id)
    if lock:
        query = lock_for_update(query)
    obj = query.first()
    if obj is None:
        raise NotFoundError(f"{model.__name__} {entity_id} not found")
    if obj.tenant_id != tenant_id:
        _log_cross_tenant_attempt(scope, model, entity_id, obj.tenant_id)
        raise CrossTenantError(
            f"{model.__name__} {entity_id} belongs to another tenant",
            details={"entity": model.__name__, "id": entity_id},
        )
    return obj


def scoped_query(scope: TenantScope, model):
    """Query for model filtered to the scope's tenant."""
    return db.session.query(model).filter(model.tenant_id == scope.require())
