# Overview: Tenant settings collaborator; tax rate, order quota and checkout context.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Tenant, Sale
from ..validation import ValidationFailure, require_text
from .document_service import ensure_sequences


class TenantNotFound(ValidationFailure):
    """Raised when an operation names an unknown or inactive tenant."""


@dataclass(frozen=True)
class TenantSettings:
    tax_rate_bps: int
    max_orders: int
    currency_symbol: str


@dataclass(frozen=True)
class CheckoutContext:
    """Who and where a checkout happens, plus the tenant's order quota."""
    tenant_id: str
    register_id: str
    cashier_user_id: str
    current_sale_count: int
    max_orders: int
    shift_id: str | None = None


def create_tenant(
    name: str,
    *,
    max_orders: int | None = None,
    tax_rate_bps: int | None = None,
    currency_symbol: str = "$",
    plan: str = "basic",
    tenant_id: str | None = None,
) -> Tenant:
    name = require_text(name, "name")
    if max_orders is None:
        max_orders = current_app.config["POS_DEFAULT_MAX_ORDERS"]
    if tax_rate_bps is None:
        tax_rate_bps = current_app.config["POS_DEFAULT_TAX_RATE_BPS"]
    if max_orders < 0:
        raise ValidationFailure("max_orders cannot be negative")
    if not 0 <= tax_rate_bps <= 10_000:
        raise ValidationFailure("tax_rate_bps must be between 0 and 10000")

    tenant = Tenant(
        name=name,
        plan=plan,
        max_orders=max_orders,
        tax_rate_bps=tax_rate_bps,
        currency_symbol=currency_symbol,
    )
    if tenant_id:
        tenant.id = tenant_id
    db.session.add(tenant)
    db.session.flush()
    ensure_sequences(tenant.id)
    db.session.commit()
    return tenant


def get_tenant(tenant_id: str) -> Tenant:
    tenant = db.session.get(Tenant, tenant_id) if tenant_id else None
    if not tenant or not tenant.is_active:
        raise TenantNotFound("Tenant not found")
    return tenant


def get_tenant_settings(tenant_id: str) -> TenantSettings:
    tenant = get_tenant(tenant_id)
    return TenantSettings(
        tax_rate_bps=tenant.tax_rate_bps,
        max_orders=tenant.max_orders,
        currency_symbol=tenant.currency_symbol,
    )


def count_sales(tenant_id: str) -> int:
    return db.session.query(Sale).filter_by(tenant_id=tenant_id).count()


def build_checkout_context(
    *,
    tenant_id: str,
    register_id: str,
    cashier_user_id: str,
    shift_id: str | None = None,
) -> CheckoutContext:
    """Fill the quota fields of a checkout context from the store."""
    settings = get_tenant_settings(tenant_id)
    return CheckoutContext(
        tenant_id=tenant_id,
        register_id=register_id,
        shift_id=shift_id,
        cashier_user_id=cashier_user_id,
        current_sale_count=count_sales(tenant_id),
        max_orders=settings.max_orders,
    )
