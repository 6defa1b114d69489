# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence

# (document_type, prefix, zero padding)
SALE_NUMBER = ("SALE", "SALE", 6)
RECEIPT_NUMBER = ("RECEIPT", "RCP", 8)
REFUND_NUMBER = ("REFUND", "REF", 6)

ALL_NUMBERS = (SALE_NUMBER, RECEIPT_NUMBER, REFUND_NUMBER)


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def ensure_sequences(tenant_id: str) -> None:
    """
    Create the counter rows for a new tenant.

    Safe to call repeatedly (idempotent). Does not commit.
    """
    existing = {
        row.document_type
        for row in db.session.query(DocumentSequence.document_type).filter_by(tenant_id=tenant_id)
    }
    for document_type, _prefix, _pad in ALL_NUMBERS:
        if document_type not in existing:
            db.session.add(DocumentSequence(tenant_id=tenant_id, document_type=document_type, next_number=1))
    db.session.flush()


def next_document_number(
    *,
    tenant_id: str,
    document_type: str,
    prefix: str,
    pad: int = 6,
) -> str:
    """
    Allocate the next display number for a tenant/type, e.g. ``SALE-000042``.

    The increment is a single UPDATE so two registers never draw the same
    number. Does not commit; the caller's transaction owns the allocation.
    """
    if not tenant_id:
        raise DocumentSequenceError("tenant_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.tenant_id == tenant_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(tenant_id=tenant_id, document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        # Tenant created outside tenant_service; start its counter here
        db.session.add(DocumentSequence(tenant_id=tenant_id, document_type=document_type, next_number=2))
        db.session.flush()
        next_num = 1

    return f"{prefix}-{next_num:0{pad}d}"


def next_number(tenant_id: str, kind: tuple[str, str, int]) -> str:
    document_type, prefix, pad = kind
    return next_document_number(
        tenant_id=tenant_id, document_type=document_type, prefix=prefix, pad=pad
    )
