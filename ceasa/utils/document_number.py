"""Sequential document numbers (PREFIX-YYYYMMDD-NNNN) per tenant and day."""
from datetime import date

from sqlalchemy import func

PURCHASE_PREFIX = 'COM'
RETURN_PREFIX = 'DEV'


def next_document_number(session, column, tenant_column, tenant_id: int, prefix: str, day: date = None) -> str:
    """
    Next number for the day, e.g. COM-20240105-0003.

    Follows the highest suffix already issued, so deleted documents leave
    gaps instead of freeing numbers. Two concurrent creations may pick the
    same number; the unique constraint on (tenant_id, number) rejects the
    second one.
    """
    day = day or date.today()
    stem = f"{prefix}-{day.strftime('%Y%m%d')}-"
    # Suffixes are zero-padded, so the string maximum is the numeric one
    last = (
        session.query(func.max(column))
        .filter(tenant_column == tenant_id, column.like(f"{stem}%"))
        .scalar()
    )
    sequence = int(last[len(stem):]) if last else 0
    return f"{stem}{sequence + 1:04d}"
