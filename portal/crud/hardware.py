"""Hardware ledger: status, checkout and checkin against the shared pools.

Each mutation is one conditional ``UPDATE ... WHERE <bound holds> RETURNING``
statement, so the availability check and the write can never interleave with
another request's write to the same set. When the update matches nothing we
read the row back to tell "unknown set" apart from "bound violated".
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Row, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import (
    CapacityExceeded,
    HardwareNotFound,
    InvalidRequestError,
    LedgerError,
    StorageUnavailable,
    UnderflowExceeded,
)
from ..models.hardware import HardwareSet
from ..schemas.hardware import HardwareSeed

logger = logging.getLogger("portal.hardware")

_table = HardwareSet.__table__
_RETURNING = (_table.c.id, _table.c.name, _table.c.capacity, _table.c.checked_out)
# A failed conditional update is retried when the re-read shows the request
# would now fit (another request moved the counter in between).
_MAX_ATTEMPTS = 3
# Largest quantity bound into the UPDATE; matches a 32-bit SQL INTEGER.
_MAX_SQL_QUANTITY = 2**31 - 1


def _utcnow() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def normalize_set_name(name: object) -> str:
    """Set names match case-insensitively; they are stored upper-case."""

    cleaned = str(name or "").strip().upper()
    if not cleaned:
        raise InvalidRequestError("Hardware set name is required")
    return cleaned


def _validate_quantity(quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidRequestError("quantity must be a positive integer")
    if quantity <= 0:
        raise InvalidRequestError("quantity must be a positive integer")
    return quantity


@contextmanager
def _storage(db: Session, operation: str, name: str | None = None) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "hardware.storage_error",
            exc_info=True,
            extra={"extra_data": {"operation": operation, "hardware": name}},
        )
        raise StorageUnavailable() from exc


def list_hardware_sets(db: Session) -> list[HardwareSet]:
    """Return every hardware set ordered by name."""

    with _storage(db, "list"):
        stmt = select(HardwareSet).order_by(HardwareSet.name)
        return list(db.execute(stmt).scalars().all())


def get_status(db: Session) -> dict[str, dict[str, int]]:
    """Map each set name to its capacity and checked-out count, sorted by name."""

    return {
        item.name: {"capacity": item.capacity, "checked_out": item.checked_out}
        for item in list_hardware_sets(db)
    }


def get_hardware_set(db: Session, name: str) -> HardwareSet | None:
    key = normalize_set_name(name)
    with _storage(db, "get", key):
        stmt = select(HardwareSet).where(HardwareSet.name == key)
        return db.execute(stmt).scalars().first()


def _read_counts(db: Session, key: str) -> Row | None:
    stmt = select(_table.c.capacity, _table.c.checked_out).where(_table.c.name == key)
    row = db.execute(stmt).first()
    # End the read transaction so the next attempt sees fresh data.
    db.rollback()
    return row


def _reject_from_current(
    db: Session,
    key: str,
    quantity: int,
    *,
    operation: str,
    reject: Callable[[Row], LedgerError | None],
) -> None:
    """Raise the not-found or bound error the stored counts call for, if any."""

    current = _read_counts(db, key)
    if current is None:
        raise HardwareNotFound(key)
    error = reject(current)
    if error is None:
        return
    logger.warning(
        f"hardware.{operation}.rejected",
        extra={
            "extra_data": {
                "hardware": error.name,
                "quantity": quantity,
                "checked_out": current.checked_out,
                "capacity": current.capacity,
            }
        },
    )
    raise error


def _conditional_adjust(
    db: Session,
    key: str,
    quantity: int,
    *,
    operation: str,
    reject: Callable[[Row], LedgerError | None],
) -> Row:
    if operation == "checkout":
        guard = (_table.c.capacity - _table.c.checked_out) >= quantity
        new_value = _table.c.checked_out + quantity
    else:
        guard = _table.c.checked_out >= quantity
        new_value = _table.c.checked_out - quantity

    stmt = (
        update(_table)
        .where(_table.c.name == key, guard)
        .values(checked_out=new_value, updated_at=_utcnow())
        .returning(*_RETURNING)
    )

    with _storage(db, operation, key):
        if quantity > _MAX_SQL_QUANTITY:
            # Too large to bind as a SQL integer; no pool holds that many.
            _reject_from_current(db, key, quantity, operation=operation, reject=reject)
            raise InvalidRequestError("quantity is too large")

        for _ in range(_MAX_ATTEMPTS):
            row = db.execute(stmt).first()
            if row is not None:
                db.commit()
                logger.info(
                    f"hardware.{operation}",
                    extra={
                        "extra_data": {
                            "hardware": row.name,
                            "quantity": quantity,
                            "checked_out": row.checked_out,
                            "capacity": row.capacity,
                        }
                    },
                )
                return row

            db.rollback()
            _reject_from_current(db, key, quantity, operation=operation, reject=reject)

    # The counter kept moving under us on every attempt.
    raise StorageUnavailable("Hardware set is busy, try again")


def checkout(db: Session, name: str, quantity: int) -> Row:
    """Loan ``quantity`` units from ``name``; refused if more than available."""

    key = normalize_set_name(name)
    qty = _validate_quantity(quantity)

    def reject(current: Row) -> LedgerError | None:
        available = current.capacity - current.checked_out
        if qty > available:
            return CapacityExceeded(key, available)
        return None

    return _conditional_adjust(db, key, qty, operation="checkout", reject=reject)


def checkin(db: Session, name: str, quantity: int) -> Row:
    """Return ``quantity`` units to ``name``; refused if more than checked out."""

    key = normalize_set_name(name)
    qty = _validate_quantity(quantity)

    def reject(current: Row) -> LedgerError | None:
        if qty > current.checked_out:
            return UnderflowExceeded(key, current.checked_out)
        return None

    return _conditional_adjust(db, key, qty, operation="checkin", reject=reject)


_BATCH_OPERATIONS: dict[str, Callable[[Session, str, int], Row]] = {
    "checkout": checkout,
    "checkin": checkin,
}


def apply_batch(
    db: Session,
    action: str,
    quantities: Mapping[str, int],
) -> tuple[dict[str, Row], dict[str, LedgerError]]:
    """Apply one action to several sets, each as its own atomic update.

    Entries with a quantity of zero or less are skipped. Nothing is rolled back
    when a later entry fails: the caller gets both what was applied and what
    was refused.
    """

    operation = _BATCH_OPERATIONS.get(action)
    if operation is None:
        raise InvalidRequestError(f"Unknown action: {action}")

    pending: dict[str, int] = {}
    for raw_name, qty in quantities.items():
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise InvalidRequestError("quantity must be an integer")
        if qty <= 0:
            continue
        key = normalize_set_name(raw_name)
        pending[key] = pending.get(key, 0) + qty
    if not pending:
        raise InvalidRequestError("Nothing to apply: every quantity is zero")

    applied: dict[str, Row] = {}
    errors: dict[str, LedgerError] = {}
    for key in sorted(pending):
        try:
            applied[key] = operation(db, key, pending[key])
        except LedgerError as exc:
            errors[key] = exc
    return applied, errors


def seed_hardware(db: Session, seed: Mapping[str, Mapping[str, int]]) -> int:
    """Create the configured sets if the table is empty; return rows created."""

    existing = db.execute(select(func.count()).select_from(HardwareSet)).scalar_one()
    if existing:
        logger.info("hardware.seed.skipped", extra={"extra_data": {"existing": existing}})
        return 0

    now = _utcnow()
    for name, values in sorted(seed.items()):
        entry = HardwareSeed.model_validate(values)
        db.add(
            HardwareSet(
                name=normalize_set_name(name),
                capacity=entry.capacity,
                checked_out=entry.checked_out,
                created_at=now,
                updated_at=now,
            )
        )
    try:
        db.commit()
    except IntegrityError:
        # Another worker seeded first.
        db.rollback()
        return 0
    logger.info("hardware.seed.created", extra={"extra_data": {"sets": sorted(seed)}})
    return len(seed)
