"""
Stock mutation helpers shared by the sale and dispense transactions.

Every change to ``Medicine.quantity`` goes through ``take_stock`` or
``return_stock`` so the status projection is rewritten before the row is
flushed, and every unit of work touching stock runs inside
``run_stock_transaction`` so a version mismatch on any medicine row rolls the
whole unit back and replays it from a fresh read.
"""

from datetime import date
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from pharmacy.core.config import settings
from pharmacy.core.exceptions import (
    BaseCustomException,
    ConcurrencyConflictError,
    InsufficientStockError,
    ValidationError,
    handle_database_error,
)
from pharmacy.domain.inventory.models import Medicine

T = TypeVar("T")


def validate_quantity(quantity, field: str = "quantity", minimum: int = 1) -> int:
    """Reject non-integer or out-of-range quantities before anything is touched"""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(
            f"{field.capitalize()} must be a whole number",
            details={"field": field, "value": quantity},
        )
    if quantity < minimum:
        raise ValidationError(
            f"{field.capitalize()} must be at least {minimum}",
            details={"field": field, "value": quantity},
        )
    return quantity


def ensure_available(medicine: Medicine, quantity: int) -> None:
    if quantity > medicine.quantity:
        raise InsufficientStockError(
            f"Insufficient stock for {medicine.name}. Available: {medicine.quantity}",
            available=medicine.quantity,
            requested=quantity,
            details={"medicine_id": medicine.id, "shortfall": quantity - medicine.quantity},
        )


def take_stock(medicine: Medicine, quantity: int, today: Optional[date] = None) -> Medicine:
    """Decrement stock and re-derive status; never lets quantity go negative"""
    validate_quantity(quantity)
    ensure_available(medicine, quantity)
    medicine.quantity -= quantity
    medicine.refresh_status(today)
    return medicine


def return_stock(medicine: Medicine, quantity: int, today: Optional[date] = None) -> Medicine:
    validate_quantity(quantity)
    medicine.quantity += quantity
    medicine.refresh_status(today)
    return medicine


async def run_stock_transaction(
    db: AsyncSession,
    work: Callable[[], Awaitable[T]],
    operation: str,
    attempts: Optional[int] = None,
) -> T:
    """Run ``work`` and commit, replaying it on optimistic-concurrency conflicts.

    ``work`` must re-read everything it mutates, since each retry starts from
    a rolled-back session. Expected domain failures roll back and propagate
    unchanged; other database failures become ``DatabaseError``.
    """
    attempts = attempts or settings.STOCK_RETRY_ATTEMPTS

    for attempt in range(1, attempts + 1):
        try:
            result = await work()
            await db.commit()
            return result
        except StaleDataError as e:
            await db.rollback()
            logger.warning(f"{operation}: stock changed concurrently (attempt {attempt}/{attempts}): {e}")
        except BaseCustomException:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            raise handle_database_error(e, operation) from e

    raise ConcurrencyConflictError(
        f"Could not complete {operation}: stock kept changing, please retry",
        details={"operation": operation, "attempts": attempts},
    )
