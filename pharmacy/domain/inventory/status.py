"""
Medicine status derivation.

The one definition of how a batch's status follows from its stock level,
par level and expiry date. Stored status columns and read models project
this function, and queries use its SQL rendering ``status_expression``.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union
import enum

from sqlalchemy import case, or_

from pharmacy.core.exceptions import ValidationError

DEFAULT_EXPIRY_WARNING_DAYS = 30

DateLike = Union[date, datetime]


class MedicineStatus(str, enum.Enum):
    """Stock status of a medicine batch"""
    IN_STOCK = "in-stock"
    LOW_STOCK = "low-stock"
    EXPIRING_SOON = "expiring-soon"
    EXPIRED = "expired"


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_until_expiry(expiry_date: DateLike, today: Optional[DateLike] = None) -> int:
    """Whole days from today to the expiry date; zero or negative once expired"""
    today = _as_date(today) if today is not None else date.today()
    return (_as_date(expiry_date) - today).days


def derive_status(
    quantity: int,
    par_level: int,
    expiry_date: DateLike,
    today: Optional[DateLike] = None,
    warning_days: int = DEFAULT_EXPIRY_WARNING_DAYS,
) -> MedicineStatus:
    """Map stock level, par level and expiry to a status.

    First matching rule wins:

    1. no stock left -> expired
    2. expiry on or before today -> expired
    3. expiry within ``warning_days`` -> expiring-soon
    4. quantity at or below par level -> low-stock
    5. in-stock
    """
    if quantity is None or quantity < 0:
        raise ValidationError("Quantity cannot be negative", details={"quantity": quantity})
    if par_level is None or par_level < 0:
        raise ValidationError("Par level cannot be negative", details={"par_level": par_level})

    today = _as_date(today) if today is not None else date.today()
    expiry = _as_date(expiry_date)

    if quantity == 0:
        return MedicineStatus.EXPIRED
    if expiry <= today:
        return MedicineStatus.EXPIRED
    if expiry <= today + timedelta(days=warning_days):
        return MedicineStatus.EXPIRING_SOON
    if quantity <= par_level:
        return MedicineStatus.LOW_STOCK
    return MedicineStatus.IN_STOCK


def status_expression(
    quantity,
    par_level,
    expiry_date,
    today: Optional[DateLike] = None,
    warning_days: int = DEFAULT_EXPIRY_WARNING_DAYS,
):
    """``derive_status`` as a SQL CASE over column expressions.

    Lets queries filter and group on the status as of ``today`` rather than
    the stored column, which only moves on writes and scheduled refreshes.
    """
    today = _as_date(today) if today is not None else date.today()
    return case(
        (or_(quantity == 0, expiry_date <= today), MedicineStatus.EXPIRED.value),
        (expiry_date <= today + timedelta(days=warning_days), MedicineStatus.EXPIRING_SOON.value),
        (quantity <= par_level, MedicineStatus.LOW_STOCK.value),
        else_=MedicineStatus.IN_STOCK.value,
    )
