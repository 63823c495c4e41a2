"""
Monetary comparison helpers shared by every tax strategy

File: src/validators/monetary.py
"""

import logging
from decimal import Decimal, ROUND_DOWN
from typing import Optional

from config.dte_config import ErrorCodes, SystemConfig
from src.models.dte_models import MoneyInput, to_money
from src.validators.dte_errors import DTEError, new_dte_error

logger = logging.getLogger(__name__)

def amounts_match(
    expected: MoneyInput,
    actual: MoneyInput,
    tolerance: Decimal = SystemConfig.MONETARY_TOLERANCE,
) -> bool:
    """True if |expected - actual| <= tolerance"""
    return abs(to_money(expected) - to_money(actual)) <= tolerance

def is_exact_cents(amount: MoneyInput, tolerance: Decimal = SystemConfig.MONETARY_TOLERANCE) -> bool:
    """True if the amount has no fractional residue below the cent"""
    scaled = to_money(amount) * SystemConfig.CENTS_MULTIPLIER
    residue = abs(scaled - scaled.to_integral_value(rounding=ROUND_DOWN))
    return residue <= tolerance

def validate_monetary_amount(amount: MoneyInput, field_name: str) -> Optional[DTEError]:
    """Return InvalidMonetaryAmount if the amount is not an exact number of cents"""
    if is_exact_cents(amount):
        return None

    logger.error(f"Invalid monetary amount in {field_name}: {amount}")
    return new_dte_error(
        ErrorCodes.INVALID_MONETARY_AMOUNT,
        field_name=field_name,
        actual=to_money(amount),
    )
