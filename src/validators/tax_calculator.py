"""
Tax formulas per tributo code (CAT-015)

File: src/validators/tax_calculator.py
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from config.dte_config import (
    RETENTION_CONFIGS, TAX_CONFIGS, RetentionCode, TaxCode
)
from src.models.dte_models import MoneyInput, to_money

logger = logging.getLogger(__name__)

def _resolve_tax_code(code: Union[TaxCode, str]) -> Optional[TaxCode]:
    if isinstance(code, TaxCode):
        return code
    return TaxCode.from_code(code)

def is_passthrough(code: Union[TaxCode, str]) -> bool:
    """True for codes that are accepted as declared"""
    tax_code = _resolve_tax_code(code)
    return tax_code is not None and not TAX_CONFIGS[tax_code]['validated']

def expected_tax(code: Union[TaxCode, str], taxable_base: MoneyInput) -> Optional[Decimal]:
    """
    Expected amount of a tributo for the given taxable base.
    Returns None for passthrough codes and for codes outside the catalog.
    """
    tax_code = _resolve_tax_code(code)
    if tax_code is None:
        logger.warning(f"Unknown tax code {code}, skipping calculation")
        return None

    config = TAX_CONFIGS[tax_code]
    if not config['validated']:
        return None
    if config['flat_amount'] is not None:
        return config['flat_amount']
    return to_money(taxable_base) * config['rate']

def expected_included_iva(taxed_amount: MoneyInput) -> Decimal:
    """IVA contained in an amount whose prices already include it"""
    rate = TAX_CONFIGS[TaxCode.IVA]['rate']
    return to_money(taxed_amount) * rate / (Decimal("1") + rate)

def expected_retention(code: Union[RetentionCode, str], taxed_amount: MoneyInput) -> Optional[Decimal]:
    """Expected retained IVA for a retention code, None when not validated"""
    retention_code = code if isinstance(code, RetentionCode) else RetentionCode.from_code(code)
    if retention_code is None:
        logger.warning(f"Unknown retention code {code}, skipping calculation")
        return None

    rate = RETENTION_CONFIGS[retention_code]['rate']
    if rate is None:
        return None
    return to_money(taxed_amount) * rate
