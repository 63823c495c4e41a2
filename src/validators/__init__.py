"""
DTE Validators Package
"""
from .dte_errors import DTEError, new_dte_error
from .monetary import amounts_match, is_exact_cents, validate_monetary_amount
from .tax_calculator import expected_tax, expected_retention, is_passthrough
from .tax_strategies import (
    DTETaxStrategy, SalesTaxStrategy, CreditNoteTaxStrategy, DebitNoteTaxStrategy,
    CCFTaxStrategy, InvoiceTaxStrategy, ExportInvoiceTaxStrategy, RetentionTaxStrategy
)
from .dte_validator import DTEValidator, DTEValidationResult, DTEValidationUtils, create_dte_validator

__all__ = [
    'DTEError', 'new_dte_error',
    'amounts_match', 'is_exact_cents', 'validate_monetary_amount',
    'expected_tax', 'expected_retention', 'is_passthrough',
    'DTETaxStrategy', 'SalesTaxStrategy', 'CreditNoteTaxStrategy', 'DebitNoteTaxStrategy',
    'CCFTaxStrategy', 'InvoiceTaxStrategy', 'ExportInvoiceTaxStrategy', 'RetentionTaxStrategy',
    'DTEValidator', 'DTEValidationResult', 'DTEValidationUtils', 'create_dte_validator'
]
