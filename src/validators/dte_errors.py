"""
DTE Validation Errors
Structured error values returned by the tax strategies

File: src/validators/dte_errors.py
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from config.dte_config import ERROR_MESSAGES

@dataclass(frozen=True)
class DTEError:
    """Violated validation rule with the conflicting values"""
    rule_code: str
    message: str
    field_name: Optional[str] = None
    tax_code: Optional[str] = None
    expected_value: Optional[Decimal] = None
    actual_value: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rule_code': self.rule_code,
            'message': self.message,
            'field_name': self.field_name,
            'tax_code': self.tax_code,
            'expected_value': None if self.expected_value is None else str(self.expected_value),
            'actual_value': None if self.actual_value is None else str(self.actual_value),
        }

def new_dte_error(
    rule_code: str,
    field_name: Optional[str] = None,
    expected: Optional[Decimal] = None,
    actual: Optional[Decimal] = None,
    tax_code: Optional[str] = None,
) -> DTEError:
    """Create a DTE error with its catalog message"""
    template = ERROR_MESSAGES.get(rule_code, rule_code)
    message = template.format(
        field=field_name, expected=expected, actual=actual, tax_code=tax_code
    )
    return DTEError(
        rule_code=rule_code,
        message=message,
        field_name=field_name,
        tax_code=tax_code,
        expected_value=expected,
        actual_value=actual,
    )
