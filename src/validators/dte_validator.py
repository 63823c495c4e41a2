"""
DTE Validator
Entry point of the validation rule engine: resolves the tax strategy for a
document type and runs it

File: src/validators/dte_validator.py
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from config.dte_config import DTEType, ErrorCodes
from src.models.dte_models import AnyDTEDocument, RetentionDocument, build_document
from src.validators.dte_errors import DTEError, new_dte_error
from src.validators.tax_strategies import (
    CCFTaxStrategy, CreditNoteTaxStrategy, DebitNoteTaxStrategy, DTETaxStrategy,
    ExportInvoiceTaxStrategy, InvoiceTaxStrategy, RetentionTaxStrategy
)

# Configure logging
logger = logging.getLogger(__name__)

# ========================================
# VALIDATION RESULT
# ========================================

@dataclass
class DTEValidationResult:
    """Complete validation result"""
    is_valid: bool
    error: Optional[DTEError]
    validation_time: datetime
    rules_applied: List[str]
    dte_type: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def rule_code(self) -> Optional[str]:
        return self.error.rule_code if self.error else None

# ========================================
# MAIN VALIDATOR
# ========================================

def default_strategies() -> Dict[DTEType, DTETaxStrategy]:
    """Strategy per supported document type"""
    strategies = [
        InvoiceTaxStrategy(),
        CCFTaxStrategy(),
        CreditNoteTaxStrategy(),
        DebitNoteTaxStrategy(),
        RetentionTaxStrategy(),
        ExportInvoiceTaxStrategy(),
    ]
    return {strategy.dte_type: strategy for strategy in strategies}

class DTEValidator:
    """
    Dispatches documents to the tax strategy registered for their type.
    The registry is fixed at construction.
    """

    def __init__(self, strategies: Optional[Mapping[DTEType, DTETaxStrategy]] = None):
        registry = dict(default_strategies() if strategies is None else strategies)
        self._strategies: Mapping[DTEType, DTETaxStrategy] = MappingProxyType(registry)

        logger.info(
            f"DTEValidator initialized with types: {', '.join(t.value for t in self._strategies)}"
        )

    @property
    def supported_types(self) -> List[DTEType]:
        return list(self._strategies)

    def get_strategy(self, dte_type: DTEType) -> Optional[DTETaxStrategy]:
        return self._strategies.get(dte_type)

    def validate(self, document: AnyDTEDocument) -> Optional[DTEError]:
        """Validate a document model, None when every rule holds"""
        return self._run_strategy(self.get_strategy(document.dte_type), document)

    def _run_strategy(
        self, strategy: Optional[DTETaxStrategy], document: AnyDTEDocument
    ) -> Optional[DTEError]:
        dte_type = document.dte_type
        if strategy is None:
            logger.error(f"No tax strategy registered for DTE type {dte_type.value}")
            return new_dte_error(ErrorCodes.UNSUPPORTED_DTE_TYPE, field_name=dte_type.value)

        if not isinstance(document, strategy.document_class):
            logger.error(
                f"DTE type {dte_type.value} expects {strategy.document_class.__name__}, "
                f"got {type(document).__name__}"
            )
            return new_dte_error(ErrorCodes.INVALID_DOCUMENT_FORMAT, field_name=type(document).__name__)

        return strategy.validate(document)

    def validate_document(self, document: AnyDTEDocument) -> DTEValidationResult:
        """Validate a document model and wrap the outcome with diagnostics"""
        start_time = datetime.now()
        dte_type = document.dte_type.value

        logger.info(f"Starting tax validation for DTE type: {dte_type}")

        strategy = self.get_strategy(document.dte_type)
        error = self._run_strategy(strategy, document)
        rules_applied = [name for name, _ in strategy.get_validation_stages()] if strategy else []

        details: Dict[str, Any] = {}
        if isinstance(document, RetentionDocument):
            details['item_count'] = len(document.retention_items)
            details['all_physical'] = document.is_all_physical()
        else:
            details['item_count'] = len(document.items)

        result = DTEValidationResult(
            is_valid=error is None,
            error=error,
            validation_time=start_time,
            rules_applied=rules_applied,
            dte_type=dte_type,
            details=details,
        )

        logger.info(
            f"Tax validation completed. Valid: {result.is_valid}, "
            f"Rule: {result.rule_code or '-'}"
        )
        return result

    def validate_payload(self, payload: Dict[str, Any]) -> DTEValidationResult:
        """Build the document from its MH JSON form and validate it"""
        try:
            document = build_document(payload)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Could not build DTE from payload: {e}")
            code = None
            if isinstance(payload, dict):
                code = (payload.get("identificacion") or {}).get("tipoDte")
            return DTEValidationResult(
                is_valid=False,
                error=new_dte_error(ErrorCodes.INVALID_DOCUMENT_FORMAT, field_name=str(e)),
                validation_time=datetime.now(),
                rules_applied=[],
                dte_type=code,
            )

        return self.validate_document(document)

# ========================================
# VALIDATION UTILITIES
# ========================================

class DTEValidationUtils:
    """Utility functions for DTE validation results"""

    @staticmethod
    def format_result(result: DTEValidationResult) -> str:
        """Format validation result for display"""
        lines = []
        lines.append(f"DTE Validation Result: {'VALID' if result.is_valid else 'INVALID'}")
        lines.append(f"DTE Type: {result.dte_type or 'Unknown'}")
        lines.append(f"Validation Time: {result.validation_time}")
        lines.append(f"Rules Applied: {', '.join(result.rules_applied)}")

        if result.error:
            error = result.error
            lines.append(f"\nError: {error.rule_code}: {error.message}")
            if error.field_name:
                lines.append(f"    Field: {error.field_name}")
            if error.tax_code:
                lines.append(f"    Tax Code: {error.tax_code}")
            if error.expected_value is not None and error.actual_value is not None:
                lines.append(f"    Expected: {error.expected_value}, Actual: {error.actual_value}")

        return "\n".join(lines)

    @staticmethod
    def get_error_summary(results: List[DTEValidationResult]) -> Dict:
        """Get summary of validation errors across multiple results"""
        error_counts: Dict[str, int] = {}
        total_documents = len(results)
        valid_documents = sum(1 for r in results if r.is_valid)

        for result in results:
            if result.error is not None:
                error_counts[result.error.rule_code] = error_counts.get(result.error.rule_code, 0) + 1

        return {
            'total_documents': total_documents,
            'valid_documents': valid_documents,
            'invalid_documents': total_documents - valid_documents,
            'success_rate': valid_documents / total_documents if total_documents > 0 else 0,
            'common_errors': sorted(error_counts.items(), key=lambda x: x[1], reverse=True)[:10]
        }

# ========================================
# FACTORY FUNCTION
# ========================================

def create_dte_validator() -> DTEValidator:
    """Factory function to create DTEValidator instance"""
    return DTEValidator()

# ========================================
# TESTING AND EXAMPLES
# ========================================

if __name__ == "__main__":
    from config.dte_config import configure_logging

    configure_logging(level='INFO')

    validator = create_dte_validator()

    sample_payload = {
        "identificacion": {
            "version": 3,
            "tipoDte": "05",
            "numeroControl": "DTE-05-M001P001-000000000000001",
            "codigoGeneracion": "8A3D1F2E-4B5C-4D6E-9F70-8192A3B4C5D6",
            "fecEmi": "2024-01-15",
            "tipoMoneda": "USD",
        },
        "cuerpoDocumento": [
            {"numItem": 1, "descripcion": "Devolución producto A", "ventaGravada": 100.00},
            {"numItem": 2, "descripcion": "Devolución producto B", "ventaGravada": 50.00},
        ],
        "resumen": {
            "totalNoSuj": 0, "totalExenta": 0, "totalGravada": 150.00,
            "subTotalVentas": 150.00, "descuNoSuj": 0, "descuExenta": 0, "descuGravada": 0,
            "tributos": [{"codigo": "20", "descripcion": "IVA 13%", "valor": 19.50}],
            "subTotal": 150.00, "ivaPerci1": 0, "ivaRete1": 0, "reteRenta": 0,
            "montoTotalOperacion": 169.50,
        },
    }

    print("Testing DTE Validator...")
    print("=" * 60)

    result = validator.validate_payload(sample_payload)
    print(DTEValidationUtils.format_result(result))

    print("\nDTE Validator testing completed!")
