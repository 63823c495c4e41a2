"""
DTE Tax Strategies
Per document type arithmetic validation: recompute the expected totals from
the line items and cross-check them against the declared summary

Every strategy runs its stages in order and stops at the first violated
rule. Strategies keep no state between calls, one instance can validate any
number of documents.

File: src/validators/tax_strategies.py
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, List, Optional, Tuple, Type

from config.dte_config import (
    DTEType, ErrorCodes, RelatedDocumentType, SystemConfig, TaxCode, TAX_CONFIGS,
    ValidationRules
)
from src.models.dte_models import (
    DTEDocument, DTESummary, RetentionDocument, TaxEntry
)
from src.validators.dte_errors import DTEError, new_dte_error
from src.validators.monetary import amounts_match, validate_monetary_amount
from src.validators.tax_calculator import (
    expected_included_iva, expected_retention, expected_tax
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
IVA_RATE = TAX_CONFIGS[TaxCode.IVA]['rate']

ValidationStage = Tuple[str, Callable[..., Optional[DTEError]]]

# ========================================
# BASE STRATEGY
# ========================================

class DTETaxStrategy(ABC):
    """Common pipeline runner for all document types"""

    dte_type: DTEType
    document_class: Type = DTEDocument

    def validate(self, document) -> Optional[DTEError]:
        """Validate a document, returning the first violated rule or None"""
        if document is None:
            return None

        for stage_name, stage in self.get_validation_stages():
            error = stage(document)
            if error is not None:
                logger.error(
                    f"Error validating {stage_name} for DTE type {self.dte_type.value}: {error.rule_code}"
                )
                return error

        logger.debug(f"DTE type {self.dte_type.value} passed all validation stages")
        return None

    @abstractmethod
    def get_validation_stages(self) -> List[ValidationStage]:
        """Ordered (name, callable) stages"""

    def _create_error(
        self,
        rule_code: str,
        field_name: Optional[str] = None,
        expected: Optional[Decimal] = None,
        actual: Optional[Decimal] = None,
        tax_code: Optional[str] = None,
    ) -> DTEError:
        logger.error(
            f"{rule_code} on DTE type {self.dte_type.value}: "
            f"field={field_name} tax_code={tax_code} expected={expected} actual={actual}"
        )
        return new_dte_error(
            rule_code, field_name=field_name, expected=expected, actual=actual, tax_code=tax_code
        )

# ========================================
# SALES DOCUMENT STRATEGIES
# ========================================

class SalesTaxStrategy(DTETaxStrategy):
    """
    Pipeline shared by the sales documents. The defaults are the credit
    note rules; subclasses override the stages that differ.
    """

    def get_validation_stages(self) -> List[ValidationStage]:
        return [
            ("base totals", self.validate_base_totals),
            ("taxes", self.validate_taxes),
            ("perception", self.validate_perception),
            ("monetary amounts", self.validate_monetary_amounts),
            ("total amounts", self.validate_total_amounts),
        ]

    # Stage 1

    def validate_base_totals(self, document: DTEDocument) -> Optional[DTEError]:
        """Item sums against the summary, discounts against the declared subtotal, subtotal of sales"""
        summary = document.summary

        total_taxed = sum((item.taxed_sale for item in document.items), ZERO)
        total_non_subject = sum((item.non_subject_sale for item in document.items), ZERO)
        total_exempt = sum((item.exempt_sale for item in document.items), ZERO)

        if not amounts_match(total_taxed, summary.total_taxed):
            return self._create_error(
                ErrorCodes.INVALID_TOTAL_TAXED, expected=total_taxed, actual=summary.total_taxed
            )

        discounts = (
            ("TaxedDiscount", summary.taxed_discount),
            ("ExemptDiscount", summary.exempt_discount),
            ("NonSubjectDiscount", summary.non_subject_discount),
        )
        for field_name, discount in discounts:
            if discount > summary.sub_total:
                return self._create_error(
                    ErrorCodes.DISCOUNT_EXCEEDS_SUBTOTAL, field_name=field_name,
                    expected=summary.sub_total, actual=discount
                )

        if not amounts_match(total_non_subject, summary.total_non_subject):
            return self._create_error(
                ErrorCodes.INVALID_TOTAL_NON_SUBJECT,
                expected=total_non_subject, actual=summary.total_non_subject
            )

        if not amounts_match(total_exempt, summary.total_exempt):
            return self._create_error(
                ErrorCodes.INVALID_TOTAL_EXEMPT, expected=total_exempt, actual=summary.total_exempt
            )

        expected_sub_total_sales = total_taxed + total_non_subject + total_exempt
        if not amounts_match(expected_sub_total_sales, summary.sub_total_sales):
            return self._create_error(
                ErrorCodes.INVALID_SUBTOTAL_SALES,
                expected=expected_sub_total_sales, actual=summary.sub_total_sales
            )

        return None

    # Stage 2

    def validate_taxes(self, document: DTEDocument) -> Optional[DTEError]:
        """Tributos against their formulas on the discounted taxed base"""
        summary = document.summary

        # No taxed amount, no tributos
        if summary.total_taxed <= ZERO:
            if summary.taxes:
                return self._create_error(ErrorCodes.INVALID_TAXES)
            return None

        if not summary.taxes:
            return self._create_error(ErrorCodes.MISSING_TAXES)

        return self._validate_tax_entries(summary.taxes, self._taxable_base(summary))

    def _taxable_base(self, summary: DTESummary) -> Decimal:
        return summary.total_taxed - summary.taxed_discount

    def _validate_tax_entries(self, taxes: List[TaxEntry], taxable_base: Decimal) -> Optional[DTEError]:
        for tax in taxes:
            expected = expected_tax(tax.code, taxable_base)
            if expected is None:
                continue

            if not amounts_match(expected, tax.value):
                return self._create_error(
                    ErrorCodes.INVALID_TAX_CALCULATION, tax_code=tax.code,
                    expected=expected, actual=tax.value
                )
        return None

    # Stage 3

    def validate_perception(self, document: DTEDocument) -> Optional[DTEError]:
        """IVA perception is 1% of the taxed total when declared"""
        summary = document.summary
        if summary.iva_perception == ZERO:
            return None

        expected = summary.total_taxed * SystemConfig.IVA_PERCEPTION_RATE
        if not amounts_match(expected, summary.iva_perception):
            return self._create_error(
                ErrorCodes.INVALID_PERCEPTION_AMOUNT, expected=expected, actual=summary.iva_perception
            )
        return None

    # Stage 4

    def monetary_fields(self, summary: DTESummary) -> List[Tuple[str, Decimal]]:
        """Summary fields that must be exact cents"""
        fields = [
            ("iva_perception", summary.iva_perception),
            ("total_operation", summary.total_operation),
        ]
        fields.extend(("payment_amount", payment.amount) for payment in summary.payment_types)
        return fields

    def validate_monetary_amounts(self, document: DTEDocument) -> Optional[DTEError]:
        for field_name, amount in self.monetary_fields(document.summary):
            error = validate_monetary_amount(amount, field_name)
            if error is not None:
                return error
        return None

    # Stage 5

    def validate_total_amounts(self, document: DTEDocument) -> Optional[DTEError]:
        """Subtotal after discounts, IVA after discount, operation and payable totals"""
        summary = document.summary

        expected_sub_total = (
            summary.sub_total_sales
            - summary.taxed_discount
            - summary.exempt_discount
            - summary.non_subject_discount
        )
        if not amounts_match(expected_sub_total, summary.sub_total):
            return self._create_error(
                ErrorCodes.INVALID_SUBTOTAL_CALCULATION, expected=expected_sub_total, actual=summary.sub_total
            )

        error = self.validate_iva_with_discount(summary)
        if error is not None:
            return error

        expected_total_operation = self.expected_total_operation(summary)
        if not amounts_match(expected_total_operation, summary.total_operation):
            return self._create_error(
                ErrorCodes.INVALID_TOTAL_OPERATION,
                expected=expected_total_operation, actual=summary.total_operation
            )

        return self.validate_total_to_pay(summary)

    def validate_iva_with_discount(self, summary: DTESummary) -> Optional[DTEError]:
        if summary.total_taxed <= ZERO:
            return None

        expected_iva = self._taxable_base(summary) * IVA_RATE
        iva = summary.find_tax(TaxCode.IVA.value)
        if iva is not None and not amounts_match(expected_iva, iva.value):
            return self._create_error(
                ErrorCodes.INVALID_IVA_CALCULATION, tax_code=iva.code, expected=expected_iva, actual=iva.value
            )
        return None

    def expected_total_operation(self, summary: DTESummary) -> Decimal:
        """Subtotal, plus perception less retentions when taxed, plus all tributos"""
        total = summary.sub_total
        if summary.total_taxed > ZERO:
            total = total + summary.iva_perception - summary.iva_retention - summary.income_retention
        return total + summary.get_taxes_total()

    def validate_total_to_pay(self, summary: DTESummary) -> Optional[DTEError]:
        return None

    def _check_total_to_pay(self, summary: DTESummary, expected: Decimal) -> Optional[DTEError]:
        if not amounts_match(expected, summary.total_to_pay):
            return self._create_error(
                ErrorCodes.INVALID_TOTAL_TO_PAY, expected=expected, actual=summary.total_to_pay
            )
        return None

class CreditNoteTaxStrategy(SalesTaxStrategy):
    """Nota de Crédito (05)"""
    dte_type = DTEType.CREDIT_NOTE

class DebitNoteTaxStrategy(SalesTaxStrategy):
    """Nota de Débito (06)"""
    dte_type = DTEType.DEBIT_NOTE

class CCFTaxStrategy(SalesTaxStrategy):
    """
    Comprobante de Crédito Fiscal (03)
    Operation total carries the tributos; perception and retentions move
    to the payable total
    """
    dte_type = DTEType.CCF

    def monetary_fields(self, summary: DTESummary) -> List[Tuple[str, Decimal]]:
        fields = super().monetary_fields(summary)
        fields.append(("total_to_pay", summary.total_to_pay))
        return fields

    def expected_total_operation(self, summary: DTESummary) -> Decimal:
        return summary.sub_total + summary.get_taxes_total()

    def validate_total_to_pay(self, summary: DTESummary) -> Optional[DTEError]:
        expected = (
            summary.total_operation
            + summary.iva_perception
            - summary.iva_retention
            - summary.income_retention
            + summary.total_non_taxed
        )
        return self._check_total_to_pay(summary, expected)

class InvoiceTaxStrategy(SalesTaxStrategy):
    """
    Factura de Consumidor Final (01)
    Prices include IVA: it is reported in total_iva and never as a tributo
    """
    dte_type = DTEType.INVOICE

    def validate_taxes(self, document: DTEDocument) -> Optional[DTEError]:
        summary = document.summary

        if summary.total_taxed <= ZERO and summary.taxes:
            return self._create_error(ErrorCodes.INVALID_TAXES)

        iva = summary.find_tax(TaxCode.IVA.value)
        if iva is not None:
            return self._create_error(ErrorCodes.INVALID_TAXES, tax_code=iva.code)

        return self._validate_tax_entries(summary.taxes, self._taxable_base(summary))

    def validate_perception(self, document: DTEDocument) -> Optional[DTEError]:
        perception = document.summary.iva_perception
        if perception != ZERO:
            return self._create_error(
                ErrorCodes.INVALID_PERCEPTION_AMOUNT, expected=ZERO, actual=perception
            )
        return None

    def monetary_fields(self, summary: DTESummary) -> List[Tuple[str, Decimal]]:
        fields = super().monetary_fields(summary)
        fields.append(("total_to_pay", summary.total_to_pay))
        fields.append(("total_iva", summary.total_iva))
        return fields

    def validate_iva_with_discount(self, summary: DTESummary) -> Optional[DTEError]:
        if summary.total_taxed > ZERO:
            expected_iva = expected_included_iva(self._taxable_base(summary))
        else:
            expected_iva = ZERO

        if not amounts_match(expected_iva, summary.total_iva):
            return self._create_error(
                ErrorCodes.INVALID_IVA_CALCULATION, field_name="total_iva",
                expected=expected_iva, actual=summary.total_iva
            )
        return None

    def expected_total_operation(self, summary: DTESummary) -> Decimal:
        return summary.sub_total + summary.get_taxes_total()

    def validate_total_to_pay(self, summary: DTESummary) -> Optional[DTEError]:
        expected = (
            summary.total_operation
            - summary.iva_retention
            - summary.income_retention
            + summary.total_non_taxed
        )
        return self._check_total_to_pay(summary, expected)

class ExportInvoiceTaxStrategy(SalesTaxStrategy):
    """
    Factura de Exportación (11)
    Exports are taxed at 0%, domestic IVA may not be declared
    """
    dte_type = DTEType.EXPORT_INVOICE

    def validate_taxes(self, document: DTEDocument) -> Optional[DTEError]:
        summary = document.summary

        if summary.total_taxed <= ZERO and summary.taxes:
            return self._create_error(ErrorCodes.INVALID_TAXES)

        iva = summary.find_tax(TaxCode.IVA.value)
        if iva is not None:
            return self._create_error(ErrorCodes.INVALID_TAXES, tax_code=iva.code)

        return self._validate_tax_entries(summary.taxes, self._taxable_base(summary))

    def validate_perception(self, document: DTEDocument) -> Optional[DTEError]:
        perception = document.summary.iva_perception
        if perception != ZERO:
            return self._create_error(
                ErrorCodes.INVALID_PERCEPTION_AMOUNT, expected=ZERO, actual=perception
            )
        return None

    def monetary_fields(self, summary: DTESummary) -> List[Tuple[str, Decimal]]:
        fields = super().monetary_fields(summary)
        fields.extend([
            ("total_to_pay", summary.total_to_pay),
            ("freight", summary.freight),
            ("insurance", summary.insurance),
        ])
        return fields

    def validate_iva_with_discount(self, summary: DTESummary) -> Optional[DTEError]:
        return None

    def expected_total_operation(self, summary: DTESummary) -> Decimal:
        return summary.sub_total + summary.freight + summary.insurance + summary.get_taxes_total()

    def validate_total_to_pay(self, summary: DTESummary) -> Optional[DTEError]:
        return self._check_total_to_pay(summary, summary.total_operation + summary.total_non_taxed)

# ========================================
# RETENTION STRATEGY
# ========================================

class RetentionTaxStrategy(DTETaxStrategy):
    """Comprobante de Retención (07)"""

    dte_type = DTEType.RETENTION
    document_class = RetentionDocument

    def get_validation_stages(self) -> List[ValidationStage]:
        return [
            ("retention items", self.validate_retention_items),
            ("retention totals", self.validate_retention_totals),
            ("related documents", self.validate_related_documents),
            ("monetary amounts", self.validate_monetary_amounts),
        ]

    def validate_retention_items(self, document: RetentionDocument) -> Optional[DTEError]:
        """Retained IVA per item against the retention code rate"""
        for item in document.retention_items:
            expected = expected_retention(item.retention_code, item.taxed_amount)
            if expected is None:
                continue

            if not amounts_match(expected, item.retained_iva):
                return self._create_error(
                    ErrorCodes.INVALID_RETENTION_AMOUNT, field_name=str(item.number),
                    expected=expected, actual=item.retained_iva
                )
        return None

    def validate_retention_totals(self, document: RetentionDocument) -> Optional[DTEError]:
        summary = document.retention_summary

        total_subject = sum((item.taxed_amount for item in document.retention_items), ZERO)
        if not amounts_match(total_subject, summary.total_subject_retention):
            return self._create_error(
                ErrorCodes.INVALID_TOTAL_SUBJECT_RETENTION,
                expected=total_subject, actual=summary.total_subject_retention
            )

        total_retained = sum((item.retained_iva for item in document.retention_items), ZERO)
        if not amounts_match(total_retained, summary.total_iva_retention):
            return self._create_error(
                ErrorCodes.INVALID_TOTAL_IVA_RETENTION,
                expected=total_retained, actual=summary.total_iva_retention
            )
        return None

    def validate_related_documents(self, document: RetentionDocument) -> Optional[DTEError]:
        """Electronic references carry a generation code, physical ones a number"""
        for item in document.retention_items:
            if item.document_type == RelatedDocumentType.ELECTRONIC.value:
                valid = ValidationRules.validate_generation_code(item.document_number)
            elif item.document_type == RelatedDocumentType.PHYSICAL.value:
                valid = bool(item.document_number and item.document_number.strip())
            else:
                valid = False

            if not valid:
                return self._create_error(ErrorCodes.INVALID_RELATED_DOCUMENT, field_name=str(item.number))
        return None

    def validate_monetary_amounts(self, document: RetentionDocument) -> Optional[DTEError]:
        summary = document.retention_summary
        fields = [
            ("total_subject_retention", summary.total_subject_retention),
            ("total_iva_retention", summary.total_iva_retention),
        ]
        for item in document.retention_items:
            fields.append(("taxed_amount", item.taxed_amount))
            fields.append(("retained_iva", item.retained_iva))

        for field_name, amount in fields:
            error = validate_monetary_amount(amount, field_name)
            if error is not None:
                return error
        return None
