"""
Tests for the per document type tax strategies.

Documents are built from MH JSON payloads and run through the strategy
registered for their type. Every test targets one stage of the pipeline;
the rest of the document is kept consistent so that the first violation is
the one under test.
"""

from decimal import Decimal

import pytest

from config.dte_config import ErrorCodes
from src.models.dte_models import DTEDocument, RetentionDocument
from src.validators.tax_strategies import (
    CCFTaxStrategy,
    CreditNoteTaxStrategy,
    DebitNoteTaxStrategy,
    ExportInvoiceTaxStrategy,
    InvoiceTaxStrategy,
    RetentionTaxStrategy,
)
from tests.helpers import (
    export_payload,
    invoice_payload,
    retention_payload,
    sales_payload,
)


def sales_document(dte_type="05", **overrides) -> DTEDocument:
    return DTEDocument.from_dict(sales_payload(dte_type, **overrides))


def exempt_items_payload(**overrides) -> dict:
    """Same amounts as sales_payload but sold as exempt"""
    payload = sales_payload(
        totalGravada=0, totalExenta="150.00", tributos=[], montoTotalOperacion="150.00", **overrides
    )
    for item in payload["cuerpoDocumento"]:
        item["ventaExenta"] = item.pop("ventaGravada")
    return payload


# =============================================================================
# Credit note (base pipeline)
# =============================================================================


class TestCreditNoteStrategy:

    @pytest.fixture
    def strategy(self):
        return CreditNoteTaxStrategy()

    def test_consistent_document_passes(self, strategy):
        document = sales_document()

        assert strategy.validate(document) is None
        assert strategy.expected_total_operation(document.summary) == Decimal("169.50")

    def test_wrong_iva_reports_expected_and_actual(self, strategy):
        document = sales_document(tributos=[{"codigo": "20", "valor": "20.00"}], montoTotalOperacion="170.00")

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.INVALID_TAX_CALCULATION
        assert error.tax_code == "20"
        assert error.expected_value == Decimal("19.50")
        assert error.actual_value == Decimal("20.00")

    def test_one_cent_rounding_is_tolerated(self, strategy):
        document = sales_document(tributos=[{"codigo": "20", "valor": "19.51"}])

        assert strategy.validate(document) is None

    def test_none_document_is_not_an_error(self, strategy):
        assert strategy.validate(None) is None

    def test_taxes_without_taxed_total(self, strategy):
        payload = exempt_items_payload()
        payload["resumen"]["tributos"] = [{"codigo": "20", "valor": "19.50"}]

        error = strategy.validate(DTEDocument.from_dict(payload))

        assert error.rule_code == ErrorCodes.INVALID_TAXES

    def test_exempt_document_without_taxes_passes(self, strategy):
        assert strategy.validate(DTEDocument.from_dict(exempt_items_payload())) is None

    def test_taxed_total_without_taxes(self, strategy):
        document = sales_document(tributos=[], montoTotalOperacion="150.00")

        assert strategy.validate(document).rule_code == ErrorCodes.MISSING_TAXES

    def test_item_sum_mismatch(self, strategy):
        document = sales_document(totalGravada="160.00")

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.INVALID_TOTAL_TAXED
        assert error.expected_value == Decimal("150.00")
        assert error.actual_value == Decimal("160.00")

    def test_exempt_sum_mismatch(self, strategy):
        document = sales_document(totalExenta="5.00")

        assert strategy.validate(document).rule_code == ErrorCodes.INVALID_TOTAL_EXEMPT

    def test_non_subject_sum_mismatch(self, strategy):
        document = sales_document(totalNoSuj="5.00")

        assert strategy.validate(document).rule_code == ErrorCodes.INVALID_TOTAL_NON_SUBJECT

    @pytest.mark.parametrize("key, field_name", [
        ("descuGravada", "TaxedDiscount"),
        ("descuExenta", "ExemptDiscount"),
        ("descuNoSuj", "NonSubjectDiscount"),
    ])
    def test_discount_exceeding_subtotal_names_the_field(self, strategy, key, field_name):
        document = sales_document(**{key: "200.00"})

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.DISCOUNT_EXCEEDS_SUBTOTAL
        assert error.field_name == field_name
        assert error.actual_value == Decimal("200.00")
        assert error.expected_value == Decimal("150.00")

    def test_discount_compared_against_subtotal_after_discounts(self, strategy):
        document = sales_document(
            descuGravada="100.00",
            subTotal="50.00",
            tributos=[{"codigo": "20", "descripcion": "IVA 13%", "valor": "6.50"}],
            montoTotalOperacion="56.50",
        )

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.DISCOUNT_EXCEEDS_SUBTOTAL
        assert error.field_name == "TaxedDiscount"
        assert error.expected_value == Decimal("50.00")
        assert error.actual_value == Decimal("100.00")

    def test_subtotal_of_sales_mismatch(self, strategy):
        document = sales_document(subTotalVentas="140.00")

        assert strategy.validate(document).rule_code == ErrorCodes.INVALID_SUBTOTAL_SALES

    def test_taxed_discount_reduces_the_iva_base(self, strategy):
        # (150 - 50) * 0.13 = 13.00
        document = sales_document(
            descuGravada="50.00", subTotal="100.00",
            tributos=[{"codigo": "20", "valor": "13.00"}], montoTotalOperacion="113.00",
        )

        assert strategy.validate(document) is None

    def test_perception_is_one_percent_of_taxed(self, strategy):
        document = sales_document(ivaPerci1="1.50", montoTotalOperacion="171.00")

        assert strategy.validate(document) is None

    def test_wrong_perception(self, strategy):
        document = sales_document(ivaPerci1="3.00", montoTotalOperacion="172.50")

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.INVALID_PERCEPTION_AMOUNT
        assert error.expected_value == Decimal("1.50")

    def test_retentions_reduce_total_operation(self, strategy):
        document = sales_document(ivaRete1="1.50", montoTotalOperacion="168.00")

        assert strategy.validate(document) is None

    def test_sub_cent_total_operation(self, strategy):
        document = sales_document(montoTotalOperacion="169.505")

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.INVALID_MONETARY_AMOUNT
        assert error.field_name == "total_operation"

    def test_sub_cent_payment(self, strategy):
        document = sales_document(pagos=[{"codigo": "01", "montoPago": "169.499"}])

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.INVALID_MONETARY_AMOUNT
        assert error.field_name == "payment_amount"

    def test_subtotal_after_discounts_mismatch(self, strategy):
        document = sales_document(subTotal="140.00")

        assert strategy.validate(document).rule_code == ErrorCodes.INVALID_SUBTOTAL_CALCULATION

    def test_total_operation_mismatch(self, strategy):
        document = sales_document(montoTotalOperacion="175.00")

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.INVALID_TOTAL_OPERATION
        assert error.expected_value == Decimal("169.50")
        assert error.actual_value == Decimal("175.00")

    def test_flat_tax_is_added_to_total_operation(self, strategy):
        document = sales_document(
            tributos=[{"codigo": "20", "valor": "19.50"}, {"codigo": "71", "valor": "7.00"}],
            montoTotalOperacion="176.50",
        )

        assert strategy.validate(document) is None

    def test_wrong_flat_tax(self, strategy):
        document = sales_document(
            tributos=[{"codigo": "20", "valor": "19.50"}, {"codigo": "71", "valor": "5.00"}],
            montoTotalOperacion="174.50",
        )

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.INVALID_TAX_CALCULATION
        assert error.tax_code == "71"
        assert error.expected_value == Decimal("7.00")

    @pytest.mark.parametrize("code", ["D4", "ZZ"])
    def test_unchecked_codes_are_accepted_as_declared(self, strategy, code):
        document = sales_document(
            tributos=[{"codigo": "20", "valor": "19.50"}, {"codigo": code, "valor": "3.33"}],
            montoTotalOperacion="172.83",
        )

        assert strategy.validate(document) is None

    def test_strategy_is_reusable(self, strategy):
        bad = sales_document(montoTotalOperacion="175.00")
        good = sales_document()

        assert strategy.validate(bad) is not None
        assert strategy.validate(good) is None


class TestDebitNoteStrategy:

    def test_uses_the_base_rules(self):
        strategy = DebitNoteTaxStrategy()

        assert strategy.validate(sales_document("06")) is None
        assert strategy.validate(sales_document("06", tributos=[])).rule_code == ErrorCodes.MISSING_TAXES


# =============================================================================
# CCF
# =============================================================================


class TestCCFStrategy:

    @pytest.fixture
    def strategy(self):
        return CCFTaxStrategy()

    def test_consistent_document_passes(self, strategy):
        assert strategy.validate(sales_document("03", totalPagar="169.50")) is None

    def test_perception_moves_to_total_to_pay(self, strategy):
        document = sales_document("03", ivaPerci1="1.50", totalPagar="171.00")

        assert strategy.validate(document) is None

    def test_retentions_reduce_total_to_pay(self, strategy):
        document = sales_document("03", ivaRete1="1.50", reteRenta="15.00", totalPagar="153.00")

        assert strategy.validate(document) is None

    def test_non_taxed_amount_is_added_to_total_to_pay(self, strategy):
        document = sales_document("03", totalNoGravado="10.00", totalPagar="179.50")

        assert strategy.validate(document) is None

    def test_wrong_total_to_pay(self, strategy):
        document = sales_document("03", totalPagar="170.00")

        error = strategy.validate(document)

        assert error.rule_code == ErrorCodes.INVALID_TOTAL_TO_PAY
        assert error.expected_value == Decimal("169.50")

    def test_sub_cent_total_to_pay(self, strategy):
        error = strategy.validate(sales_document("03", totalPagar="169.501"))

        assert error.rule_code == ErrorCodes.INVALID_MONETARY_AMOUNT
        assert error.field_name == "total_to_pay"


# =============================================================================
# Consumer invoice
# =============================================================================


class TestInvoiceStrategy:

    @pytest.fixture
    def strategy(self):
        return InvoiceTaxStrategy()

    def invoice(self, **overrides) -> DTEDocument:
        return DTEDocument.from_dict(invoice_payload(**overrides))

    def test_consistent_document_passes(self, strategy):
        assert strategy.validate(self.invoice()) is None

    def test_iva_may_not_be_declared_as_tributo(self, strategy):
        error = strategy.validate(self.invoice(tributos=[{"codigo": "20", "valor": "13.00"}]))

        assert error.rule_code == ErrorCodes.INVALID_TAXES
        assert error.tax_code == "20"

    def test_other_tributos_are_validated(self, strategy):
        error = strategy.validate(self.invoice(
            tributos=[{"codigo": "59", "valor": "9.00"}], montoTotalOperacion="122.00", totalPagar="122.00",
        ))

        assert error.rule_code == ErrorCodes.INVALID_TAX_CALCULATION
        assert error.expected_value == Decimal("5.65")

    def test_tourism_tributo_passes(self, strategy):
        document = self.invoice(
            tributos=[{"codigo": "59", "valor": "5.65"}], montoTotalOperacion="118.65", totalPagar="118.65",
        )

        assert strategy.validate(document) is None

    def test_perception_is_not_allowed(self, strategy):
        error = strategy.validate(self.invoice(ivaPerci1="1.13"))

        assert error.rule_code == ErrorCodes.INVALID_PERCEPTION_AMOUNT
        assert error.expected_value == Decimal("0")

    def test_wrong_included_iva(self, strategy):
        error = strategy.validate(self.invoice(totalIva="14.69"))

        assert error.rule_code == ErrorCodes.INVALID_IVA_CALCULATION
        assert error.field_name == "total_iva"
        assert error.expected_value == Decimal("13")

    def test_wrong_total_to_pay(self, strategy):
        error = strategy.validate(self.invoice(totalPagar="120.00"))

        assert error.rule_code == ErrorCodes.INVALID_TOTAL_TO_PAY

    def test_retention_reduces_total_to_pay(self, strategy):
        assert strategy.validate(self.invoice(ivaRete1="1.00", totalPagar="112.00")) is None


# =============================================================================
# Export invoice
# =============================================================================


class TestExportInvoiceStrategy:

    @pytest.fixture
    def strategy(self):
        return ExportInvoiceTaxStrategy()

    def export(self, **overrides) -> DTEDocument:
        return DTEDocument.from_dict(export_payload(**overrides))

    def test_consistent_document_passes(self, strategy):
        assert strategy.validate(self.export()) is None

    def test_zero_rate_iva_passes(self, strategy):
        assert strategy.validate(self.export(tributos=[{"codigo": "C3", "valor": "0.00"}])) is None

    def test_domestic_iva_is_rejected(self, strategy):
        error = strategy.validate(self.export(
            tributos=[{"codigo": "20", "valor": "26.00"}], montoTotalOperacion="241.00", totalPagar="241.00",
        ))

        assert error.rule_code == ErrorCodes.INVALID_TAXES

    def test_freight_and_insurance_are_part_of_total_operation(self, strategy):
        error = strategy.validate(self.export(montoTotalOperacion="200.00", totalPagar="200.00"))

        assert error.rule_code == ErrorCodes.INVALID_TOTAL_OPERATION
        assert error.expected_value == Decimal("215.00")

    def test_sub_cent_freight(self, strategy):
        error = strategy.validate(self.export(flete="10.005"))

        assert error.rule_code == ErrorCodes.INVALID_MONETARY_AMOUNT
        assert error.field_name == "freight"

    def test_perception_is_not_allowed(self, strategy):
        assert strategy.validate(self.export(ivaPerci1="2.00")).rule_code == ErrorCodes.INVALID_PERCEPTION_AMOUNT


# =============================================================================
# Retention receipt
# =============================================================================


class TestRetentionStrategy:

    @pytest.fixture
    def strategy(self):
        return RetentionTaxStrategy()

    def test_consistent_document_passes(self, strategy):
        assert strategy.validate(RetentionDocument.from_dict(retention_payload())) is None

    def test_wrong_item_retention(self, strategy):
        payload = retention_payload()
        payload["cuerpoDocumento"][0]["ivaRetenido"] = "9.00"

        error = strategy.validate(RetentionDocument.from_dict(payload))

        assert error.rule_code == ErrorCodes.INVALID_RETENTION_AMOUNT
        assert error.field_name == "1"
        assert error.expected_value == Decimal("10.00")

    def test_special_retention_code_is_not_computed(self, strategy):
        payload = retention_payload(totalIVAretenido="12.00")
        payload["cuerpoDocumento"][0]["codigoRetencionMH"] = "C9"
        payload["cuerpoDocumento"][0]["ivaRetenido"] = "7.00"

        assert strategy.validate(RetentionDocument.from_dict(payload)) is None

    def test_thirteen_percent_retention(self, strategy):
        payload = retention_payload(totalIVAretenido="135.00")
        payload["cuerpoDocumento"][0]["codigoRetencionMH"] = "C4"
        payload["cuerpoDocumento"][0]["ivaRetenido"] = "130.00"

        assert strategy.validate(RetentionDocument.from_dict(payload)) is None

    def test_wrong_subject_total(self, strategy):
        error = strategy.validate(RetentionDocument.from_dict(retention_payload(totalSujetoRetencion="1400.00")))

        assert error.rule_code == ErrorCodes.INVALID_TOTAL_SUBJECT_RETENTION

    def test_wrong_retained_total(self, strategy):
        error = strategy.validate(RetentionDocument.from_dict(retention_payload(totalIVAretenido="16.00")))

        assert error.rule_code == ErrorCodes.INVALID_TOTAL_IVA_RETENTION
        assert error.expected_value == Decimal("15.00")

    def test_electronic_reference_needs_generation_code(self, strategy):
        payload = retention_payload()
        payload["cuerpoDocumento"][0]["numDocumento"] = "8a3d1f2e-4b5c-4d6e-9f70-8192a3b4c5d6"

        error = strategy.validate(RetentionDocument.from_dict(payload))

        assert error.rule_code == ErrorCodes.INVALID_RELATED_DOCUMENT
        assert error.field_name == "1"

    def test_physical_reference_needs_number(self, strategy):
        payload = retention_payload()
        payload["cuerpoDocumento"][1]["numDocumento"] = "  "

        error = strategy.validate(RetentionDocument.from_dict(payload))

        assert error.rule_code == ErrorCodes.INVALID_RELATED_DOCUMENT
        assert error.field_name == "2"

    def test_unknown_reference_type(self, strategy):
        payload = retention_payload()
        payload["cuerpoDocumento"][1]["tipoDoc"] = 3

        assert strategy.validate(RetentionDocument.from_dict(payload)).rule_code == ErrorCodes.INVALID_RELATED_DOCUMENT

    def test_sub_cent_item_amount(self, strategy):
        payload = retention_payload(totalSujetoRetencion="1500.005")
        payload["cuerpoDocumento"][1]["montoSujetoGrav"] = "500.005"

        error = strategy.validate(RetentionDocument.from_dict(payload))

        assert error.rule_code == ErrorCodes.INVALID_MONETARY_AMOUNT
