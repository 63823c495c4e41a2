"""
DTE Document Models
In-memory representation of the electronic tax documents submitted for
validation, built from the MH JSON layout

All monetary fields are stored as Decimal from the moment the model is
built, so no binary float ever takes part in a calculation.

File: src/models/dte_models.py
"""

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from config.dte_config import Constants, DTEType, RelatedDocumentType, ValidationRules

MoneyInput = Union[Decimal, int, float, str, None]

# ========================================
# MONEY CONVERSION
# ========================================

def to_money(value: MoneyInput) -> Decimal:
    """
    Convert an input amount to Decimal going through its string form.
    NaN, infinities and amounts beyond MAX_MONETARY_VALUE raise ValueError.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        raise ValueError(f"Invalid monetary value: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid monetary value: {value!r}") from e

    if not amount.is_finite() or abs(amount) > ValidationRules.MAX_MONETARY_VALUE:
        raise ValueError(f"Invalid monetary value: {value!r}")
    return amount

def _coerce_money_fields(instance, names) -> None:
    for name in names:
        setattr(instance, name, to_money(getattr(instance, name)))

def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value)

# ========================================
# COMMON COMPONENTS
# ========================================

@dataclass
class TaxEntry:
    """Tributo declared in the summary"""
    code: str
    value: Decimal
    description: Optional[str] = None

    def __post_init__(self):
        self.value = to_money(self.value)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaxEntry":
        return cls(code=data["codigo"], value=data.get("valor"), description=data.get("descripcion"))

@dataclass
class PaymentType:
    """Payment method (pago) declared in the summary"""
    code: str
    amount: Decimal
    reference: Optional[str] = None
    term: Optional[str] = None
    period: Optional[int] = None

    def __post_init__(self):
        self.amount = to_money(self.amount)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentType":
        return cls(
            code=data["codigo"],
            amount=data.get("montoPago"),
            reference=data.get("referencia"),
            term=data.get("plazo"),
            period=data.get("periodo"),
        )

@dataclass
class DTEIdentification:
    """Identification block of a DTE"""
    dte_type: DTEType
    version: int = Constants.DTE_SCHEMA_VERSION
    control_number: Optional[str] = None
    generation_code: Optional[str] = None
    emission_date: Optional[date] = None
    currency: str = Constants.DEFAULT_CURRENCY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DTEIdentification":
        code = data.get("tipoDte")
        dte_type = DTEType.from_code(code)
        if dte_type is None:
            raise ValueError(f"Unknown DTE type: {code!r}")
        return cls(
            dte_type=dte_type,
            version=int(data.get("version", Constants.DTE_SCHEMA_VERSION)),
            control_number=data.get("numeroControl"),
            generation_code=data.get("codigoGeneracion"),
            emission_date=_parse_date(data.get("fecEmi")),
            currency=data.get("tipoMoneda", Constants.DEFAULT_CURRENCY),
        )

# ========================================
# SALES DOCUMENTS
# ========================================

@dataclass
class DTEItem:
    """Line item (cuerpoDocumento) of a sales document"""
    number: int
    description: str = ""
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    non_subject_sale: Decimal = Decimal("0")
    exempt_sale: Decimal = Decimal("0")
    taxed_sale: Decimal = Decimal("0")
    non_taxed: Decimal = Decimal("0")
    tax_codes: List[str] = field(default_factory=list)

    def __post_init__(self):
        _coerce_money_fields(self, (
            "quantity", "unit_price", "discount", "non_subject_sale",
            "exempt_sale", "taxed_sale", "non_taxed",
        ))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DTEItem":
        return cls(
            number=int(data["numItem"]),
            description=data.get("descripcion", ""),
            quantity=data.get("cantidad", 1),
            unit_price=data.get("precioUni"),
            discount=data.get("montoDescu"),
            non_subject_sale=data.get("ventaNoSuj"),
            exempt_sale=data.get("ventaExenta"),
            taxed_sale=data.get("ventaGravada"),
            non_taxed=data.get("noGravado"),
            tax_codes=list(data.get("tributos") or []),
        )

@dataclass
class DTESummary:
    """Summary (resumen) of a sales document"""
    total_non_subject: Decimal = Decimal("0")
    total_exempt: Decimal = Decimal("0")
    total_taxed: Decimal = Decimal("0")
    sub_total_sales: Decimal = Decimal("0")
    non_subject_discount: Decimal = Decimal("0")
    exempt_discount: Decimal = Decimal("0")
    taxed_discount: Decimal = Decimal("0")
    total_discount: Decimal = Decimal("0")
    taxes: List[TaxEntry] = field(default_factory=list)
    sub_total: Decimal = Decimal("0")
    iva_perception: Decimal = Decimal("0")
    iva_retention: Decimal = Decimal("0")
    income_retention: Decimal = Decimal("0")
    total_operation: Decimal = Decimal("0")
    total_non_taxed: Decimal = Decimal("0")
    total_to_pay: Decimal = Decimal("0")
    total_iva: Decimal = Decimal("0")
    freight: Decimal = Decimal("0")
    insurance: Decimal = Decimal("0")
    payment_types: List[PaymentType] = field(default_factory=list)

    def __post_init__(self):
        _coerce_money_fields(self, [
            f.name for f in fields(self) if f.name not in ("taxes", "payment_types")
        ])

    def get_taxes_total(self) -> Decimal:
        """Sum of every declared tributo"""
        return sum((tax.value for tax in self.taxes), Decimal("0"))

    def find_tax(self, code: str) -> Optional[TaxEntry]:
        for tax in self.taxes:
            if tax.code == code:
                return tax
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DTESummary":
        # Export invoices (11) declare neither subTotalVentas nor subTotal
        sub_total_sales = data.get("subTotalVentas")
        if sub_total_sales is None:
            sub_total_sales = (
                to_money(data.get("totalGravada"))
                + to_money(data.get("totalNoSuj"))
                + to_money(data.get("totalExenta"))
            )
        taxed_discount = data.get("descuGravada", data.get("descuento"))
        sub_total = data.get("subTotal")
        if sub_total is None:
            sub_total = (
                to_money(sub_total_sales)
                - to_money(taxed_discount)
                - to_money(data.get("descuNoSuj"))
                - to_money(data.get("descuExenta"))
            )

        return cls(
            total_non_subject=data.get("totalNoSuj"),
            total_exempt=data.get("totalExenta"),
            total_taxed=data.get("totalGravada"),
            sub_total_sales=sub_total_sales,
            non_subject_discount=data.get("descuNoSuj"),
            exempt_discount=data.get("descuExenta"),
            taxed_discount=taxed_discount,
            total_discount=data.get("totalDescu"),
            taxes=[TaxEntry.from_dict(tax) for tax in data.get("tributos") or []],
            sub_total=sub_total,
            iva_perception=data.get("ivaPerci1"),
            iva_retention=data.get("ivaRete1"),
            income_retention=data.get("reteRenta"),
            total_operation=data.get("montoTotalOperacion"),
            total_non_taxed=data.get("totalNoGravado"),
            total_to_pay=data.get("totalPagar"),
            total_iva=data.get("totalIva"),
            freight=data.get("flete"),
            insurance=data.get("seguro"),
            payment_types=[PaymentType.from_dict(p) for p in data.get("pagos") or []],
        )

@dataclass
class DTEDocument:
    """Sales document: invoice, CCF, credit/debit note, export invoice"""
    identification: DTEIdentification
    items: List[DTEItem]
    summary: DTESummary

    @property
    def dte_type(self) -> DTEType:
        return self.identification.dte_type

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "DTEDocument":
        return cls(
            identification=DTEIdentification.from_dict(payload["identificacion"]),
            items=[DTEItem.from_dict(item) for item in payload.get("cuerpoDocumento") or []],
            summary=DTESummary.from_dict(payload["resumen"]),
        )

# ========================================
# RETENTION DOCUMENTS
# ========================================

@dataclass
class RetentionItem:
    """Retention line referencing a purchase document"""
    number: int
    document_type: int
    document_number: str
    taxed_amount: Decimal
    retention_code: str
    retained_iva: Decimal
    emission_date: Optional[date] = None
    related_dte_type: Optional[str] = None
    description: str = ""

    def __post_init__(self):
        _coerce_money_fields(self, ("taxed_amount", "retained_iva"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetentionItem":
        return cls(
            number=int(data["numItem"]),
            document_type=int(data["tipoDoc"]),
            document_number=data.get("numDocumento", ""),
            taxed_amount=data.get("montoSujetoGrav"),
            retention_code=data.get("codigoRetencionMH", ""),
            retained_iva=data.get("ivaRetenido"),
            emission_date=_parse_date(data.get("fechaEmision")),
            related_dte_type=data.get("tipoDte"),
            description=data.get("descripcion", ""),
        )

@dataclass
class RetentionSummary:
    total_subject_retention: Decimal = Decimal("0")
    total_iva_retention: Decimal = Decimal("0")

    def __post_init__(self):
        _coerce_money_fields(self, ("total_subject_retention", "total_iva_retention"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetentionSummary":
        return cls(
            total_subject_retention=data.get("totalSujetoRetencion"),
            total_iva_retention=data.get("totalIVAretenido"),
        )

@dataclass
class RetentionDocument:
    """Comprobante de Retención (07)"""
    identification: DTEIdentification
    retention_items: List[RetentionItem]
    retention_summary: RetentionSummary

    @property
    def dte_type(self) -> DTEType:
        return self.identification.dte_type

    def is_all_physical(self) -> bool:
        """True when no referenced document was issued electronically"""
        return all(
            item.document_type != RelatedDocumentType.ELECTRONIC.value
            for item in self.retention_items
        )

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "RetentionDocument":
        return cls(
            identification=DTEIdentification.from_dict(payload["identificacion"]),
            retention_items=[RetentionItem.from_dict(i) for i in payload.get("cuerpoDocumento") or []],
            retention_summary=RetentionSummary.from_dict(payload.get("resumen") or {}),
        )

AnyDTEDocument = Union[DTEDocument, RetentionDocument]

def build_document(payload: Dict[str, Any]) -> AnyDTEDocument:
    """
    Build the document model matching the payload's tipoDte
    Raises KeyError/ValueError/TypeError for malformed payloads
    """
    code = (payload.get("identificacion") or {}).get("tipoDte")
    if code == DTEType.RETENTION.value:
        return RetentionDocument.from_dict(payload)
    return DTEDocument.from_dict(payload)
