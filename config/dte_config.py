"""
DTE (Documento Tributario Electrónico) System Configuration
Core constants, tax catalogs, validation rules, and system configuration for
Ministerio de Hacienda (MH) compliance

Based on:
- Normativa de Cumplimiento de los Documentos Tributarios Electrónicos
- Catálogos del Sistema de Transmisión (CAT-002, CAT-006, CAT-015, CAT-017)
- Esquemas JSON de DTE versión 1 / 3
"""

import copy
import logging.config
import os
import re
from datetime import timedelta
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

# ========================================
# SYSTEM CONFIGURATION
# ========================================

class SystemConfig:
    # MH API Configuration (Test Environment by default)
    MH_API_BASE_URL = os.getenv("MH_API_BASE_URL", "https://apitest.dtes.mh.gob.sv")
    MH_AUTH_ENDPOINT = "/seguridad/auth"
    MH_USER_AGENT = "dte-sv-validator/1.0"
    REQUEST_TIMEOUT_SECONDS = 30

    # Persistence
    DATABASE_URL = os.getenv("DTE_DATABASE_URL", "sqlite:///dte_system.db")

    # Session tokens
    STANDARD_TOKEN_LIFETIME_HOURS = 24

    # Validation Tolerances
    MONETARY_TOLERANCE = Decimal('0.01')  # 1 centavo tolerance for calculations
    CENTS_MULTIPLIER = Decimal('100')

    # Perception (percepción de IVA) rate applied to the taxed total
    IVA_PERCEPTION_RATE = Decimal('0.01')

# ========================================
# DTE TYPES AND CODES
# ========================================

class DTEType(Enum):
    """Document Types as defined in CAT-002"""
    INVOICE = "01"                  # Factura
    CCF = "03"                      # Comprobante de Crédito Fiscal
    REMISSION_NOTE = "04"           # Nota de Remisión
    CREDIT_NOTE = "05"              # Nota de Crédito
    DEBIT_NOTE = "06"               # Nota de Débito
    RETENTION = "07"                # Comprobante de Retención
    LIQUIDATION = "08"              # Comprobante de Liquidación
    ACCOUNTING_LIQUIDATION = "09"   # Documento Contable de Liquidación
    EXPORT_INVOICE = "11"           # Factura de Exportación
    EXCLUDED_SUBJECT_INVOICE = "14" # Factura de Sujeto Excluido
    DONATION = "15"                 # Comprobante de Donación

    @classmethod
    def from_code(cls, code: Optional[str]) -> Optional["DTEType"]:
        """Resolve a catalog code, None if it is not in CAT-002"""
        for dte_type in cls:
            if dte_type.value == code:
                return dte_type
        return None

# ========================================
# TAX TYPES AND CONFIGURATIONS
# ========================================

class TaxCode(Enum):
    """Tax (tributo) codes from CAT-015"""
    IVA = "20"                  # Impuesto al Valor Agregado 13%
    IVA_EXPORT = "C3"           # Impuesto al Valor Agregado (exportaciones) 0%
    TOURISM = "59"              # Turismo: por alojamiento (5%)
    TOURISM_AIRPORT = "71"      # Turismo: salida del país por vía aérea $7.00
    FOVIAL = "D1"               # FOVIAL
    COTRANS = "C8"              # COTRANS
    SPECIAL_OTHER = "D4"        # Otros impuestos casos especiales

    @classmethod
    def from_code(cls, code: Optional[str]) -> Optional["TaxCode"]:
        for tax_code in cls:
            if tax_code.value == code:
                return tax_code
        return None

# Tax configurations. A tax is either a rate applied to the taxable base or a
# flat amount; entries with validated=False are accepted as declared.
TAX_CONFIGS = {
    TaxCode.IVA: {
        'name': 'Impuesto al Valor Agregado 13%',
        'short_name': 'IVA',
        'rate': Decimal('0.13'),
        'flat_amount': None,
        'validated': True,
    },
    TaxCode.IVA_EXPORT: {
        'name': 'Impuesto al Valor Agregado (exportaciones) 0%',
        'short_name': 'IVA EXPORTACION',
        'rate': Decimal('0.00'),
        'flat_amount': None,
        'validated': True,
    },
    TaxCode.TOURISM: {
        'name': 'Turismo: por alojamiento (5%)',
        'short_name': 'TURISMO',
        'rate': Decimal('0.05'),
        'flat_amount': None,
        'validated': True,
    },
    TaxCode.TOURISM_AIRPORT: {
        'name': 'Turismo: salida del país por vía aérea $7.00',
        'short_name': 'TURISMO AEREO',
        'rate': None,
        'flat_amount': Decimal('7.00'),
        'validated': True,
    },
    TaxCode.FOVIAL: {
        'name': 'Fondo de Conservación Vial (FOVIAL)',
        'short_name': 'FOVIAL',
        'rate': Decimal('0.20'),
        'flat_amount': None,
        'validated': True,
    },
    TaxCode.COTRANS: {
        'name': 'Contribución al Transporte (COTRANS)',
        'short_name': 'COTRANS',
        'rate': None,
        'flat_amount': Decimal('0.10'),
        'validated': True,
    },
    TaxCode.SPECIAL_OTHER: {
        'name': 'Otros impuestos casos especiales',
        'short_name': 'OTROS',
        'rate': None,
        'flat_amount': None,
        'validated': False,
    },
}

# ========================================
# RETENTION CODES
# ========================================

class RetentionCode(Enum):
    """IVA retention codes from CAT-006"""
    IVA_1 = "22"        # Retención IVA 1%
    IVA_13 = "C4"       # Retención IVA 13%
    OTHER = "C9"        # Otras retenciones IVA casos especiales

    @classmethod
    def from_code(cls, code: Optional[str]) -> Optional["RetentionCode"]:
        for retention_code in cls:
            if retention_code.value == code:
                return retention_code
        return None

RETENTION_CONFIGS = {
    RetentionCode.IVA_1: {'name': 'Retención IVA 1%', 'rate': Decimal('0.01')},
    RetentionCode.IVA_13: {'name': 'Retención IVA 13%', 'rate': Decimal('0.13')},
    RetentionCode.OTHER: {'name': 'Otras retenciones IVA casos especiales', 'rate': None},
}

class RelatedDocumentType(Enum):
    """Generation type of a document referenced by a retention (CAT-007)"""
    PHYSICAL = 1
    ELECTRONIC = 2

# ========================================
# AUTHENTICATION
# ========================================

class AuthType(Enum):
    """Authentication mechanisms a registered client may use"""
    STANDARD = "standard"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["AuthType"]:
        for auth_type in cls:
            if auth_type.value == value:
                return auth_type
        return None

STANDARD_PERMISSIONS = ["dte:create", "dte:read", "dte:invalidate"]

TOKEN_LIFETIMES = {
    AuthType.STANDARD: timedelta(hours=SystemConfig.STANDARD_TOKEN_LIFETIME_HOURS),
}

# ========================================
# VALIDATION RULES
# ========================================

class ValidationRules:
    """Core validation rules for DTE processing"""

    # NIT: 14 digits (legacy) or 9 digits (DUI homologated)
    NIT_PATTERN = re.compile(r'^([0-9]{14}|[0-9]{9})$')

    # Generation code: uppercase UUID
    GENERATION_CODE_PATTERN = re.compile(
        r'^[A-F0-9]{8}-[A-F0-9]{4}-[A-F0-9]{4}-[A-F0-9]{4}-[A-F0-9]{12}$'
    )

    # API key issued to branch offices
    API_KEY_PATTERN = re.compile(r'^[A-Za-z0-9_\-]{16,64}$')
    MIN_API_SECRET_LENGTH = 16

    # Largest amount accepted in a monetary field
    MAX_MONETARY_VALUE = Decimal('99999999999.99')

    @staticmethod
    def validate_nit(nit: str) -> bool:
        """Validate NIT format"""
        return bool(nit) and ValidationRules.NIT_PATTERN.match(nit) is not None

    @staticmethod
    def validate_generation_code(code: str) -> bool:
        return bool(code) and ValidationRules.GENERATION_CODE_PATTERN.match(code) is not None

# ========================================
# ERROR CODES AND MESSAGES
# ========================================

class ErrorCodes:
    """Rule codes reported by the DTE validation strategies"""

    # Base totals
    INVALID_TOTAL_TAXED = "InvalidTotalTaxed"
    INVALID_TOTAL_NON_SUBJECT = "InvalidTotalNonSubject"
    INVALID_TOTAL_EXEMPT = "InvalidTotalExempt"
    DISCOUNT_EXCEEDS_SUBTOTAL = "DiscountExceedsSubtotal"
    INVALID_SUBTOTAL_SALES = "InvalidSubTotalSales"

    # Taxes
    INVALID_TAXES = "InvalidTaxes"
    MISSING_TAXES = "MissingTaxes"
    INVALID_TAX_CALCULATION = "InvalidTaxCalculation"
    INVALID_PERCEPTION_AMOUNT = "InvalidPerceptionAmount"

    # Precision
    INVALID_MONETARY_AMOUNT = "InvalidMonetaryAmount"

    # Totals
    INVALID_SUBTOTAL_CALCULATION = "InvalidSubTotalCalculation"
    INVALID_IVA_CALCULATION = "InvalidIVACalculation"
    INVALID_TOTAL_OPERATION = "InvalidTotalOperation"
    INVALID_TOTAL_TO_PAY = "InvalidTotalToPay"

    # Retention
    INVALID_RETENTION_AMOUNT = "InvalidRetentionAmount"
    INVALID_TOTAL_SUBJECT_RETENTION = "InvalidTotalSubjectRetention"
    INVALID_TOTAL_IVA_RETENTION = "InvalidTotalIVARetention"
    INVALID_RELATED_DOCUMENT = "InvalidRelatedDocument"

    # Document level
    UNSUPPORTED_DTE_TYPE = "UnsupportedDTEType"
    INVALID_DOCUMENT_FORMAT = "InvalidDocumentFormat"

# Error messages in Spanish
ERROR_MESSAGES = {
    ErrorCodes.INVALID_TOTAL_TAXED: "El total gravado no coincide con la suma de los ítems, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_TOTAL_NON_SUBJECT: "El total no sujeto no coincide con la suma de los ítems, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_TOTAL_EXEMPT: "El total exento no coincide con la suma de los ítems, esperado {expected}, declarado {actual}",
    ErrorCodes.DISCOUNT_EXCEEDS_SUBTOTAL: "El descuento {field} ({actual}) excede el subtotal ({expected})",
    ErrorCodes.INVALID_SUBTOTAL_SALES: "El subtotal de ventas es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_TAXES: "Se declararon tributos no permitidos para el documento",
    ErrorCodes.MISSING_TAXES: "Debe declarar al menos un tributo cuando existe monto gravado",
    ErrorCodes.INVALID_TAX_CALCULATION: "El cálculo del tributo {tax_code} es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_PERCEPTION_AMOUNT: "El monto de percepción es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_MONETARY_AMOUNT: "El monto {actual} del campo {field} no es un valor monetario válido",
    ErrorCodes.INVALID_SUBTOTAL_CALCULATION: "El subtotal con descuentos es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_IVA_CALCULATION: "El IVA con descuento es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_TOTAL_OPERATION: "El monto total de la operación es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_TOTAL_TO_PAY: "El total a pagar es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_RETENTION_AMOUNT: "El IVA retenido del ítem {field} es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_TOTAL_SUBJECT_RETENTION: "El total sujeto a retención es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_TOTAL_IVA_RETENTION: "El total de IVA retenido es incorrecto, esperado {expected}, declarado {actual}",
    ErrorCodes.INVALID_RELATED_DOCUMENT: "El documento relacionado del ítem {field} no es válido",
    ErrorCodes.UNSUPPORTED_DTE_TYPE: "El tipo de DTE {field} no está soportado",
    ErrorCodes.INVALID_DOCUMENT_FORMAT: "El documento no tiene un formato válido: {field}",
}

# Service error messages, formatted positionally with the error parameters
SERVICE_ERROR_MESSAGES = {
    "MissingCredentials": "Faltan credenciales requeridas",
    "InvalidCredentials": "Credenciales inválidas",
    "InvalidCredentialFormat": "El campo {0} no tiene un formato válido",
    "NotFound": "Registro no encontrado",
    "ServerError": "Error interno del servidor, tipo de autenticación {0} no configurado",
    "UnsupportedAuthType": "Tipo de autenticación {0} no soportado",
    "DuplicatedEntry": "Ya existe un registro con el mismo valor en el campo {0}",
    "InvalidData": "Los datos proporcionados no son válidos",
    "HaciendaAuthFailed": "No fue posible autenticarse con el Ministerio de Hacienda",
}

# ========================================
# LOGGING CONFIGURATION
# ========================================

LOGGING_CONFIG = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        },
        'detailed': {
            'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s'
        }
    },
    'handlers': {
        'default': {
            'level': 'INFO',
            'formatter': 'standard',
            'class': 'logging.StreamHandler',
        },
        'file': {
            'level': 'DEBUG',
            'formatter': 'detailed',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': os.getenv("DTE_LOG_FILE", "dte_system.log"),
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5,
        }
    },
    'loggers': {
        '': {
            'handlers': ['default', 'file'],
            'level': 'DEBUG',
            'propagate': False
        }
    }
}

def configure_logging(log_file: Optional[str] = None, level: str = 'DEBUG') -> Dict:
    """
    Apply LOGGING_CONFIG. Without a log file only the console handler is used.
    Returns the configuration that was applied.
    """
    config = copy.deepcopy(LOGGING_CONFIG)
    if log_file:
        config['handlers']['file']['filename'] = log_file
    else:
        del config['handlers']['file']
        config['loggers']['']['handlers'] = ['default']
    config['loggers']['']['level'] = level

    logging.config.dictConfig(config)
    return config

# ========================================
# SYSTEM CONSTANTS
# ========================================

class Constants:
    """System-wide constants"""

    # Version information
    SYSTEM_VERSION = "1.0.0"
    DTE_SCHEMA_VERSION = 3

    # Default values
    DEFAULT_CURRENCY = "USD"

    # Control number layout
    CONTROL_NUMBER_SEQUENCE_DIGITS = 15

if __name__ == "__main__":
    # Basic configuration validation
    print("DTE System Configuration Loaded")
    print(f"System Version: {Constants.SYSTEM_VERSION}")
    print(f"Supported DTE Types: {len(DTEType)}")
    print(f"Supported Tax Codes: {len(TaxCode)}")
    print(f"Retention Codes: {len(RetentionCode)}")

    for nit in ["06140711071030", "012345678", "CF"]:
        print(f"NIT {nit}: {'Valid' if ValidationRules.validate_nit(nit) else 'Invalid'}")
