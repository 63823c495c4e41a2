"""
Payload builders, in-memory auth collaborators and ORM record builders
shared by the test modules.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from src.auth.models import AuthClaims, HaciendaCredentials
from src.auth.ports import CacheManager, TokenManager
from src.models.database_models import BranchOffice, User, hash_api_secret

GENERATION_CODE = "8A3D1F2E-4B5C-4D6E-9F70-8192A3B4C5D6"

API_KEY = "branch-key-0000000001"
API_SECRET = "branch-secret-00000001"
ISSUER_NIT = "06140711071030"


def identification(dte_type: str) -> dict:
    return {
        "version": 3,
        "tipoDte": dte_type,
        "numeroControl": f"DTE-{dte_type}-M001P001-000000000000001",
        "codigoGeneracion": GENERATION_CODE,
        "fecEmi": "2024-01-15",
        "tipoMoneda": "USD",
    }


def sales_payload(dte_type: str = "05", **summary_overrides) -> dict:
    """Two taxed items (100 + 50) with 13% IVA: operation total 169.50"""
    summary = {
        "totalNoSuj": 0,
        "totalExenta": 0,
        "totalGravada": "150.00",
        "subTotalVentas": "150.00",
        "descuNoSuj": 0,
        "descuExenta": 0,
        "descuGravada": 0,
        "tributos": [{"codigo": "20", "descripcion": "IVA 13%", "valor": "19.50"}],
        "subTotal": "150.00",
        "ivaPerci1": 0,
        "ivaRete1": 0,
        "reteRenta": 0,
        "montoTotalOperacion": "169.50",
    }
    summary.update(summary_overrides)
    return {
        "identificacion": identification(dte_type),
        "cuerpoDocumento": [
            {"numItem": 1, "descripcion": "Producto A", "cantidad": 1, "precioUni": "100.00", "ventaGravada": "100.00"},
            {"numItem": 2, "descripcion": "Producto B", "cantidad": 1, "precioUni": "50.00", "ventaGravada": "50.00"},
        ],
        "resumen": summary,
    }


def invoice_payload(**summary_overrides) -> dict:
    """Consumer invoice for 113.00 with IVA included (13.00)"""
    summary = {
        "totalNoSuj": 0,
        "totalExenta": 0,
        "totalGravada": "113.00",
        "subTotalVentas": "113.00",
        "descuNoSuj": 0,
        "descuExenta": 0,
        "descuGravada": 0,
        "tributos": [],
        "subTotal": "113.00",
        "ivaPerci1": 0,
        "ivaRete1": 0,
        "reteRenta": 0,
        "montoTotalOperacion": "113.00",
        "totalNoGravado": 0,
        "totalPagar": "113.00",
        "totalIva": "13.00",
        "pagos": [{"codigo": "01", "montoPago": "113.00"}],
    }
    summary.update(summary_overrides)
    return {
        "identificacion": identification("01"),
        "cuerpoDocumento": [
            {"numItem": 1, "descripcion": "Servicio", "cantidad": 1, "precioUni": "113.00", "ventaGravada": "113.00"},
        ],
        "resumen": summary,
    }


def export_payload(**summary_overrides) -> dict:
    """Export invoice for 200.00 plus freight and insurance"""
    summary = {
        "totalNoSuj": 0,
        "totalExenta": 0,
        "totalGravada": "200.00",
        "descuento": 0,
        "tributos": [],
        "flete": "10.00",
        "seguro": "5.00",
        "montoTotalOperacion": "215.00",
        "totalNoGravado": 0,
        "totalPagar": "215.00",
    }
    summary.update(summary_overrides)
    return {
        "identificacion": identification("11"),
        "cuerpoDocumento": [
            {"numItem": 1, "descripcion": "Café oro", "cantidad": 2, "precioUni": "100.00", "ventaGravada": "200.00"},
        ],
        "resumen": summary,
    }


def retention_payload(items: Optional[list] = None, **summary_overrides) -> dict:
    """Retention of 1% on one electronic and one physical purchase"""
    if items is None:
        items = [
            {
                "numItem": 1, "tipoDte": "03", "tipoDoc": 2, "numDocumento": GENERATION_CODE,
                "fechaEmision": "2024-01-10", "montoSujetoGrav": "1000.00",
                "codigoRetencionMH": "22", "ivaRetenido": "10.00", "descripcion": "Compra de mercadería",
            },
            {
                "numItem": 2, "tipoDte": "03", "tipoDoc": 1, "numDocumento": "A0001-1234",
                "fechaEmision": "2024-01-11", "montoSujetoGrav": "500.00",
                "codigoRetencionMH": "22", "ivaRetenido": "5.00", "descripcion": "Compra de repuestos",
            },
        ]
    summary = {"totalSujetoRetencion": "1500.00", "totalIVAretenido": "15.00"}
    summary.update(summary_overrides)
    return {
        "identificacion": identification("07"),
        "cuerpoDocumento": items,
        "resumen": summary,
    }


# =============================================================================
# In-memory auth collaborators
# =============================================================================


class InMemoryTokenManager(TokenManager):

    def __init__(self):
        self.tokens: Dict[str, AuthClaims] = {}
        self.lifetimes: Dict[str, timedelta] = {}

    def generate_token(self, claims: AuthClaims, lifetime: timedelta) -> str:
        token = uuid.uuid4().hex
        claims.expires_at = datetime.now(timezone.utc) + lifetime
        self.tokens[token] = claims
        self.lifetimes[token] = lifetime
        return token

    def validate_token(self, token: str) -> AuthClaims:
        claims = self.tokens.get(token)
        if claims is None or claims.is_expired():
            raise ValueError("invalid token")
        return claims

    def revoke_token(self, token: str) -> None:
        self.tokens.pop(token, None)


class InMemoryCacheManager(CacheManager):

    def __init__(self):
        self.entries: Dict[str, HaciendaCredentials] = {}
        self.ttls: Dict[str, timedelta] = {}

    def set_credentials(self, token: str, credentials: HaciendaCredentials, ttl: timedelta) -> None:
        self.entries[token] = credentials
        self.ttls[token] = ttl

    def get_credentials(self, token: str) -> Optional[HaciendaCredentials]:
        return self.entries.get(token)


# =============================================================================
# ORM records
# =============================================================================


def make_user(
    nit: str = ISSUER_NIT,
    nrc: str = "1832035",
    email: str = "facturacion@empresa.com.sv",
    api_key: str = API_KEY,
    api_secret: str = API_SECRET,
    phone: Optional[str] = None,
) -> User:
    return User(
        nit=nit,
        nrc=nrc,
        business_name="Empresa de Prueba S.A. de C.V.",
        commercial_name="Empresa Prueba",
        economic_activity="46592",
        economic_activity_desc="Venta al por mayor",
        email=email,
        phone=phone,
        branches=[BranchOffice(
            api_key=api_key,
            api_secret=hash_api_secret(api_secret),
            establishment_type="01",
            establishment_code="M001",
            establishment_code_mh="M001",
            pos_code="P001",
            pos_code_mh="P001",
            department="06",
            municipality="14",
            complement="Colonia Escalón, San Salvador",
        )],
    )
