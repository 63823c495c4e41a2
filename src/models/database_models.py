"""
DTE Database Models
SQLAlchemy ORM models for the DTE issuing system

Stores registered issuers (users), their branch offices with the API
credentials used to log in, and the details of every transmitted DTE.

File: src/models/database_models.py
"""

import hashlib
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean,
    ForeignKey, Index, UniqueConstraint, Enum as SQLEnum, create_engine
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.sql import func

# Import our configuration
from config.dte_config import AuthType, Constants, DTEType, SystemConfig

Base = declarative_base()

# ========================================
# ENUMS FOR DATABASE
# ========================================

class DTEStatus(Enum):
    """Status of DTE documents"""
    RECEIVED = "RECEIVED"           # Received from issuer, pending transmission
    PROCESSED = "PROCESSED"         # Accepted by MH, reception stamp assigned
    REJECTED = "REJECTED"           # Rejected by MH
    INVALIDATED = "INVALIDATED"     # Invalidated (anulado)

class TransmissionType(Enum):
    """Transmission model (CAT-003)"""
    NORMAL = "NORMAL"
    CONTINGENCY = "CONTINGENCY"

# ========================================
# ISSUER MANAGEMENT MODELS
# ========================================

class User(Base):
    """
    Registered issuer (emisor)
    One taxpayer with one or more branch offices
    """
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    nit = Column(String(14), nullable=False)
    nrc = Column(String(8), nullable=False)
    business_name = Column(String(250), nullable=False)
    commercial_name = Column(String(150))

    # Economic activity (CAT-019)
    economic_activity = Column(String(6), nullable=False)
    economic_activity_desc = Column(String(150), nullable=False)

    # Contact
    email = Column(String(100), nullable=False)
    phone = Column(String(30))

    auth_type = Column(String(30), nullable=False, default=AuthType.STANDARD.value)

    # System fields
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    is_active = Column(Boolean, default=True)

    # Relationships
    branches = relationship("BranchOffice", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('nit', name='uq_users_nit'),
        UniqueConstraint('nrc', name='uq_users_nrc'),
        UniqueConstraint('email', name='uq_users_email'),
        UniqueConstraint('phone', name='uq_users_phone'),
    )

class BranchOffice(Base):
    """
    Issuer establishment (sucursal) with its API credentials
    """
    __tablename__ = 'branch_offices'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)

    # API credentials, the secret is stored hashed
    api_key = Column(String(64), nullable=False)
    api_secret = Column(String(64), nullable=False)

    # Establishment (CAT-009) and point of sale codes
    establishment_type = Column(String(2), nullable=False)
    establishment_code = Column(String(4))
    establishment_code_mh = Column(String(4))
    pos_code = Column(String(4))
    pos_code_mh = Column(String(4))

    email = Column(String(100))
    phone = Column(String(30))

    # Address
    department = Column(String(2))
    municipality = Column(String(2))
    complement = Column(String(200))

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())

    user = relationship("User", back_populates="branches")

    __table_args__ = (
        UniqueConstraint('api_key', name='uq_branch_offices_api_key'),
        Index('idx_branch_user', 'user_id'),
    )

# ========================================
# DTE STORAGE MODELS
# ========================================

class DTEDetail(Base):
    """
    Transmitted DTE with its MH reception data
    """
    __tablename__ = 'dte_details'

    id = Column(String(36), primary_key=True)  # Generation code
    branch_id = Column(Integer, ForeignKey('branch_offices.id'))
    dte_type = Column(SQLEnum(DTEType), nullable=False)
    control_number = Column(String(31), nullable=False)
    reception_stamp = Column(String(100))
    transmission = Column(SQLEnum(TransmissionType), default=TransmissionType.NORMAL, nullable=False)
    status = Column(SQLEnum(DTEStatus), default=DTEStatus.RECEIVED, nullable=False)
    json_data = Column(Text, nullable=False)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    branch = relationship("BranchOffice")

    __table_args__ = (
        UniqueConstraint('control_number', name='uq_dte_details_control_number'),
        Index('idx_dte_status', 'status'),
        Index('idx_dte_type_date', 'dte_type', 'created_at'),
    )

# ========================================
# READ MODELS
# ========================================

@dataclass
class Address:
    department: Optional[str]
    municipality: Optional[str]
    complement: Optional[str]

@dataclass
class IssuerDTE:
    """Issuer block (emisor) assembled from a user and one of its branches"""
    nit: str
    nrc: str
    commercial_name: Optional[str]
    business_name: str
    economic_activity: str
    economic_activity_desc: str
    establishment_type: str
    establishment_code: Optional[str] = None
    establishment_code_mh: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    pos_code: Optional[str] = None
    pos_code_mh: Optional[str] = None
    address: Optional[Address] = None

    @classmethod
    def from_branch(cls, branch: BranchOffice) -> "IssuerDTE":
        user = branch.user
        return cls(
            nit=user.nit,
            nrc=user.nrc,
            commercial_name=user.commercial_name,
            business_name=user.business_name,
            economic_activity=user.economic_activity,
            economic_activity_desc=user.economic_activity_desc,
            establishment_type=branch.establishment_type,
            establishment_code=branch.establishment_code,
            establishment_code_mh=branch.establishment_code_mh,
            email=branch.email or user.email,
            phone=branch.phone or user.phone,
            pos_code=branch.pos_code,
            pos_code_mh=branch.pos_code_mh,
            address=Address(branch.department, branch.municipality, branch.complement),
        )

# ========================================
# UTILITY FUNCTIONS
# ========================================

def create_all_tables(engine):
    """
    Create all database tables
    """
    Base.metadata.create_all(engine)

def create_session_factory(database_url: str = SystemConfig.DATABASE_URL, echo: bool = False) -> sessionmaker:
    """
    Engine plus session factory; objects stay usable after commit.
    Defaults to the database configured through DTE_DATABASE_URL.
    """
    engine = create_engine(database_url, echo=echo)
    create_all_tables(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)

def generate_uuid() -> str:
    """
    Generate a UUID v4 for DTE generation codes
    """
    return str(uuid.uuid4()).upper()

def generate_control_number(dte_type: DTEType, establishment_code: str, pos_code: str, sequence: int) -> str:
    """
    Generate control number DTE-XX-EEEEPPPP-NNNNNNNNNNNNNNN
    """
    establishment = establishment_code.upper().rjust(4, '0')[:4]
    pos = pos_code.upper().rjust(4, '0')[:4]
    number = str(sequence).zfill(Constants.CONTROL_NUMBER_SEQUENCE_DIGITS)
    if len(number) > Constants.CONTROL_NUMBER_SEQUENCE_DIGITS:
        raise ValueError(f"Sequence {sequence} does not fit in a control number")
    return f"DTE-{dte_type.value}-{establishment}{pos}-{number}"

def hash_api_secret(api_secret: str) -> str:
    """
    Hash an API secret for storage
    """
    return hashlib.sha256(api_secret.encode('utf-8')).hexdigest()

# ========================================
# DATABASE INITIALIZATION
# ========================================

if __name__ == "__main__":
    # Create in-memory SQLite database for testing
    Session = create_session_factory('sqlite:///:memory:', echo=True)
    session = Session()

    user = User(
        nit="06140711071030",
        nrc="1832035",
        business_name="Empresa de Prueba S.A. de C.V.",
        commercial_name="Empresa Prueba",
        economic_activity="46592",
        economic_activity_desc="Venta al por mayor",
        email="facturacion@empresa.com.sv",
        branches=[BranchOffice(
            api_key="demo-api-key-0000000001",
            api_secret=hash_api_secret("demo-api-secret-000001"),
            establishment_type="01",
            establishment_code="M001",
            pos_code="P001",
        )],
    )

    session.add(user)
    session.commit()

    print(f"Created issuer: {user.business_name} with NIT: {user.nit}")

    generation_code = generate_uuid()
    print(f"Generation code: {generation_code}")
    print(f"Control number: {generate_control_number(DTEType.INVOICE, 'M001', 'P001', 1)}")

    session.close()
