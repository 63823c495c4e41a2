"""
DTE Models Package
"""
from .database_models import *
from .dte_models import *

__all__ = [
    'Base', 'User', 'BranchOffice', 'DTEDetail', 'DTEStatus', 'TransmissionType',
    'Address', 'IssuerDTE',
    'create_all_tables', 'create_session_factory', 'generate_uuid',
    'generate_control_number', 'hash_api_secret',
    'TaxEntry', 'PaymentType', 'DTEIdentification', 'DTEItem', 'DTESummary',
    'DTEDocument', 'RetentionItem', 'RetentionSummary', 'RetentionDocument',
    'build_document', 'to_money'
]
