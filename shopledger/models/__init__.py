from .tenancy import Shop
from .customers import Customer
from .catalog import Item
from .sales import ItemTransaction
from .invoices import Invoice, InvoiceLineItem, INVOICE_STATUSES
from .ledger import LedgerEntry
from .documents import DocumentSequence
from .audit import AuditLog

__all__ = [
    'Shop',
    'Customer',
    'Item',
    'ItemTransaction',
    'Invoice', 'InvoiceLineItem', 'INVOICE_STATUSES',
    'LedgerEntry',
    'DocumentSequence',
    'AuditLog',
]
