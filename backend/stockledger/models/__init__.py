from .catalog import Location, Product, ProductCounter, Customer
from .moves import StockMove, StockMoveLine
from .documents import DocumentSeries
from .audit import AuditEvent

__all__ = [
    'Location', 'Product', 'ProductCounter', 'Customer',
    'StockMove', 'StockMoveLine',
    'DocumentSeries',
    'AuditEvent',
]
