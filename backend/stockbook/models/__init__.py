from .auth import User, SessionToken
from .catalog import Product
from .sales import SalesTransaction, SalesLine
from .files import FileAttachment

__all__ = [
    'User', 'SessionToken',
    'Product',
    'SalesTransaction', 'SalesLine',
    'FileAttachment',
]
