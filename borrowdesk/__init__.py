"""
Borrowdesk - scan identity resolution and borrower reminders for a university
inventory borrowing desk.
"""

from .core.config import VERSION

__version__ = VERSION
