"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all runs
  2. Other modules can import from ledger_api.models directly
"""

from ledger_api.models.category import Category  # noqa: F401
from ledger_api.models.transaction import Transaction  # noqa: F401
