"""
Декларативная база SQLAlchemy для таблиц PayrollDesk
"""

from sqlalchemy.orm import declarative_base

# Единственная таблица: documents (см. document.py)
Base = declarative_base()
