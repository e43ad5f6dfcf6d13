"""Shared services package."""

from .document_store import DocumentStore, Filter
from .change_feed import ChangeFeed, combine_latest
from .employee_service import EmployeeService
from .payment_service import PaymentService
from .discount_service import DiscountService
from .advance_service import AdvanceService
from .statistics_service import StatisticsService

__all__ = [
    'DocumentStore',
    'Filter',
    'ChangeFeed',
    'combine_latest',
    'EmployeeService',
    'PaymentService',
    'DiscountService',
    'AdvanceService',
    'StatisticsService'
]
