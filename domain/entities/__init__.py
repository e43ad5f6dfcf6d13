"""
Модуль доменных сущностей PayrollDesk
"""

from .base import Base
from .document import DocumentRecord
from .payment_method import PaymentMethod
from .employee import Employee, EmergencyContact
from .discount import Discount, DiscountType
from .advance import Advance, AdvanceStatus, DeductionSchedule
from .payment import Payment, PaymentStatus, PaymentPeriod, BankDetails, DigitalWalletDetails
from .statistics import (
    ActivityItem,
    ActivityType,
    DashboardStatistics,
    EmployeeStatistics,
    MonthlyComparison,
    MonthlyPayment,
    MonthlyStats,
    PaymentMethodStats,
)
from .session_context import SessionContext, UserRole

__all__ = [
    "Base",
    "DocumentRecord",
    "PaymentMethod",
    "Employee",
    "EmergencyContact",
    "Discount",
    "DiscountType",
    "Advance",
    "AdvanceStatus",
    "DeductionSchedule",
    "Payment",
    "PaymentStatus",
    "PaymentPeriod",
    "BankDetails",
    "DigitalWalletDetails",
    "ActivityItem",
    "ActivityType",
    "DashboardStatistics",
    "EmployeeStatistics",
    "MonthlyComparison",
    "MonthlyPayment",
    "MonthlyStats",
    "PaymentMethodStats",
    "SessionContext",
    "UserRole",
]
