"""
Конфигурация pytest для тестов PayrollDesk
Фикстуры временной БД, сервисов и фабрики тестовых сущностей
"""
import pytest
import pytest_asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytz

from core.database.connection import DatabaseManager
from domain.entities import (
    Advance,
    AdvanceStatus,
    BankDetails,
    DigitalWalletDetails,
    Discount,
    DiscountType,
    Employee,
    Payment,
    PaymentMethod,
    PaymentPeriod,
    PaymentStatus,
    SessionContext,
    UserRole,
)
from shared.services.change_feed import ChangeFeed
from shared.services.document_store import DocumentStore
from shared.services.statistics_service import StatisticsService


LIMA = pytz.timezone("America/Lima")
# Пятница, середина месяца: текущий месяц март 2024, прошлый февраль 2024
FIXED_NOW = LIMA.localize(datetime(2024, 3, 15, 12, 0))


@pytest.fixture
def tz():
    return LIMA


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    """Часы, всегда возвращающие FIXED_NOW."""
    return lambda: FIXED_NOW


# =============================================================================
# Фабрики сущностей
# =============================================================================

@pytest.fixture
def make_employee():
    def factory(
        employee_id="e1",
        base_salary="1000",
        is_active=True,
        name="Ana",
        last_name="Quispe",
        dni=None,
        position="Operario",
        phone="987654321",
    ):
        return Employee(
            id=employee_id,
            dni=dni or f"4000{employee_id}",
            name=name,
            last_name=last_name,
            position=position,
            phone=phone,
            base_salary=Decimal(base_salary),
            start_date=FIXED_NOW - timedelta(days=365),
            created_at=FIXED_NOW - timedelta(days=365),
            updated_at=FIXED_NOW - timedelta(days=365),
            is_active=is_active,
        )

    return factory


@pytest.fixture
def make_discount():
    def factory(
        discount_id="d1",
        employee_id="e1",
        amount="50",
        start_date=None,
        end_date=None,
        is_recurring=False,
        is_active=True,
        discount_type=DiscountType.TARDINESS,
    ):
        start = start_date or FIXED_NOW - timedelta(days=5)
        return Discount(
            id=discount_id,
            employee_id=employee_id,
            amount=Decimal(amount),
            start_date=start,
            end_date=end_date,
            is_recurring=is_recurring,
            is_active=is_active,
            type=discount_type,
            created_at=start,
        )

    return factory


@pytest.fixture
def make_advance():
    def factory(
        advance_id="a1",
        employee_id="e1",
        amount="200",
        request_date=None,
        status=AdvanceStatus.PENDING,
        is_fully_deducted=False,
    ):
        requested = request_date or FIXED_NOW - timedelta(days=3)
        return Advance(
            id=advance_id,
            employee_id=employee_id,
            amount=Decimal(amount),
            request_date=requested,
            status=status,
            is_fully_deducted=is_fully_deducted,
            created_at=requested,
        )

    return factory


@pytest.fixture
def make_payment():
    def factory(
        payment_id="p1",
        employee_id="e1",
        amount="1000",
        payment_date=None,
        status=PaymentStatus.COMPLETED,
        method=PaymentMethod.CASH,
        discounts=(),
        advances=(),
        employee_name="Ana Quispe",
    ):
        paid_at = payment_date or FIXED_NOW - timedelta(days=1)
        bank = None
        wallet = None
        if method == PaymentMethod.BANK_TRANSFER:
            bank = BankDetails(bank_name="BCP", operation_number="OP-1", account_number="191-000")
        elif method in (PaymentMethod.YAPE, PaymentMethod.PLIN):
            wallet = DigitalWalletDetails(phone_number="987654321", operation_number="W-1", wallet_type=method)
        return Payment(
            id=payment_id,
            employee_id=employee_id,
            employee_name=employee_name,
            amount=Decimal(amount),
            payment_date=paid_at,
            payment_period=PaymentPeriod(month=paid_at.month, year=paid_at.year),
            payment_method=method,
            bank_details=bank,
            digital_wallet_details=wallet,
            discounts=discounts,
            advances=advances,
            status=status,
            created_at=paid_at,
        )

    return factory


# =============================================================================
# Контекст пользователя
# =============================================================================

@pytest.fixture
def admin_ctx():
    return SessionContext(user_id="u1", email="admin@payrolldesk.pe", name="Admin", role=UserRole.ADMIN)


@pytest.fixture
def viewer_ctx():
    return SessionContext(user_id="u2", email="viewer@payrolldesk.pe", name="Viewer", role=UserRole.VIEWER)


# =============================================================================
# Временная БД и сервисы (интеграционные тесты)
# =============================================================================

@pytest_asyncio.fixture
async def database(tmp_path):
    """Файловая SQLite БД со схемой документного хранилища."""
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'payrolldesk.db'}", echo=False)
    await manager.create_schema()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def store(database):
    return DocumentStore(database.async_session_factory, ChangeFeed(), timeout=5)


@pytest_asyncio.fixture
async def statistics_service(store, clock, tz):
    return StatisticsService(store, clock=clock, tz=tz)


@pytest.fixture
def employee_service(statistics_service):
    return statistics_service.employees


@pytest.fixture
def payment_service(statistics_service):
    return statistics_service.payments


@pytest.fixture
def discount_service(statistics_service):
    return statistics_service.discounts


@pytest.fixture
def advance_service(statistics_service):
    return statistics_service.advances
