"""
Сервис статистики дашборда и сотрудников.

Разовый расчет выполняет независимые подзапросы параллельно
(asyncio.gather), живой поток пересчитывает снимок из последних
списков сотрудников и выплат при каждом изменении.
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncIterator, Callable, Optional, Tuple

import pytz

from core.config.settings import settings
from core.logging.logger import logger
from core.utils.timezone_helper import TimezoneLike, current_month, to_timestamp_ms
from domain.entities.payment import PaymentStatus
from domain.entities.statistics import DashboardStatistics, EmployeeStatistics, MonthlyStats
from domain.errors import PayrollError
from shared.models.operation_result import OperationResult
from shared.services.advance_service import AdvanceService
from shared.services.change_feed import combine_latest
from shared.services.dashboard_statistics import (
    assemble_dashboard_statistics,
    compute_dashboard_statistics,
    pending_amount,
    quick_dashboard_statistics,
)
from shared.services.discount_service import DiscountService
from shared.services.document_codec import encode_dashboard_statistics
from shared.services.document_store import DocumentStore
from shared.services.employee_service import EmployeeService
from shared.services.employee_statistics import compute_employee_statistics, compute_monthly_stats
from shared.services.payment_service import PaymentService

STATISTICS = "statistics"
DASHBOARD_DOCUMENT = "dashboard"
ZERO = Decimal("0")


class StatisticsService:
    """Сервис статистики."""

    def __init__(
        self,
        store: DocumentStore,
        clock: Optional[Callable[[], datetime]] = None,
        tz: TimezoneLike = None,
        cache_ttl_seconds: Optional[int] = None,
        write_back: Optional[bool] = None,
    ):
        self.store = store
        self.tz = tz
        self._clock = clock or (lambda: datetime.now(pytz.UTC))
        self.cache_ttl = timedelta(
            seconds=settings.statistics_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds
        )
        self.write_back = settings.statistics_write_back if write_back is None else write_back

        self.employees = EmployeeService(store, clock=self._clock, tz=tz)
        self.payments = PaymentService(store, clock=self._clock, tz=tz)
        self.discounts = DiscountService(store, clock=self._clock, tz=tz)
        self.advances = AdvanceService(store, clock=self._clock, tz=tz)

        self._cached: Optional[Tuple[DashboardStatistics, datetime]] = None

    def now(self) -> datetime:
        return self._clock()

    # --- Кэш ---

    def _cached_statistics(self) -> Optional[DashboardStatistics]:
        if self._cached is None:
            return None
        stats, computed_at = self._cached
        if self.now() - computed_at >= self.cache_ttl:
            return None
        return stats

    def _remember(self, stats: DashboardStatistics) -> None:
        self._cached = (stats, self.now())

    def clear_cache(self) -> None:
        self._cached = None

    async def _write_back(self, stats: DashboardStatistics) -> None:
        """Копия снимка в statistics/dashboard; ошибка записи не прерывает расчет."""
        document = encode_dashboard_statistics(stats)
        document["lastUpdated"] = to_timestamp_ms(self.now())
        try:
            await self.store.put(STATISTICS, DASHBOARD_DOCUMENT, document)
        except PayrollError as e:
            logger.warning("Не удалось сохранить статистику дашборда", error=e.message)

    # --- Подзапросы дашборда ---

    async def calculate_pending_payments(self) -> OperationResult[Decimal]:
        """Сумма окладов активных сотрудников без завершенной выплаты в текущем месяце."""
        month, year = current_month(self.now(), self.tz)
        employees, payments = await asyncio.gather(
            self.employees.get_active_employees(),
            self.payments.get_payments_by_month(month, year),
        )
        if not employees.success:
            return OperationResult.fail(employees.error)
        if not payments.success:
            return OperationResult.fail(payments.error)
        completed = [p for p in payments.value if p.status == PaymentStatus.COMPLETED]
        return OperationResult.ok(pending_amount(employees.value, completed))

    async def calculate_monthly_payments(self, month: int, year: int) -> OperationResult[Decimal]:
        return await self.payments.calculate_monthly_total(month, year)

    async def get_total_employees_count(self) -> OperationResult[int]:
        result = await self.employees.get_active_employees()
        if not result.success:
            return OperationResult.fail(result.error)
        return OperationResult.ok(len(result.value))

    async def get_today_payments_count(self) -> OperationResult[int]:
        result = await self.payments.get_today_payments()
        if not result.success:
            return OperationResult.fail(result.error)
        return OperationResult.ok(len(result.value))

    # --- Дашборд ---

    async def get_dashboard_statistics(self) -> OperationResult[DashboardStatistics]:
        """
        Снимок статистики дашборда.

        Возвращает кэш, если он моложе TTL. Иначе подзапросы выполняются
        параллельно; неуспешный подзапрос дает ноль вместо ошибки.
        """
        cached = self._cached_statistics()
        if cached is not None:
            logger.debug("Статистика дашборда взята из кэша")
            return OperationResult.ok(cached)

        now = self.now()
        month, year = current_month(now, self.tz)
        pending, monthly, employees_count, today_count, payments = await asyncio.gather(
            self.calculate_pending_payments(),
            self.calculate_monthly_payments(month, year),
            self.get_total_employees_count(),
            self.get_today_payments_count(),
            self.payments.list_payments(),
        )

        stats = assemble_dashboard_statistics(
            total_pending_amount=pending.value_or(ZERO),
            current_month_payments=monthly.value_or(ZERO),
            total_employees=employees_count.value_or(0),
            today_payments=today_count.value_or(0),
            payments=payments.value_or([]),
            now=now,
            tz=self.tz,
        )
        self._remember(stats)
        if self.write_back:
            await self._write_back(stats)

        logger.info(
            "Статистика дашборда рассчитана",
            total_employees=stats.total_employees,
            today_payments=stats.today_payments,
            current_month_payments=str(stats.current_month_payments),
            total_pending_amount=str(stats.total_pending_amount),
        )
        return OperationResult.ok(stats)

    async def update_dashboard_statistics(self) -> OperationResult[DashboardStatistics]:
        """Сбрасывает кэш и пересчитывает статистику."""
        self.clear_cache()
        return await self.get_dashboard_statistics()

    async def watch_dashboard_statistics(self) -> AsyncIterator[DashboardStatistics]:
        """
        Живой поток статистики дашборда.

        Порядок: снимок из кэша (если есть), быстрый частичный снимок,
        затем полный пересчет при каждом изменении сотрудников или выплат.
        Совпадающие подряд снимки не выдаются.
        """
        last = self._cached_statistics()
        if last is not None:
            yield last

        quick_sent = False
        updates = combine_latest(self.employees.watch_employees(), self.payments.watch_payments())
        try:
            async for employees, payments in updates:
                now = self.now()
                if not quick_sent:
                    quick_sent = True
                    quick = quick_dashboard_statistics(employees, payments, now, self.tz)
                    if quick != last:
                        last = quick
                        yield quick

                stats = compute_dashboard_statistics(employees, payments, now, self.tz)
                self._remember(stats)
                if stats != last:
                    last = stats
                    yield stats
        finally:
            await updates.aclose()

    # --- Сотрудник и месяц ---

    async def get_employee_statistics(self, employee_id: str) -> OperationResult[EmployeeStatistics]:
        """
        Статистика сотрудника.

        Ошибка чтения сотрудника или его выплат возвращается как есть,
        история удержаний и авансов при ошибке остается пустой.
        """
        employee, payments, discounts, advances = await asyncio.gather(
            self.employees.get_employee(employee_id),
            self.payments.get_payments_by_employee(employee_id),
            self.discounts.get_discounts_by_employee(employee_id),
            self.advances.get_advances_by_employee(employee_id),
        )
        if not employee.success:
            return OperationResult.fail(employee.error)
        if not payments.success:
            return OperationResult.fail(payments.error)

        return OperationResult.ok(
            compute_employee_statistics(
                employee.value,
                payments.value,
                now=self.now(),
                tz=self.tz,
                discounts=discounts.value_or([]),
                advances=advances.value_or([]),
            )
        )

    async def get_monthly_stats(self, month: int, year: int) -> OperationResult[MonthlyStats]:
        result = await self.payments.get_payments_by_month(month, year)
        if not result.success:
            return OperationResult.fail(result.error)
        return OperationResult.ok(compute_monthly_stats(result.value, month, year, self.tz))
