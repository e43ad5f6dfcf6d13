"""Сервис для работы с выплатами."""

import dataclasses
import uuid
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, List, Optional

from core.logging.logger import logger
from core.utils.timezone_helper import day_bounds, in_range, month_bounds, to_timestamp_ms
from domain.entities.payment import Payment, PaymentStatus
from domain.entities.payment_method import PaymentMethod
from domain.entities.session_context import SessionContext
from shared.models.operation_result import OperationResult
from shared.services.base_service import BaseService
from shared.services.document_codec import decode_payment, encode_payment
from shared.services.document_store import Filter

PAYMENTS = "payments"
DISCOUNTS = "discounts"


def _date_range(start: datetime, end: datetime) -> List[Filter]:
    # Предварительный отбор по epoch-ms; точную границу проверяет in_range после декодирования
    return [
        Filter("paymentDate", ">=", to_timestamp_ms(start)),
        Filter("paymentDate", "<", to_timestamp_ms(end) + 1),
    ]


class PaymentService(BaseService[Payment]):
    """Сервис для работы с выплатами."""

    collection = PAYMENTS

    def _decode(self, doc_id, data) -> Payment:
        return decode_payment(doc_id, data)

    def _encode(self, entity: Payment) -> dict:
        return encode_payment(entity)

    def _sort(self, entities: List[Payment]) -> List[Payment]:
        # Новые выплаты первыми
        return sorted(entities, key=lambda p: p.payment_date, reverse=True)

    async def add_payment(self, ctx: SessionContext, payment: Payment) -> OperationResult[str]:
        """
        Зарегистрировать выплату.

        Удержания, приложенные к выплате, помечаются идентификатором
        выплаты (applied_in_payment_id) в той же транзакции, что и запись
        выплаты.

        Args:
            ctx: Контекст пользователя
            payment: Выплата (id может быть пустым)

        Returns:
            OperationResult[str]: id созданной выплаты
        """
        async def operation():
            self._check_writer(ctx)
            payment_id = payment.id or uuid.uuid4().hex
            record = dataclasses.replace(
                payment,
                id=payment_id,
                created_at=self.now(),
                created_by=ctx.actor,
                discounts=tuple(
                    dataclasses.replace(d, applied_in_payment_id=payment_id) for d in payment.discounts
                ),
            )
            record.validate()

            batch = self.store.batch()
            batch.add(self.collection, self._encode(record), doc_id=payment_id)
            for discount in record.discounts:
                if discount.id:
                    batch.update_fields(DISCOUNTS, discount.id, {"appliedInPaymentId": payment_id}, missing_ok=True)
            await batch.commit()

            logger.info(
                "Выплата зарегистрирована",
                payment_id=payment_id,
                employee_id=record.employee_id,
                amount=str(record.amount),
                method=record.payment_method.value,
                created_by=ctx.actor,
            )
            return payment_id

        return await self._execute("add", operation)

    async def update_payment(self, ctx: SessionContext, payment: Payment) -> OperationResult[None]:
        async def operation():
            self._check_writer(ctx)
            payment.validate()
            await self._load(payment.id)
            await self.store.put(self.collection, payment.id, self._encode(payment))
            logger.info(
                "Выплата обновлена",
                payment_id=payment.id,
                status=payment.status.value,
                updated_by=ctx.actor,
            )

        return await self._execute("update", operation, document_id=payment.id)

    async def delete_payment(self, ctx: SessionContext, payment_id: str) -> OperationResult[None]:
        return await self._soft_delete(ctx, payment_id)

    async def get_payment(self, payment_id: str) -> OperationResult[Payment]:
        return await self._execute("get", lambda: self._load(payment_id), document_id=payment_id)

    async def list_payments(
        self,
        employee_id: Optional[str] = None,
        method: Optional[PaymentMethod] = None,
        status: Optional[PaymentStatus] = None,
    ) -> OperationResult[List[Payment]]:
        """
        Выплаты с необязательными фильтрами, от новых к старым.

        Способ и статус сравниваются после декодирования: неизвестное
        значение в документе читается как CASH или COMPLETED.
        """
        filters = []
        if employee_id is not None:
            filters.append(Filter("employeeId", "==", employee_id))

        async def operation():
            return [
                p for p in await self._list(*filters)
                if (method is None or p.payment_method == method)
                and (status is None or p.status == status)
            ]

        return await self._execute("list", operation)

    async def get_payments_by_employee(self, employee_id: str) -> OperationResult[List[Payment]]:
        return await self.list_payments(employee_id=employee_id)

    async def get_payments_by_method(self, method: PaymentMethod) -> OperationResult[List[Payment]]:
        return await self.list_payments(method=method)

    async def _list_in_range(self, start: datetime, end: datetime) -> List[Payment]:
        return [p for p in await self._list(*_date_range(start, end)) if in_range(p.payment_date, start, end)]

    async def get_payments_by_date_range(self, start: datetime, end: datetime) -> OperationResult[List[Payment]]:
        return await self._execute("list_by_date_range", lambda: self._list_in_range(start, end))

    async def get_payments_by_month(self, month: int, year: int) -> OperationResult[List[Payment]]:
        start, end = month_bounds(month, year, self.tz)
        return await self.get_payments_by_date_range(start, end)

    async def get_today_payments(self) -> OperationResult[List[Payment]]:
        """Выплаты за текущий день (любой статус)."""
        start, end = day_bounds(self.now(), self.tz)
        return await self.get_payments_by_date_range(start, end)

    async def get_pending_payments(self) -> OperationResult[List[Payment]]:
        """Ожидающие выплаты, от старых к новым."""
        async def operation():
            pending = [p for p in await self._list() if p.status == PaymentStatus.PENDING]
            return sorted(pending, key=lambda p: p.payment_date)

        return await self._execute("list_pending", operation)

    async def calculate_total_payments(self, start: datetime, end: datetime) -> OperationResult[Decimal]:
        """Сумма завершенных выплат за период."""
        async def operation():
            payments = await self._list_in_range(start, end)
            return sum(
                (p.amount for p in payments if p.status == PaymentStatus.COMPLETED),
                Decimal("0"),
            )

        return await self._execute("total", operation)

    async def calculate_monthly_total(self, month: int, year: int) -> OperationResult[Decimal]:
        start, end = month_bounds(month, year, self.tz)
        return await self.calculate_total_payments(start, end)

    def watch_payments(self) -> AsyncIterator[List[Payment]]:
        """Поток списков выплат (от новых к старым)."""
        return self._watch()
