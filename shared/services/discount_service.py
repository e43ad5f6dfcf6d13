"""Сервис для работы с удержаниями."""

import dataclasses
import uuid
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, List

from core.logging.logger import logger
from core.utils.timezone_helper import to_timestamp_ms
from domain.entities.discount import Discount, DiscountType
from domain.entities.session_context import SessionContext
from shared.models.operation_result import OperationResult
from shared.services.base_service import BaseService
from shared.services.deduction_aggregation import (
    active_discount_amount,
    expired_discounts,
    is_discount_applicable,
    recurring_discounts,
    total_discount_amount,
)
from shared.services.document_codec import decode_discount, encode_discount
from shared.services.document_store import Filter

DISCOUNTS = "discounts"


class DiscountService(BaseService[Discount]):
    """Сервис для работы с удержаниями из зарплаты."""

    collection = DISCOUNTS

    def _decode(self, doc_id, data) -> Discount:
        return decode_discount(doc_id, data)

    def _encode(self, entity: Discount) -> dict:
        return encode_discount(entity)

    def _sort(self, entities: List[Discount]) -> List[Discount]:
        return sorted(entities, key=lambda d: d.created_at, reverse=True)

    async def add_discount(self, ctx: SessionContext, discount: Discount) -> OperationResult[str]:
        async def operation():
            self._check_writer(ctx)
            record = dataclasses.replace(
                discount,
                id=discount.id or uuid.uuid4().hex,
                created_at=self.now(),
                created_by=ctx.actor,
            )
            record.validate()
            doc_id = await self.store.add(self.collection, self._encode(record), doc_id=record.id)
            logger.info(
                "Удержание добавлено",
                discount_id=doc_id,
                employee_id=record.employee_id,
                discount_type=record.type.value,
                amount=str(record.amount),
            )
            return doc_id

        return await self._execute("add", operation)

    async def update_discount(self, ctx: SessionContext, discount: Discount) -> OperationResult[None]:
        async def operation():
            self._check_writer(ctx)
            discount.validate()
            await self._load(discount.id)
            await self.store.put(self.collection, discount.id, self._encode(discount))
            logger.info("Удержание обновлено", discount_id=discount.id, updated_by=ctx.actor)

        return await self._execute("update", operation, document_id=discount.id)

    async def delete_discount(self, ctx: SessionContext, discount_id: str) -> OperationResult[None]:
        return await self._soft_delete(ctx, discount_id)

    async def get_discount(self, discount_id: str) -> OperationResult[Discount]:
        return await self._execute("get", lambda: self._load(discount_id), document_id=discount_id)

    async def get_discounts_by_employee(self, employee_id: str) -> OperationResult[List[Discount]]:
        return await self._execute("list_by_employee", lambda: self._list(Filter("employeeId", "==", employee_id)))

    async def get_active_discounts(self) -> OperationResult[List[Discount]]:
        """Активные удержания, срок которых не истек."""
        async def operation():
            now = self.now()
            return [d for d in await self._list() if is_discount_applicable(d, now)]

        return await self._execute("list_active", operation)

    async def get_discounts_by_type(self, discount_type: DiscountType) -> OperationResult[List[Discount]]:
        """Удержания типа; неизвестный тип в документе читается как OTHER."""
        async def operation():
            return [d for d in await self._list() if d.type == discount_type]

        return await self._execute("list_by_type", operation)

    async def get_discounts_by_date_range(self, start: datetime, end: datetime) -> OperationResult[List[Discount]]:
        """Удержания, начатые в периоде, от поздних к ранним."""
        async def operation():
            discounts = await self._list(
                Filter("startDate", ">=", to_timestamp_ms(start)),
                Filter("startDate", "<=", to_timestamp_ms(end)),
            )
            return sorted(discounts, key=lambda d: d.start_date, reverse=True)

        return await self._execute("list_by_date_range", operation)

    async def deactivate_discount(self, ctx: SessionContext, discount_id: str) -> OperationResult[None]:
        return await self._set_fields(ctx, discount_id, "deactivate", isActive=False)

    async def activate_discount(self, ctx: SessionContext, discount_id: str) -> OperationResult[None]:
        return await self._set_fields(ctx, discount_id, "activate", isActive=True)

    async def get_recurring_discounts(self) -> OperationResult[List[Discount]]:
        async def operation():
            return recurring_discounts(await self._list())

        return await self._execute("list_recurring", operation)

    async def get_expired_discounts(self) -> OperationResult[List[Discount]]:
        """Активные удержания с прошедшей датой окончания."""
        async def operation():
            expired = expired_discounts(await self._list(), self.now())
            return sorted(expired, key=lambda d: d.end_date, reverse=True)

        return await self._execute("list_expired", operation)

    async def calculate_total_discounts(self, start: datetime, end: datetime) -> OperationResult[Decimal]:
        """Сумма активных удержаний всех сотрудников за период."""
        async def operation():
            return total_discount_amount(await self._list(), start, end)

        return await self._execute("total", operation)

    async def calculate_employee_discounts(
        self,
        employee_id: str,
        start: datetime,
        end: datetime,
    ) -> OperationResult[Decimal]:
        """Сумма действующих удержаний сотрудника за период."""
        async def operation():
            discounts = await self._list(Filter("employeeId", "==", employee_id))
            return active_discount_amount(discounts, employee_id, start, end, self.now())

        return await self._execute("employee_total", operation, employee_id=employee_id)

    def watch_discounts(self) -> AsyncIterator[List[Discount]]:
        """Поток списков удержаний (от новых к старым)."""
        return self._watch()
