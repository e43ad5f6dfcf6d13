"""Сервис для работы с авансами."""

import dataclasses
import uuid
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, List

from core.logging.logger import logger
from core.utils.timezone_helper import to_timestamp_ms
from domain.entities.advance import Advance, AdvanceStatus, DeductionSchedule
from domain.entities.session_context import SessionContext
from domain.errors import ValidationFailure
from shared.models.operation_result import OperationResult
from shared.services.base_service import BaseService
from shared.services.deduction_aggregation import active_advance_amount
from shared.services.document_codec import decode_advance, encode_advance
from shared.services.document_store import Filter

ADVANCES = "advances"
ZERO = Decimal("0")


class AdvanceService(BaseService[Advance]):
    """
    Сервис для работы с авансами.

    Жизненный цикл: PENDING -> APPROVED -> PAID -> DEDUCTING -> COMPLETED;
    из PENDING аванс может быть отклонен (REJECTED).
    """

    collection = ADVANCES

    def _decode(self, doc_id, data) -> Advance:
        return decode_advance(doc_id, data)

    def _encode(self, entity: Advance) -> dict:
        return encode_advance(entity)

    def _sort(self, entities: List[Advance]) -> List[Advance]:
        return sorted(entities, key=lambda a: a.request_date, reverse=True)

    async def _save(self, advance: Advance) -> None:
        await self.store.put(self.collection, advance.id, self._encode(advance))

    async def _transition(self, advance_id: str, action: str, change) -> OperationResult[Advance]:
        """Загружает аванс, применяет изменение и сохраняет результат."""
        async def operation():
            current = await self._load(advance_id)
            updated = change(current)
            await self._save(updated)
            logger.info(
                "Статус аванса изменен",
                advance_id=advance_id,
                old_status=current.status.value,
                new_status=updated.status.value,
            )
            return updated

        return await self._execute(action, operation, document_id=advance_id)

    @staticmethod
    def _require_status(advance: Advance, *allowed: AdvanceStatus) -> None:
        if advance.status not in allowed:
            raise ValidationFailure(
                f"Недопустимый статус аванса: {advance.status.value}",
                details={"advance_id": advance.id, "status": advance.status.value},
            )

    async def add_advance(self, ctx: SessionContext, advance: Advance) -> OperationResult[str]:
        """
        Зарегистрировать заявку на аванс.

        Остаток к удержанию изначально равен сумме аванса.
        """
        async def operation():
            self._check_writer(ctx)
            record = dataclasses.replace(
                advance,
                id=advance.id or uuid.uuid4().hex,
                created_at=self.now(),
                created_by=ctx.actor,
                remaining_amount=advance.remaining_amount or advance.amount,
            )
            record.validate()
            doc_id = await self.store.add(self.collection, self._encode(record), doc_id=record.id)
            logger.info(
                "Аванс зарегистрирован",
                advance_id=doc_id,
                employee_id=record.employee_id,
                amount=str(record.amount),
            )
            return doc_id

        return await self._execute("add", operation)

    async def update_advance(self, ctx: SessionContext, advance: Advance) -> OperationResult[None]:
        async def operation():
            self._check_writer(ctx)
            advance.validate()
            await self._load(advance.id)
            await self._save(advance)
            logger.info("Аванс обновлен", advance_id=advance.id, updated_by=ctx.actor)

        return await self._execute("update", operation, document_id=advance.id)

    async def delete_advance(self, ctx: SessionContext, advance_id: str) -> OperationResult[None]:
        return await self._soft_delete(ctx, advance_id)

    async def get_advance(self, advance_id: str) -> OperationResult[Advance]:
        return await self._execute("get", lambda: self._load(advance_id), document_id=advance_id)

    async def get_advances_by_employee(self, employee_id: str) -> OperationResult[List[Advance]]:
        return await self._execute("list_by_employee", lambda: self._list(Filter("employeeId", "==", employee_id)))

    async def get_advances_by_status(self, status: AdvanceStatus) -> OperationResult[List[Advance]]:
        """Авансы в статусе; неизвестный статус в документе читается как PENDING."""
        async def operation():
            return [a for a in await self._list() if a.status == status]

        return await self._execute("list_by_status", operation)

    async def get_advances_by_date_range(self, start: datetime, end: datetime) -> OperationResult[List[Advance]]:
        return await self._execute(
            "list_by_date_range",
            lambda: self._list(
                Filter("requestDate", ">=", to_timestamp_ms(start)),
                Filter("requestDate", "<=", to_timestamp_ms(end)),
            ),
        )

    async def approve_advance(self, ctx: SessionContext, advance_id: str) -> OperationResult[Advance]:
        def change(advance: Advance) -> Advance:
            self._check_writer(ctx)
            self._require_status(advance, AdvanceStatus.PENDING)
            return dataclasses.replace(
                advance,
                status=AdvanceStatus.APPROVED,
                approved_date=self.now(),
                approved_by=ctx.actor,
            )

        return await self._transition(advance_id, "approve", change)

    async def reject_advance(self, ctx: SessionContext, advance_id: str) -> OperationResult[Advance]:
        def change(advance: Advance) -> Advance:
            self._check_writer(ctx)
            self._require_status(advance, AdvanceStatus.PENDING)
            return dataclasses.replace(advance, status=AdvanceStatus.REJECTED, approved_by=ctx.actor)

        return await self._transition(advance_id, "reject", change)

    async def mark_advance_paid(self, ctx: SessionContext, advance_id: str) -> OperationResult[Advance]:
        """Аванс выдан сотруднику; запускается график удержания."""
        def change(advance: Advance) -> Advance:
            self._check_writer(ctx)
            self._require_status(advance, AdvanceStatus.APPROVED)
            schedule = advance.deduction_schedule or DeductionSchedule(
                total_installments=1,
                installment_amount=advance.amount,
            )
            if schedule.installment_amount <= ZERO:
                schedule = dataclasses.replace(
                    schedule,
                    installment_amount=advance.amount / schedule.total_installments,
                )
            return dataclasses.replace(
                advance,
                status=AdvanceStatus.PAID,
                paid_date=self.now(),
                remaining_amount=advance.amount,
                deduction_schedule=dataclasses.replace(
                    schedule,
                    remaining_installments=schedule.total_installments,
                    start_deduction_date=schedule.start_deduction_date or self.now(),
                ),
            )

        return await self._transition(advance_id, "mark_paid", change)

    async def record_installment(self, ctx: SessionContext, advance_id: str) -> OperationResult[Advance]:
        """
        Учесть очередной взнос удержания аванса.

        Последний взнос (или нулевой остаток) завершает аванс.
        """
        def change(advance: Advance) -> Advance:
            self._check_writer(ctx)
            self._require_status(advance, AdvanceStatus.PAID, AdvanceStatus.DEDUCTING)
            schedule = advance.deduction_schedule or DeductionSchedule(
                total_installments=1,
                installment_amount=advance.remaining_amount,
                remaining_installments=1,
            )
            remaining = max(advance.remaining_amount - schedule.installment_amount, ZERO)
            installments_left = max(schedule.remaining_installments - 1, 0)
            done = remaining == ZERO or installments_left == 0
            return dataclasses.replace(
                advance,
                status=AdvanceStatus.COMPLETED if done else AdvanceStatus.DEDUCTING,
                remaining_amount=ZERO if done else remaining,
                is_fully_deducted=done,
                deduction_schedule=dataclasses.replace(schedule, remaining_installments=installments_left),
            )

        return await self._transition(advance_id, "installment", change)

    async def calculate_employee_advances(
        self,
        employee_id: str,
        start: datetime,
        end: datetime,
    ) -> OperationResult[Decimal]:
        """Сумма непогашенных авансов сотрудника, запрошенных в периоде."""
        async def operation():
            advances = await self._list(Filter("employeeId", "==", employee_id))
            return active_advance_amount(advances, employee_id, start, end)

        return await self._execute("employee_total", operation, employee_id=employee_id)

    def watch_advances(self) -> AsyncIterator[List[Advance]]:
        """Поток списков авансов (от новых к старым)."""
        return self._watch()
