"""Сервис для работы с сотрудниками."""

import dataclasses
import uuid
from typing import AsyncIterator, List

from core.logging.logger import logger
from core.utils.timezone_helper import to_timestamp_ms
from domain.entities.employee import Employee
from domain.entities.session_context import SessionContext
from domain.errors import ValidationFailure
from shared.models.operation_result import OperationResult
from shared.services.base_service import BaseService
from shared.services.document_codec import decode_employee, encode_employee
from shared.services.document_store import Filter

EMPLOYEES = "employees"


class EmployeeService(BaseService[Employee]):
    """Сервис для работы с сотрудниками."""

    collection = EMPLOYEES

    def _decode(self, doc_id, data) -> Employee:
        return decode_employee(doc_id, data)

    def _encode(self, entity: Employee) -> dict:
        return encode_employee(entity)

    def _sort(self, entities: List[Employee]) -> List[Employee]:
        return sorted(entities, key=lambda e: e.name)

    async def _ensure_unique_dni(self, employee: Employee) -> None:
        """DNI уникален среди активных и неактивных сотрудников."""
        documents = await self.store.query(self.collection, Filter("dni", "==", employee.dni))
        if any(doc_id != employee.id for doc_id, _ in documents):
            raise ValidationFailure(
                f"Сотрудник с DNI {employee.dni} уже существует",
                details={"dni": employee.dni},
            )

    async def add_employee(self, ctx: SessionContext, employee: Employee) -> OperationResult[str]:
        """
        Добавить сотрудника.

        Args:
            ctx: Контекст пользователя
            employee: Новый сотрудник (id может быть пустым)

        Returns:
            OperationResult[str]: id созданного сотрудника
        """
        async def operation():
            self._check_writer(ctx)
            now = self.now()
            record = dataclasses.replace(
                employee,
                id=employee.id or uuid.uuid4().hex,
                created_at=now,
                updated_at=now,
                created_by=ctx.actor,
            )
            record.validate()
            await self._ensure_unique_dni(record)
            doc_id = await self.store.add(self.collection, self._encode(record), doc_id=record.id)
            logger.info("Сотрудник добавлен", employee_id=doc_id, created_by=ctx.actor)
            return doc_id

        return await self._execute("add", operation)

    async def update_employee(self, ctx: SessionContext, employee: Employee) -> OperationResult[None]:
        async def operation():
            self._check_writer(ctx)
            employee.validate()
            await self._load(employee.id)
            await self._ensure_unique_dni(employee)
            record = dataclasses.replace(employee, updated_at=self.now())
            await self.store.put(self.collection, record.id, self._encode(record))
            logger.info("Сотрудник обновлен", employee_id=record.id, updated_by=ctx.actor)

        return await self._execute("update", operation, document_id=employee.id)

    async def delete_employee(self, ctx: SessionContext, employee_id: str) -> OperationResult[None]:
        return await self._soft_delete(ctx, employee_id)

    async def get_employee(self, employee_id: str) -> OperationResult[Employee]:
        return await self._execute("get", lambda: self._load(employee_id), document_id=employee_id)

    async def get_all_employees(self) -> OperationResult[List[Employee]]:
        return await self._execute("list", self._list)

    async def _list_active(self, *filters: Filter) -> List[Employee]:
        # Отбор по is_active после декодирования: документ без поля считается активным
        return [e for e in await self._list(*filters) if e.is_active]

    async def get_active_employees(self) -> OperationResult[List[Employee]]:
        return await self._execute("list_active", self._list_active)

    async def search_employees(self, query: str) -> OperationResult[List[Employee]]:
        """
        Поиск по ФИО, DNI, должности и телефону без учета регистра.

        Пустой запрос возвращает всех сотрудников.
        """
        needle = query.strip().lower()

        async def operation():
            employees = await self._list()
            if not needle:
                return employees
            return [
                e for e in employees
                if needle in e.full_name.lower()
                or needle in e.dni.lower()
                or needle in e.position.lower()
                or needle in e.phone.lower()
            ]

        return await self._execute("search", operation)

    async def get_employees_by_position(self, position: str) -> OperationResult[List[Employee]]:
        """Активные сотрудники на должности."""
        return await self._execute(
            "list_by_position",
            lambda: self._list_active(Filter("position", "==", position)),
        )

    async def deactivate_employee(self, ctx: SessionContext, employee_id: str) -> OperationResult[None]:
        return await self._set_active(ctx, employee_id, False)

    async def reactivate_employee(self, ctx: SessionContext, employee_id: str) -> OperationResult[None]:
        return await self._set_active(ctx, employee_id, True)

    async def _set_active(self, ctx: SessionContext, employee_id: str, is_active: bool) -> OperationResult[None]:
        return await self._set_fields(
            ctx,
            employee_id,
            "activate" if is_active else "deactivate",
            isActive=is_active,
            updatedAt=to_timestamp_ms(self.now()),
        )

    def watch_employees(self) -> AsyncIterator[List[Employee]]:
        """Поток списков сотрудников (по имени)."""
        return self._watch()
