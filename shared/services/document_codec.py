"""
Преобразование сущностей в документы хранилища и обратно.

Формат документа: ключи camelCase, даты в epoch-миллисекундах,
суммы строками Decimal, перечисления именами. При чтении неизвестное
значение перечисления заменяется значением по умолчанию, а документ,
который нельзя разобрать, дает ParseFailure.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar

from core.logging.logger import logger
from core.utils.timezone_helper import from_timestamp_ms, to_timestamp_ms
from domain.entities.advance import Advance, AdvanceStatus, DeductionSchedule
from domain.entities.discount import Discount, DiscountType
from domain.entities.employee import EmergencyContact, Employee
from domain.entities.payment import (
    BankDetails,
    DigitalWalletDetails,
    Payment,
    PaymentPeriod,
    PaymentStatus,
)
from domain.entities.payment_method import PaymentMethod
from domain.entities.statistics import DashboardStatistics
from domain.errors import ParseFailure, ValidationFailure

E = TypeVar("E", bound=Enum)
T = TypeVar("T")

Document = Dict[str, Any]


# ---------------------------------------------------------------------------
# Разбор отдельных полей
# ---------------------------------------------------------------------------

def decode_enum(enum_cls: Type[E], raw: Any, default: E) -> E:
    """Значение перечисления по имени; иначе явная ветка по умолчанию."""
    if isinstance(raw, str):
        try:
            return enum_cls[raw]
        except KeyError:
            pass
    return default


def _decimal(raw: Any, field: str) -> Decimal:
    if raw is None:
        return Decimal("0")
    if isinstance(raw, bool):
        raise ParseFailure(f"Поле {field}: ожидалось число", details={"field": field})
    try:
        value = Decimal(repr(raw)) if isinstance(raw, float) else Decimal(raw)
    except (InvalidOperation, TypeError, ValueError):
        raise ParseFailure(f"Поле {field}: некорректная сумма {raw!r}", details={"field": field})
    if not value.is_finite():
        raise ParseFailure(f"Поле {field}: некорректная сумма {raw!r}", details={"field": field})
    return value


def _timestamp(raw: Any, field: str):
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ParseFailure(f"Поле {field}: ожидалась метка времени", details={"field": field})
    try:
        return from_timestamp_ms(int(raw))
    except (OverflowError, ValueError):
        # inf, nan и значения вне диапазона datetime
        raise ParseFailure(f"Поле {field}: метка времени вне диапазона {raw!r}", details={"field": field})


def _optional_timestamp(raw: Any, field: str):
    if raw is None:
        return None
    return _timestamp(raw, field)


def _str(raw: Any, default: str = "") -> str:
    return raw if isinstance(raw, str) else default


def _optional_str(raw: Any) -> Optional[str]:
    return raw if isinstance(raw, str) else None


def _bool(raw: Any, default: bool) -> bool:
    return raw if isinstance(raw, bool) else default


def _int(raw: Any, default: int) -> int:
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    return default


def _mapping(raw: Any) -> Optional[Mapping[str, Any]]:
    return raw if isinstance(raw, Mapping) else None


def _ms(value) -> Optional[int]:
    return to_timestamp_ms(value) if value is not None else None


def _require_mapping(data: Any, collection: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ParseFailure(f"Документ {collection} не является объектом")
    return data


# ---------------------------------------------------------------------------
# Сотрудник
# ---------------------------------------------------------------------------

def encode_employee(employee: Employee) -> Document:
    contact = employee.emergency_contact
    return {
        "id": employee.id,
        "dni": employee.dni,
        "name": employee.name,
        "lastName": employee.last_name,
        "position": employee.position,
        "baseSalary": str(employee.base_salary),
        "phone": employee.phone,
        "address": employee.address,
        "email": employee.email,
        "startDate": _ms(employee.start_date),
        "isActive": employee.is_active,
        "bankAccount": employee.bank_account,
        "emergencyContact": {
            "name": contact.name,
            "phone": contact.phone,
            "relationship": contact.relationship,
        } if contact else None,
        "notes": employee.notes,
        "createdAt": _ms(employee.created_at),
        "updatedAt": _ms(employee.updated_at),
        "createdBy": employee.created_by,
    }


def decode_employee(doc_id: str, data: Any) -> Employee:
    data = _require_mapping(data, "employees")
    start_date = _timestamp(data.get("startDate"), "startDate")
    created_at = _optional_timestamp(data.get("createdAt"), "createdAt") or start_date
    contact = _mapping(data.get("emergencyContact"))
    return Employee(
        id=doc_id,
        dni=_str(data.get("dni")),
        name=_str(data.get("name")),
        last_name=_str(data.get("lastName")),
        position=_str(data.get("position")),
        base_salary=_decimal(data.get("baseSalary"), "baseSalary"),
        phone=_str(data.get("phone")),
        address=_str(data.get("address")),
        email=_str(data.get("email")),
        start_date=start_date,
        is_active=_bool(data.get("isActive"), True),
        bank_account=_str(data.get("bankAccount")),
        emergency_contact=EmergencyContact(
            name=_str(contact.get("name")),
            phone=_str(contact.get("phone")),
            relationship=_str(contact.get("relationship")),
        ) if contact is not None else None,
        notes=_str(data.get("notes")),
        created_at=created_at,
        updated_at=_optional_timestamp(data.get("updatedAt"), "updatedAt") or created_at,
        created_by=_str(data.get("createdBy")),
    )


# ---------------------------------------------------------------------------
# Удержание
# ---------------------------------------------------------------------------

def encode_discount(discount: Discount) -> Document:
    return {
        "id": discount.id,
        "employeeId": discount.employee_id,
        "employeeName": discount.employee_name,
        "amount": str(discount.amount),
        "type": discount.type.name,
        "reason": discount.reason,
        "description": discount.description,
        "isRecurring": discount.is_recurring,
        "startDate": _ms(discount.start_date),
        "endDate": _ms(discount.end_date),
        "isActive": discount.is_active,
        "appliedInPaymentId": discount.applied_in_payment_id,
        "createdAt": _ms(discount.created_at),
        "createdBy": discount.created_by,
    }


def decode_discount(doc_id: str, data: Any) -> Discount:
    data = _require_mapping(data, "discounts")
    start_date = _timestamp(data.get("startDate"), "startDate")
    return Discount(
        id=doc_id,
        employee_id=_str(data.get("employeeId")),
        employee_name=_str(data.get("employeeName")),
        amount=_decimal(data.get("amount"), "amount"),
        type=decode_enum(DiscountType, data.get("type"), DiscountType.OTHER),
        reason=_str(data.get("reason")),
        description=_str(data.get("description")),
        is_recurring=_bool(data.get("isRecurring"), False),
        start_date=start_date,
        end_date=_optional_timestamp(data.get("endDate"), "endDate"),
        is_active=_bool(data.get("isActive"), True),
        applied_in_payment_id=_optional_str(data.get("appliedInPaymentId")),
        created_at=_optional_timestamp(data.get("createdAt"), "createdAt") or start_date,
        created_by=_str(data.get("createdBy")),
    )


# ---------------------------------------------------------------------------
# Аванс
# ---------------------------------------------------------------------------

def encode_advance(advance: Advance) -> Document:
    schedule = advance.deduction_schedule
    return {
        "id": advance.id,
        "employeeId": advance.employee_id,
        "employeeName": advance.employee_name,
        "amount": str(advance.amount),
        "requestDate": _ms(advance.request_date),
        "approvedDate": _ms(advance.approved_date),
        "paidDate": _ms(advance.paid_date),
        "reason": advance.reason,
        "notes": advance.notes,
        "status": advance.status.name,
        "paymentMethod": advance.payment_method.name,
        "deductionSchedule": {
            "totalInstallments": schedule.total_installments,
            "installmentAmount": str(schedule.installment_amount),
            "remainingInstallments": schedule.remaining_installments,
            "startDeductionDate": _ms(schedule.start_deduction_date),
        } if schedule else None,
        "remainingAmount": str(advance.remaining_amount),
        "isFullyDeducted": advance.is_fully_deducted,
        "createdAt": _ms(advance.created_at),
        "approvedBy": advance.approved_by,
        "createdBy": advance.created_by,
    }


def decode_advance(doc_id: str, data: Any) -> Advance:
    data = _require_mapping(data, "advances")
    request_date = _timestamp(data.get("requestDate"), "requestDate")
    schedule = _mapping(data.get("deductionSchedule"))
    return Advance(
        id=doc_id,
        employee_id=_str(data.get("employeeId")),
        employee_name=_str(data.get("employeeName")),
        amount=_decimal(data.get("amount"), "amount"),
        request_date=request_date,
        approved_date=_optional_timestamp(data.get("approvedDate"), "approvedDate"),
        paid_date=_optional_timestamp(data.get("paidDate"), "paidDate"),
        reason=_str(data.get("reason")),
        notes=_str(data.get("notes")),
        status=decode_enum(AdvanceStatus, data.get("status"), AdvanceStatus.PENDING),
        payment_method=decode_enum(PaymentMethod, data.get("paymentMethod"), PaymentMethod.CASH),
        deduction_schedule=DeductionSchedule(
            total_installments=_int(schedule.get("totalInstallments"), 1),
            installment_amount=_decimal(schedule.get("installmentAmount"), "installmentAmount"),
            remaining_installments=_int(schedule.get("remainingInstallments"), 0),
            start_deduction_date=_optional_timestamp(schedule.get("startDeductionDate"), "startDeductionDate"),
        ) if schedule is not None else None,
        remaining_amount=_decimal(data.get("remainingAmount"), "remainingAmount"),
        is_fully_deducted=_bool(data.get("isFullyDeducted"), False),
        created_at=_optional_timestamp(data.get("createdAt"), "createdAt") or request_date,
        approved_by=_str(data.get("approvedBy")),
        created_by=_str(data.get("createdBy")),
    )


# ---------------------------------------------------------------------------
# Выплата
# ---------------------------------------------------------------------------

def encode_payment(payment: Payment) -> Document:
    bank = payment.bank_details
    wallet = payment.digital_wallet_details
    return {
        "id": payment.id,
        "employeeId": payment.employee_id,
        "employeeName": payment.employee_name,
        "amount": str(payment.amount),
        "paymentDate": _ms(payment.payment_date),
        "paymentPeriod": {
            "month": payment.payment_period.month,
            "year": payment.payment_period.year,
            "description": payment.payment_period.description,
        },
        "paymentMethod": payment.payment_method.name,
        "bankDetails": {
            "bankName": bank.bank_name,
            "accountNumber": bank.account_number,
            "operationNumber": bank.operation_number,
            "transferDate": _ms(bank.transfer_date),
        } if bank else None,
        "digitalWalletDetails": {
            "walletType": wallet.wallet_type.name,
            "phoneNumber": wallet.phone_number,
            "operationNumber": wallet.operation_number,
            "transactionId": wallet.transaction_id,
        } if wallet else None,
        "discounts": [encode_discount(d) for d in payment.discounts],
        "advances": [encode_advance(a) for a in payment.advances],
        "notes": payment.notes,
        "status": payment.status.name,
        "createdAt": _ms(payment.created_at),
        "createdBy": payment.created_by,
    }


def _decode_nested(items: Any, decoder: Callable[[str, Any], T], kind: str, payment_id: str) -> List[T]:
    """Вложенные снимки: битые элементы отбрасываются."""
    result: List[T] = []
    if not isinstance(items, list):
        return result
    for item in items:
        item_id = _str(item.get("id")) if isinstance(item, Mapping) else ""
        try:
            result.append(decoder(item_id, item))
        except (ParseFailure, ValidationFailure) as e:
            logger.warning(
                "Skipped malformed nested snapshot",
                kind=kind,
                payment_id=payment_id,
                reason=str(e),
            )
    return result


def decode_payment(doc_id: str, data: Any) -> Payment:
    data = _require_mapping(data, "payments")
    payment_date = _timestamp(data.get("paymentDate"), "paymentDate")
    method = decode_enum(PaymentMethod, data.get("paymentMethod"), PaymentMethod.CASH)
    period = _mapping(data.get("paymentPeriod")) or {}

    # Реквизиты, не относящиеся к способу выплаты, игнорируются
    bank = _mapping(data.get("bankDetails")) if method == PaymentMethod.BANK_TRANSFER else None
    wallet = _mapping(data.get("digitalWalletDetails")) if method.is_digital_wallet else None

    try:
        return Payment(
            id=doc_id,
            employee_id=_str(data.get("employeeId")),
            employee_name=_str(data.get("employeeName")),
            amount=_decimal(data.get("amount"), "amount"),
            payment_date=payment_date,
            payment_period=PaymentPeriod(
                month=_int(period.get("month"), 0),
                year=_int(period.get("year"), 0),
                description=_str(period.get("description")),
            ),
            payment_method=method,
            bank_details=BankDetails(
                bank_name=_str(bank.get("bankName")),
                account_number=_str(bank.get("accountNumber")),
                operation_number=_str(bank.get("operationNumber")),
                transfer_date=_optional_timestamp(bank.get("transferDate"), "transferDate"),
            ) if bank is not None else None,
            digital_wallet_details=DigitalWalletDetails(
                wallet_type=decode_enum(PaymentMethod, wallet.get("walletType"), PaymentMethod.YAPE),
                phone_number=_str(wallet.get("phoneNumber")),
                operation_number=_str(wallet.get("operationNumber")),
                transaction_id=_str(wallet.get("transactionId")),
            ) if wallet is not None else None,
            discounts=tuple(_decode_nested(data.get("discounts"), decode_discount, "discount", doc_id)),
            advances=tuple(_decode_nested(data.get("advances"), decode_advance, "advance", doc_id)),
            notes=_str(data.get("notes")),
            status=decode_enum(PaymentStatus, data.get("status"), PaymentStatus.COMPLETED),
            created_at=_optional_timestamp(data.get("createdAt"), "createdAt") or payment_date,
            created_by=_str(data.get("createdBy")),
        )
    except ValidationFailure as e:
        raise ParseFailure(f"Документ выплаты {doc_id} нарушает инвариант: {e.message}") from e


# ---------------------------------------------------------------------------
# Статистика дашборда (копия для прогрева)
# ---------------------------------------------------------------------------

def encode_dashboard_statistics(stats: DashboardStatistics) -> Document:
    comparison = stats.monthly_comparison
    return {
        "totalPendingAmount": str(stats.total_pending_amount),
        "currentMonthPayments": str(stats.current_month_payments),
        "totalEmployees": stats.total_employees,
        "todayPayments": stats.today_payments,
        "monthlyComparison": {
            "currentMonth": {
                "month": comparison.current_month.month,
                "year": comparison.current_month.year,
                "totalPayments": str(comparison.current_month.total_payments),
                "paymentCount": comparison.current_month.payment_count,
            },
            "previousMonth": {
                "month": comparison.previous_month.month,
                "year": comparison.previous_month.year,
                "totalPayments": str(comparison.previous_month.total_payments),
                "paymentCount": comparison.previous_month.payment_count,
            },
            "percentageChange": str(comparison.percentage_change),
        },
        "paymentMethodDistribution": [
            {
                "method": item.method.name,
                "count": item.count,
                "totalAmount": str(item.total_amount),
                "percentage": str(item.percentage),
            }
            for item in stats.payment_method_distribution
        ],
        "recentActivity": [
            {
                "id": item.id,
                "type": item.type.name,
                "title": item.title,
                "description": item.description,
                "amount": str(item.amount) if item.amount is not None else None,
                "employeeName": item.employee_name,
                "timestamp": _ms(item.timestamp),
            }
            for item in stats.recent_activity
        ],
    }
