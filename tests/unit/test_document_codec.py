"""Юнит-тесты преобразования документов хранилища."""

import pytest
from decimal import Decimal

from core.utils.timezone_helper import to_timestamp_ms
from domain.entities import AdvanceStatus, DiscountType, PaymentMethod, PaymentStatus
from domain.errors import ParseFailure
from shared.services.document_codec import (
    decode_advance,
    decode_discount,
    decode_employee,
    decode_payment,
    encode_dashboard_statistics,
    encode_employee,
    encode_payment,
)
from shared.services.dashboard_statistics import compute_dashboard_statistics


@pytest.fixture
def payment_doc(now):
    return {
        "employeeId": "e1",
        "employeeName": "Ana Quispe",
        "amount": "100.50",
        "paymentDate": to_timestamp_ms(now),
        "paymentMethod": "CASH",
        "status": "COMPLETED",
    }


class TestEnumFallback:
    """Неизвестные значения перечислений заменяются значениями по умолчанию."""

    def test_payment_method_and_status(self, payment_doc):
        payment = decode_payment("p1", {**payment_doc, "paymentMethod": "CRYPTO", "status": "LOST"})

        assert payment.payment_method == PaymentMethod.CASH
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.amount == Decimal("100.50")

    def test_discount_type(self, now):
        discount = decode_discount("d1", {"employeeId": "e1", "amount": "10", "type": "BONUS", "startDate": to_timestamp_ms(now)})
        assert discount.type == DiscountType.OTHER
        assert discount.is_active

    def test_advance_status(self, now):
        advance = decode_advance("a1", {"employeeId": "e1", "amount": 50, "status": 7, "requestDate": to_timestamp_ms(now)})
        assert advance.status == AdvanceStatus.PENDING
        assert advance.payment_method == PaymentMethod.CASH
        assert advance.amount == Decimal("50")

    def test_wallet_type(self, payment_doc):
        payment = decode_payment(
            "p1",
            {
                **payment_doc,
                "paymentMethod": "PLIN",
                "digitalWalletDetails": {"walletType": "UNKNOWN", "phoneNumber": "987", "operationNumber": "X1"},
            },
        )
        assert payment.digital_wallet_details.wallet_type == PaymentMethod.YAPE


class TestMalformedDocuments:
    """Документы, которые нельзя разобрать."""

    def test_missing_payment_date(self, payment_doc):
        del payment_doc["paymentDate"]
        with pytest.raises(ParseFailure):
            decode_payment("p1", payment_doc)

    @pytest.mark.parametrize("raw", [10 ** 18, -(10 ** 18), float("inf"), float("nan")])
    def test_out_of_range_payment_date(self, payment_doc, raw):
        with pytest.raises(ParseFailure):
            decode_payment("p1", {**payment_doc, "paymentDate": raw})

    def test_out_of_range_nested_date_is_skipped(self, payment_doc, now):
        payment = decode_payment(
            "p1",
            {
                **payment_doc,
                "discounts": [
                    {"id": "d1", "employeeId": "e1", "amount": "10", "startDate": to_timestamp_ms(now)},
                    {"id": "d2", "employeeId": "e1", "amount": "10", "startDate": 10 ** 18},
                ],
            },
        )
        assert [d.id for d in payment.discounts] == ["d1"]

    def test_bad_amount(self, payment_doc):
        with pytest.raises(ParseFailure):
            decode_payment("p1", {**payment_doc, "amount": "много"})

    def test_not_an_object(self):
        with pytest.raises(ParseFailure):
            decode_employee("e1", ["not", "a", "document"])

    def test_bank_transfer_without_details(self, payment_doc):
        with pytest.raises(ParseFailure):
            decode_payment("p1", {**payment_doc, "paymentMethod": "BANK_TRANSFER"})

    def test_foreign_details_are_dropped(self, payment_doc):
        payment = decode_payment(
            "p1",
            {**payment_doc, "bankDetails": {"bankName": "BCP", "operationNumber": "1"}},
        )
        assert payment.bank_details is None

    def test_bad_nested_discount_is_skipped(self, payment_doc, now):
        ms = to_timestamp_ms(now)
        payment = decode_payment(
            "p1",
            {
                **payment_doc,
                "discounts": [
                    {"id": "d1", "employeeId": "e1", "amount": "10", "startDate": ms},
                    {"id": "d2", "employeeId": "e1", "amount": "x", "startDate": ms},
                ],
            },
        )
        assert [d.id for d in payment.discounts] == ["d1"]


class TestEncoding:

    def test_employee_document_fields(self, make_employee):
        employee = make_employee("e1", "1500.75")
        document = encode_employee(employee)

        assert document["baseSalary"] == "1500.75"
        assert document["lastName"] == "Quispe"
        assert isinstance(document["startDate"], int)
        assert decode_employee("e1", document) == employee

    def test_payment_document_keeps_method_details(self, make_payment):
        document = encode_payment(make_payment(method=PaymentMethod.BANK_TRANSFER))

        assert document["paymentMethod"] == "BANK_TRANSFER"
        assert document["bankDetails"]["bankName"] == "BCP"
        assert document["digitalWalletDetails"] is None

    def test_dashboard_document(self, make_employee, make_payment, now, tz):
        stats = compute_dashboard_statistics([make_employee()], [make_payment()], now=now, tz=tz)
        document = encode_dashboard_statistics(stats)

        assert document["totalEmployees"] == 1
        assert document["currentMonthPayments"] == "1000"
        assert document["paymentMethodDistribution"][0]["method"] == "CASH"
        assert len(document["recentActivity"]) == 1
