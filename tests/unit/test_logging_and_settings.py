"""Юнит-тесты логирования и настроек."""

import json
import logging

import pytest

from core.config.settings import Settings
from core.database.connection import DatabaseManager
from core.logging.logger import JSONFormatter, StructuredLogger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestStructuredLogger:

    def test_context_goes_to_extra(self, caplog):
        caplog.set_level(logging.INFO, logger="payrolldesk.test")
        log = StructuredLogger("payrolldesk.test")

        log.info("Сотрудник добавлен", employee_id="e1", created_by=None)

        record = caplog.records[-1]
        assert record.getMessage() == "Сотрудник добавлен"
        assert record.employee_id == "e1"
        assert not hasattr(record, "created_by")

    def test_json_formatter_includes_context(self):
        record = logging.LogRecord("payrolldesk", logging.WARNING, __file__, 10, "Пропущен документ", (), None)
        record.collection = "payments"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["message"] == "Пропущен документ"
        assert entry["collection"] == "payments"

    def test_setup_logging_writes_json_file(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "payrolldesk.log"
        setup_logging(level="debug", log_format="json", log_file=str(log_file))

        StructuredLogger("payrolldesk.file").debug("Feed subscriber added", collection="employees")

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["collection"] == "employees"
        assert restore_root_logger.level == logging.DEBUG


class TestSettings:

    def test_asyncpg_url(self):
        settings = Settings(database_url="postgresql://payroll:secret@db:5432/payrolldesk")

        assert settings.async_database_url == "postgresql+asyncpg://payroll:secret@db:5432/payrolldesk"
        assert settings.default_timezone == "America/Lima"
        assert settings.currency_symbol == "S/"

    def test_sqlite_url_is_kept(self):
        manager = DatabaseManager("sqlite+aiosqlite:///payrolldesk.db")

        assert manager.database_url == "sqlite+aiosqlite:///payrolldesk.db"
