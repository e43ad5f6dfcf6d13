"""Модуль базы данных."""

from .connection import DatabaseManager

__all__ = ["DatabaseManager"]
