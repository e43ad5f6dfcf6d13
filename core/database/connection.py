"""Настройки подключения к базе данных."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from core.config.settings import settings
from core.logging.logger import logger
from domain.entities.base import Base


class DatabaseManager:
    """Менеджер подключений к базе данных."""

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self._database_url = database_url or settings.async_database_url
        self._echo = settings.database_echo if echo is None else echo
        self._async_engine: Optional[AsyncEngine] = None
        self._async_session_factory: Optional[async_sessionmaker] = None

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def async_engine(self) -> AsyncEngine:
        """Асинхронный движок базы данных."""
        if self._async_engine is None:
            self._async_engine = self._create_async_engine()
        return self._async_engine

    @property
    def async_session_factory(self) -> async_sessionmaker:
        """Фабрика асинхронных сессий."""
        if self._async_session_factory is None:
            self._async_session_factory = async_sessionmaker(
                bind=self.async_engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._async_session_factory

    def _create_async_engine(self) -> AsyncEngine:
        """Создание асинхронного движка."""
        if self._database_url.startswith("sqlite"):
            # SQLite: отдельное соединение на каждую сессию
            engine = create_async_engine(self._database_url, echo=self._echo, poolclass=NullPool)
        else:
            engine = create_async_engine(
                self._database_url,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                echo=self._echo,
                pool_pre_ping=True,
                pool_recycle=3600,
            )

        logger.info("Async database engine created", dialect=engine.dialect.name)
        return engine

    async def create_schema(self) -> None:
        """Создание таблиц документного хранилища."""
        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")

    async def close(self) -> None:
        """Закрытие всех подключений."""
        if self._async_engine is not None:
            await self._async_engine.dispose()
            self._async_engine = None
            self._async_session_factory = None
            logger.info("Async database engine disposed")

