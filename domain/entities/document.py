"""Модель документа документного хранилища."""

from sqlalchemy import Column, String, DateTime, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from domain.entities.base import Base


class DocumentRecord(Base):
    """
    Документ коллекции (сотрудники, выплаты, удержания, авансы, статистика).

    Содержимое хранится целиком в JSON, как в документной БД.
    Удаление всегда логическое: проставляется deleted_at.
    """

    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)

    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)

    # Метаданные
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    __table_args__ = (
        Index("idx_documents_collection_deleted", "collection", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<DocumentRecord(collection='{self.collection}', id='{self.id}')>"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
