"""SQLAlchemy: инициализация `engine`, `SessionLocal` и базового класса моделей.

Использует строку подключения из `SP_DATABASE_URL`.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from SmartPRD.core.settings import settings

_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, echo=False, future=True, connect_args=_connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


class Base(DeclarativeBase):
    """Базовый declarative‑класс для ORM‑моделей SQLAlchemy."""
    pass


def init_db(bind=None) -> None:
    """Создать таблицы (если их ещё нет) для всех ORM‑моделей."""
    # models must be imported so that they are registered on Base.metadata
    from SmartPRD.models import orm  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
