"""Database base configuration."""
import os
import ssl
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ledger_engine.settings import settings


def normalize_async_pg_url(url: str) -> str:
    """Ensure URL uses the asyncpg driver; hosting platforms often hand out postgresql:// (sync)."""
    u = (url or "").strip()
    if u.startswith("postgresql://"):
        return u.replace("postgresql://", "postgresql+asyncpg://", 1)
    return u


def async_pg_connect_args(url: str) -> dict:
    """asyncpg does not understand sslmode; translate sslmode=require into an ssl argument.

    Certificate verification is skipped unless DATABASE_SSL_VERIFY=true.
    """
    qs = parse_qs(urlparse(url).query, keep_blank_values=True)
    if qs.get("sslmode") != ["require"]:
        return {}
    if os.environ.get("DATABASE_SSL_VERIFY", "false").strip().lower() in ("true", "1"):
        return {"ssl": True}
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return {"ssl": ctx}


def strip_sslmode(url: str) -> str:
    parsed = urlparse(url)
    qs = parse_qs(parsed.query, keep_blank_values=True)
    qs.pop("sslmode", None)
    return urlunparse(parsed._replace(query=urlencode(qs, doseq=True)))


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Async engine for a database URL (postgres via asyncpg, or sqlite via aiosqlite)."""
    url = normalize_async_pg_url(url)
    if url.startswith("postgresql+asyncpg://"):
        return create_async_engine(
            strip_sslmode(url),
            connect_args=async_pg_connect_args(url),
            echo=echo,
            pool_pre_ping=True,
        )
    return create_async_engine(url, echo=echo)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.database_url, echo=settings.database_echo)
AsyncSessionLocal = build_sessionmaker(engine)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# Models are imported in ledger_engine.infra.db.models (and from main.py) to avoid
# a circular import: base.py -> models -> base.py
