"""Readiness checks: config, packages, database, redis."""
import importlib
import logging

from sqlalchemy import text

logger = logging.getLogger(__name__)

# Result: (passed: bool, message: str)
CheckResult = tuple[bool, str]
ChecksDict = dict[str, CheckResult]


def check_config() -> CheckResult:
    """Load settings and read the keys the engine cannot start without."""
    try:
        from ledger_engine.settings import get_settings
        s = get_settings()
        _ = s.app_name
        _ = s.database_url
        if s.delivery_token_ttl_hours <= 0:
            return False, "delivery_token_ttl_hours must be positive"
        if s.surprise_box_cost <= 0:
            return False, "surprise_box_cost must be positive"
        if "|" in s.delivery_token_prefix or not s.delivery_token_prefix:
            return False, "delivery_token_prefix must be non-empty and must not contain '|'"
        return True, "ok"
    except Exception as e:
        return False, str(e)


_CRITICAL_MODULES = ("uvicorn", "sqlalchemy", "redis", "yaml", "ledger_engine.main")


def check_packages() -> CheckResult:
    """Import the modules the server cannot run without."""
    missing = []
    for name in _CRITICAL_MODULES:
        try:
            importlib.import_module(name)
        except ImportError as e:
            missing.append(f"{name} ({e})")
    if missing:
        return False, f"missing: {', '.join(missing)}"
    return True, "ok"


async def check_database() -> CheckResult:
    """Run a trivial query on the application engine."""
    try:
        from ledger_engine.infra.db.base import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True, "ok"
    except Exception as e:
        return False, str(e)


async def check_redis() -> CheckResult:
    """Ping Redis when notification publishing is enabled; skipped otherwise."""
    try:
        from ledger_engine.settings import get_settings
        if not get_settings().notifications_publish_enabled:
            return True, "skipped (publishing disabled)"
        from ledger_engine.infra.messaging.redis_bus import redis_bus
        await redis_bus.ping()
        return True, "ok"
    except Exception as e:
        return False, str(e)


async def run_all_checks() -> ChecksDict:
    """Run all readiness checks."""
    return {
        "config": check_config(),
        "packages": check_packages(),
        "database": await check_database(),
        "redis": await check_redis(),
    }


def is_ready(checks: ChecksDict) -> tuple[bool, dict[str, str]]:
    """
    True if all required checks pass. Redis is optional: notifications still reach the inbox without it.
    Returns (ready: bool, checks_summary: dict of name -> "ok" | "skipped ..." | error message).
    """
    required = {"config", "packages", "database"}
    summary = {name: msg for name, (_, msg) in checks.items()}
    all_required = all(checks[n][0] for n in required if n in checks)
    for name, (passed, msg) in checks.items():
        if not passed:
            logger.warning("Readiness check %s failed: %s", name, msg)
    return all_required, summary
