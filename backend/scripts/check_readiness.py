#!/usr/bin/env python3
"""Run the engine's readiness checks from a shell (deploy hooks, container probes).

Prints one line per check and exits 0 when config, packages and the database
are all usable, 1 otherwise. Redis is reported but never blocks readiness.
"""
import asyncio
import sys
from pathlib import Path

# Ensure the backend package is importable when run as a script
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from ledger_engine.readiness import is_ready, run_all_checks


async def _report() -> int:
    checks = await run_all_checks()
    ready, summary = is_ready(checks)
    width = max(len(name) for name in summary)
    for name, msg in summary.items():
        flag = "OK" if checks[name][0] else "FAIL"
        print(f"  {name.ljust(width)}  {flag:<4}  {msg}")
    print("")
    print("Ledger engine: READY" if ready else "Ledger engine: NOT READY (a required check failed)")
    return 0 if ready else 1


def main() -> int:
    return asyncio.run(_report())


if __name__ == "__main__":
    sys.exit(main())
