"""Apply pending SQL migrations from backend/migrations in filename order."""

from __future__ import annotations

import asyncio
import pathlib
import sys

import asyncpg

BACKEND_DIR = pathlib.Path(__file__).resolve().parent.parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.append(str(BACKEND_DIR))

from remix.infra.postgres import close_pool, create_pool  # noqa: E402

MIGRATIONS_DIR = BACKEND_DIR / "migrations"


async def wait_for_db(retries: int = 30, delay: int = 2) -> asyncpg.pool.Pool:
    for i in range(retries):
        try:
            return await create_pool()
        except (OSError, asyncpg.CannotConnectNowError) as exc:
            print(f"Database not ready ({exc}); waiting {delay}s ({i + 1}/{retries})")
            await asyncio.sleep(delay)
    raise SystemExit("Could not connect to database after multiple retries")


async def main() -> None:
    paths = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not paths:
        raise SystemExit("no migration files found")

    pool = await wait_for_db()
    try:
        async with pool.acquire() as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version TEXT PRIMARY KEY,
                    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            )
            applied = {row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")}

            for path in paths:
                version = path.name.split("_", 1)[0]
                if version in applied:
                    continue
                async with conn.transaction():
                    await conn.execute(path.read_text())
                    await conn.execute(
                        "INSERT INTO schema_migrations (version) VALUES ($1) ON CONFLICT (version) DO NOTHING",
                        version,
                    )
                print(f"Applied {path.name}")
    finally:
        await close_pool(pool)


if __name__ == "__main__":
    asyncio.run(main())
