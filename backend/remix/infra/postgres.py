"""AsyncPG pool construction for the backend.

Pools are owned by whoever creates them (the Postgres store); there is no
module-level pool.
"""

from __future__ import annotations

import json

import asyncpg

from remix.settings import settings


async def _init_connection(conn: asyncpg.Connection) -> None:
	await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


async def create_pool(dsn: str | None = None) -> asyncpg.pool.Pool:
	# Force 127.0.0.1 instead of localhost to avoid IPv6 issues on Windows
	target = (dsn or settings.postgres_url).replace("localhost", "127.0.0.1")
	return await asyncpg.create_pool(
		dsn=target,
		min_size=settings.postgres_min_pool_size,
		max_size=settings.postgres_max_pool_size,
		init=_init_connection,
	)


async def close_pool(pool: asyncpg.pool.Pool | None) -> None:
	if pool is not None:
		await pool.close()
