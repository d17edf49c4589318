from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from directory.core.config import get_settings
from directory.services.errors import NotFoundError, StorageError
from directory.services.lifecycle import plan_lifecycle_changes
from directory.services.models import ActivityEventType, Badge, DirectorySnapshot, LifecycleStatus
from directory.services.profiles import ProfileUpdate

logger = logging.getLogger(__name__)


class RepositoryUnavailableError(StorageError):
    """Raised when the database is unavailable, not configured, or a read fails."""


_STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError)


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        command_timeout_seconds: float = 15.0,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout_seconds = command_timeout_seconds
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def fetch_snapshot(self, *, provider_id: int | None = None) -> DirectorySnapshot:
        """Read providers with every association in one repeatable-read, read-only transaction."""
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction(isolation="repeatable_read", readonly=True):
                    taken_at = await conn.fetchval("select now()")
                    providers = await conn.fetch(
                        """
                        select
                          p.id,
                          p.name,
                          p.phone,
                          p.whatsapp,
                          p.island::text as island,
                          p.status::text as status,
                          p.plan::text as plan,
                          p.trial_end_at,
                          p.lifecycle_status::text as lifecycle_status,
                          p.status_last_updated_at,
                          p.created_at,
                          p.contact_call_enabled,
                          p.contact_whatsapp_enabled,
                          p.contact_sms_enabled,
                          p.preferred_contact_method,
                          p.typical_hours,
                          p.emergency_calls_accepted
                        from providers p
                        where ($1::bigint is null or p.id = $1)
                        """,
                        provider_id,
                    )
                    badges = await conn.fetch(
                        """
                        select provider_id, badge::text as badge, assigned_by, notes, created_at
                        from provider_badges
                        where ($1::bigint is null or provider_id = $1)
                        """,
                        provider_id,
                    )
                    provider_categories = await conn.fetch(
                        """
                        select provider_id, category_id
                        from provider_categories
                        where ($1::bigint is null or provider_id = $1)
                        """,
                        provider_id,
                    )
                    provider_areas = await conn.fetch(
                        """
                        select provider_id, area_id
                        from provider_areas
                        where ($1::bigint is null or provider_id = $1)
                        """,
                        provider_id,
                    )
                    activity = await conn.fetch(
                        """
                        select provider_id, max(created_at) as created_at
                        from activity_events
                        where ($1::bigint is null or provider_id = $1)
                        group by provider_id
                        """,
                        provider_id,
                    )
                    areas = await conn.fetch("select id, name, island::text as island from areas")
                    categories = await conn.fetch("select id, name from categories")
        except _STORAGE_ERRORS as exc:
            raise RepositoryUnavailableError("provider snapshot read failed") from exc

        return DirectorySnapshot(
            taken_at=taken_at,
            providers=[dict(row) for row in providers],
            provider_badges=[dict(row) for row in badges],
            provider_categories=[dict(row) for row in provider_categories],
            provider_areas=[dict(row) for row in provider_areas],
            activity_events=[dict(row) for row in activity],
            areas=[dict(row) for row in areas],
            categories=[dict(row) for row in categories],
        )

    async def list_areas(self, *, island: str) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                "select id, name, island::text as island from areas where island = $1 order by name, id",
                island,
            )
        except _STORAGE_ERRORS as exc:
            raise RepositoryUnavailableError("area read failed") from exc
        return [dict(row) for row in rows]

    async def update_status(self, *, provider_id: int, status: str) -> None:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await self._lock_provider(conn, provider_id)
                    await conn.execute(
                        "update providers set status = $2, status_last_updated_at = now() where id = $1",
                        provider_id,
                        status,
                    )
                    await self._log_activity(conn, provider_id, ActivityEventType.STATUS_UPDATED)
        except _STORAGE_ERRORS as exc:
            raise RepositoryUnavailableError("provider status update failed") from exc

    async def update_profile(self, *, provider_id: int, update: ProfileUpdate) -> None:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    current = await conn.fetchrow(
                        """
                        select
                          contact_call_enabled,
                          contact_whatsapp_enabled,
                          contact_sms_enabled,
                          preferred_contact_method
                        from providers
                        where id = $1
                        for update
                        """,
                        provider_id,
                    )
                    if current is None:
                        raise NotFoundError("provider not found")
                    update.check_against(dict(current))

                    if update.fields:
                        # Column names come from the PROFILE_FIELDS whitelist checked in ProfileUpdate.
                        columns = list(update.fields)
                        assignments = ", ".join(f"{column} = ${index}" for index, column in enumerate(columns, start=2))
                        await conn.execute(
                            f"update providers set {assignments} where id = $1",
                            provider_id,
                            *(update.fields[column] for column in columns),
                        )

                    if update.category_ids is not None:
                        await conn.execute("delete from provider_categories where provider_id = $1", provider_id)
                        await conn.execute(
                            """
                            insert into provider_categories (provider_id, category_id)
                            select $1, c.id from categories c where c.id = any($2::bigint[])
                            """,
                            provider_id,
                            list(update.category_ids),
                        )

                    await conn.execute("delete from provider_areas where provider_id = $1", provider_id)
                    await conn.execute(
                        """
                        insert into provider_areas (provider_id, area_id)
                        select $1, a.id
                        from areas a
                        join providers p on p.id = $1
                        where a.id = any($2::bigint[])
                          and a.island = p.island
                        """,
                        provider_id,
                        list(update.area_ids),
                    )
                    await self._log_activity(conn, provider_id, ActivityEventType.PROFILE_UPDATED)
        except _STORAGE_ERRORS as exc:
            raise RepositoryUnavailableError("provider profile update failed") from exc

    async def set_verified(self, *, provider_id: int, verified: bool, assigned_by: str | None = None) -> None:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await self._lock_provider(conn, provider_id)
                    if verified:
                        await conn.execute(
                            """
                            insert into provider_badges (provider_id, badge, assigned_by)
                            values ($1, $2, $3)
                            on conflict (provider_id, badge) do nothing
                            """,
                            provider_id,
                            Badge.VERIFIED.value,
                            assigned_by,
                        )
                    else:
                        await conn.execute(
                            "delete from provider_badges where provider_id = $1 and badge = $2",
                            provider_id,
                            Badge.VERIFIED.value,
                        )
                    await conn.execute(
                        "update providers set status_last_updated_at = now() where id = $1",
                        provider_id,
                    )
                    await self._log_activity(conn, provider_id, ActivityEventType.VERIFIED)
        except _STORAGE_ERRORS as exc:
            raise RepositoryUnavailableError("provider verification update failed") from exc

    async def toggle_archived(self, *, provider_id: int) -> str:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    current = await self._lock_provider(conn, provider_id)
                    if current == LifecycleStatus.ARCHIVED.value:
                        new_status = LifecycleStatus.ACTIVE.value
                    else:
                        new_status = LifecycleStatus.ARCHIVED.value
                    await conn.execute(
                        "update providers set lifecycle_status = $2, status_last_updated_at = now() where id = $1",
                        provider_id,
                        new_status,
                    )
                    await self._log_activity(conn, provider_id, ActivityEventType.ARCHIVED)
        except _STORAGE_ERRORS as exc:
            raise RepositoryUnavailableError("provider archive toggle failed") from exc
        return new_status

    async def recompute_lifecycle(self, *, active_window_days: int, inactive_window_days: int) -> int:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    now = await conn.fetchval("select now()")
                    providers = await conn.fetch(
                        "select id, lifecycle_status::text as lifecycle_status from providers order by id for update"
                    )
                    activity = await conn.fetch(
                        "select provider_id, max(created_at) as created_at from activity_events group by provider_id"
                    )
                    changes = plan_lifecycle_changes(
                        providers=[dict(row) for row in providers],
                        activity_events=[dict(row) for row in activity],
                        now=now,
                        active_window_days=active_window_days,
                        inactive_window_days=inactive_window_days,
                    )
                    if changes:
                        await conn.executemany(
                            "update providers set lifecycle_status = $2, status_last_updated_at = $3 where id = $1",
                            [(change.provider_id, change.to_status.value, now) for change in changes],
                        )
        except _STORAGE_ERRORS as exc:
            raise RepositoryUnavailableError("lifecycle recompute failed") from exc

        logger.info("lifecycle recomputed changed=%s", len(changes))
        return len(changes)

    @staticmethod
    async def _lock_provider(conn: asyncpg.Connection, provider_id: int) -> str:
        current = await conn.fetchval(
            "select lifecycle_status::text from providers where id = $1 for update",
            provider_id,
        )
        if current is None:
            raise NotFoundError("provider not found")
        return current

    @staticmethod
    async def _log_activity(conn: asyncpg.Connection, provider_id: int, event_type: ActivityEventType) -> None:
        await conn.execute(
            "insert into activity_events (provider_id, event_type) values ($1, $2)",
            provider_id,
            event_type.value,
        )

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("PD_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout_seconds,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        command_timeout_seconds=settings.database_command_timeout_seconds,
    )
