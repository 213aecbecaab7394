"""PostgreSQL persistence for the social graph and messaging engine.

Schema lives in ``backend/migrations/0001_social_core.sql``.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import asyncpg

from remix.domain.chat.exceptions import ContentNotFound
from remix.domain.chat.models import Content, Message, ReadPosition
from remix.domain.groups.exceptions import ChatNotFound, GroupNotFound, GroupRequestAlreadySent, GroupRequestNotFound
from remix.domain.groups.models import Chat, Group, GroupRequest
from remix.domain.social.exceptions import (
    FriendRequestAlreadyFriends,
    FriendRequestAlreadySent,
    FriendRequestNotFound,
    FriendRequestNotParticipant,
    FriendRequestNotRecipient,
    UserMissing,
)
from remix.domain.social.models import FriendRequest, pair_key
from remix.domain.users.exceptions import EmailTaken, PhoneTaken, UsernameTaken
from remix.domain.users.models import User
from remix.infra import postgres
from remix.infra.store.base import AcceptOutcome

_USER_COLUMNS = "id, email, phone_number, username, name, description, icon_url, color, password_hash, created_at"
_GROUP_COLUMNS = "id, name, icon_url, description, is_direct_message, dm_user_low, dm_user_high, created_at"
_MESSAGE_SELECT = """
    SELECT m.id, m.seq, m.chat_id, m.user_id, m.created_at,
           c.id AS content_id, c.type AS content_type, c.data AS content_data, c.created_at AS content_created_at
    FROM messages m
    JOIN contents c ON c.id = m.content_id
"""

_USER_CONFLICTS = {
    "users_email_key": EmailTaken,
    "users_phone_number_key": PhoneTaken,
    "users_username_key": UsernameTaken,
}


def _row_to_message(row: asyncpg.Record) -> Message:
    return Message(
        id=str(row["id"]),
        seq=int(row["seq"]),
        chat_id=str(row["chat_id"]),
        user_id=str(row["user_id"]),
        content=Content.from_record(row, prefix="content_"),
        created_at=row["created_at"],
    )


def _like_pattern(phrase: str) -> str:
    escaped = phrase.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def _lock_pair(conn: asyncpg.Connection, low: str, high: str) -> None:
    # Serialises request creation and acceptance for one unordered pair until commit.
    await conn.execute("SELECT pg_advisory_xact_lock(hashtextextended($1::text || ':' || $2::text, 0))", low, high)


class PostgresStore:
    """Stores the graph in Postgres; invariants backed by constraints and row locks."""

    def __init__(self, pool: asyncpg.Pool | None = None, *, dsn: str | None = None) -> None:
        self._pool = pool
        self._dsn = dsn
        self._owns_pool = pool is None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("PostgresStore used before start()")
        return self._pool

    async def start(self) -> None:
        if self._pool is None:
            self._pool = await postgres.create_pool(self._dsn)

    async def stop(self) -> None:
        if self._owns_pool:
            await postgres.close_pool(self._pool)
            self._pool = None

    async def ping(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute("SELECT 1")

    # Users

    async def create_user(self, user: User) -> User:
        try:
            row = await self.pool.fetchrow(
                f"""
                INSERT INTO users (id, email, phone_number, username, name, description, icon_url, color, password_hash, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                RETURNING {_USER_COLUMNS}
                """,
                user.id,
                user.email,
                user.phone_number,
                user.username,
                user.name,
                user.description,
                user.icon_url,
                user.color,
                user.password_hash,
                user.created_at,
            )
        except asyncpg.UniqueViolationError as exc:
            error_cls = _USER_CONFLICTS.get(getattr(exc, "constraint_name", None) or "")
            if error_cls is None:
                raise
            raise error_cls() from exc
        return User.from_record(row)

    async def get_user(self, user_id: str) -> Optional[User]:
        row = await self.pool.fetchrow(f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1", user_id)
        return User.from_record(row) if row else None

    async def get_users(self, user_ids: Sequence[str]) -> list[User]:
        if not user_ids:
            return []
        rows = await self.pool.fetch(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = ANY($1::text[])",
            list(user_ids),
        )
        by_id = {str(row["id"]): User.from_record(row) for row in rows}
        return [by_id[user_id] for user_id in user_ids if user_id in by_id]

    async def find_user_by_email(self, email: str) -> Optional[User]:
        row = await self.pool.fetchrow(f"SELECT {_USER_COLUMNS} FROM users WHERE email = $1", email)
        return User.from_record(row) if row else None

    async def find_user_by_phone(self, phone_number: str) -> Optional[User]:
        row = await self.pool.fetchrow(f"SELECT {_USER_COLUMNS} FROM users WHERE phone_number = $1", phone_number)
        return User.from_record(row) if row else None

    async def search_users(self, phrase: str, *, limit: int) -> list[User]:
        rows = await self.pool.fetch(
            f"""
            SELECT {_USER_COLUMNS}
            FROM users
            WHERE name ILIKE $1 OR username ILIKE $1
            ORDER BY lower(COALESCE(username, name, '')), id
            LIMIT $2
            """,
            _like_pattern(phrase.strip()),
            limit,
        )
        return [User.from_record(row) for row in rows]

    # Friend requests and friendships

    async def create_friend_request(self, request: FriendRequest) -> FriendRequest:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                found = await conn.fetchval(
                    "SELECT COUNT(*) FROM users WHERE id = ANY($1::text[])",
                    [request.from_user_id, request.to_user_id],
                )
                if int(found or 0) != 2:
                    raise UserMissing()
                await _lock_pair(conn, *request.pair)
                friends = await conn.fetchval(
                    "SELECT 1 FROM friendships WHERE user_id = $1 AND friend_id = $2",
                    request.from_user_id,
                    request.to_user_id,
                )
                if friends:
                    raise FriendRequestAlreadyFriends()
                try:
                    row = await conn.fetchrow(
                        """
                        INSERT INTO friend_requests (id, from_user_id, to_user_id, message, created_at)
                        VALUES ($1, $2, $3, $4, $5)
                        RETURNING id, from_user_id, to_user_id, message, created_at
                        """,
                        request.id,
                        request.from_user_id,
                        request.to_user_id,
                        request.message,
                        request.created_at,
                    )
                except asyncpg.UniqueViolationError as exc:
                    raise FriendRequestAlreadySent() from exc
        return FriendRequest.from_record(row)

    async def get_friend_request(self, request_id: str) -> Optional[FriendRequest]:
        row = await self.pool.fetchrow(
            "SELECT id, from_user_id, to_user_id, message, created_at FROM friend_requests WHERE id = $1",
            request_id,
        )
        return FriendRequest.from_record(row) if row else None

    async def accept_friend_request(
        self,
        request_id: str,
        *,
        recipient_id: str,
        dm_group: Group,
        dm_chat: Chat,
    ) -> AcceptOutcome:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                pair = await conn.fetchrow(
                    "SELECT from_user_id, to_user_id FROM friend_requests WHERE id = $1",
                    request_id,
                )
                if pair is None:
                    raise FriendRequestNotFound()
                # Pair lock before the row lock, matching create_friend_request.
                await _lock_pair(conn, *pair_key(pair["from_user_id"], pair["to_user_id"]))
                row = await conn.fetchrow(
                    """
                    SELECT id, from_user_id, to_user_id, message, created_at
                    FROM friend_requests
                    WHERE id = $1
                    FOR UPDATE
                    """,
                    request_id,
                )
                if row is None:
                    raise FriendRequestNotFound()
                request = FriendRequest.from_record(row)
                if request.to_user_id != recipient_id:
                    raise FriendRequestNotRecipient()
                await conn.execute(
                    """
                    INSERT INTO friendships (user_id, friend_id, created_at)
                    VALUES ($1, $2, NOW()), ($2, $1, NOW())
                    ON CONFLICT (user_id, friend_id) DO NOTHING
                    """,
                    request.from_user_id,
                    request.to_user_id,
                )
                await conn.execute("DELETE FROM friend_requests WHERE id = $1", request_id)
                low, high = request.pair
                inserted = await conn.fetchrow(
                    f"""
                    INSERT INTO chat_groups (id, name, icon_url, description, is_direct_message, dm_user_low, dm_user_high, created_at)
                    VALUES ($1, $2, $3, $4, TRUE, $5, $6, $7)
                    ON CONFLICT (dm_user_low, dm_user_high) DO NOTHING
                    RETURNING {_GROUP_COLUMNS}
                    """,
                    dm_group.id,
                    dm_group.name,
                    dm_group.icon_url,
                    dm_group.description,
                    low,
                    high,
                    dm_group.created_at,
                )
                if inserted is None:
                    existing = await conn.fetchrow(
                        f"SELECT {_GROUP_COLUMNS} FROM chat_groups WHERE dm_user_low = $1 AND dm_user_high = $2",
                        low,
                        high,
                    )
                    return AcceptOutcome(request=request, group=Group.from_record(existing), dm_created=False)
                await self._insert_chat(conn, dm_chat)
                await conn.execute(
                    """
                    INSERT INTO group_members (group_id, user_id)
                    VALUES ($1, $2), ($1, $3)
                    ON CONFLICT DO NOTHING
                    """,
                    dm_group.id,
                    low,
                    high,
                )
        return AcceptOutcome(request=request, group=Group.from_record(inserted), dm_created=True)

    async def delete_friend_request(self, request_id: str, *, actor_id: str) -> FriendRequest:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    SELECT id, from_user_id, to_user_id, message, created_at
                    FROM friend_requests
                    WHERE id = $1
                    FOR UPDATE
                    """,
                    request_id,
                )
                if row is None:
                    raise FriendRequestNotFound()
                request = FriendRequest.from_record(row)
                if not request.involves(actor_id):
                    raise FriendRequestNotParticipant()
                await conn.execute("DELETE FROM friend_requests WHERE id = $1", request_id)
        return request

    async def list_incoming_friend_requests(self, user_id: str) -> list[FriendRequest]:
        rows = await self.pool.fetch(
            """
            SELECT id, from_user_id, to_user_id, message, created_at
            FROM friend_requests
            WHERE to_user_id = $1
            ORDER BY created_at DESC, id DESC
            """,
            user_id,
        )
        return [FriendRequest.from_record(row) for row in rows]

    async def list_friend_ids(self, user_id: str) -> list[str]:
        rows = await self.pool.fetch(
            "SELECT friend_id FROM friendships WHERE user_id = $1 ORDER BY created_at, friend_id",
            user_id,
        )
        return [str(row["friend_id"]) for row in rows]

    async def are_friends(self, user_id: str, other_id: str) -> bool:
        found = await self.pool.fetchval(
            "SELECT 1 FROM friendships WHERE user_id = $1 AND friend_id = $2",
            user_id,
            other_id,
        )
        return bool(found)

    # Groups, chats and membership

    @staticmethod
    async def _insert_chat(conn: asyncpg.Connection, chat: Chat) -> None:
        await conn.execute(
            "INSERT INTO chats (id, group_id, name, created_at) VALUES ($1, $2, $3, $4)",
            chat.id,
            chat.group_id,
            chat.name,
            chat.created_at,
        )

    async def create_group(self, group: Group, chat: Chat, member_ids: Sequence[str] = ()) -> Group:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    """
                    INSERT INTO chat_groups (id, name, icon_url, description, is_direct_message, created_at)
                    VALUES ($1, $2, $3, $4, FALSE, $5)
                    """,
                    group.id,
                    group.name,
                    group.icon_url,
                    group.description,
                    group.created_at,
                )
                await self._insert_chat(conn, chat)
                for member_id in member_ids:
                    await conn.execute(
                        "INSERT INTO group_members (group_id, user_id) VALUES ($1, $2) ON CONFLICT DO NOTHING",
                        group.id,
                        member_id,
                    )
        return group

    async def get_group(self, group_id: str) -> Optional[Group]:
        row = await self.pool.fetchrow(f"SELECT {_GROUP_COLUMNS} FROM chat_groups WHERE id = $1", group_id)
        return Group.from_record(row) if row else None

    async def find_dm_group(self, user_id: str, other_id: str) -> Optional[Group]:
        low, high = pair_key(user_id, other_id)
        row = await self.pool.fetchrow(
            f"SELECT {_GROUP_COLUMNS} FROM chat_groups WHERE dm_user_low = $1 AND dm_user_high = $2",
            low,
            high,
        )
        return Group.from_record(row) if row else None

    async def list_groups_for_user(self, user_id: str) -> list[Group]:
        rows = await self.pool.fetch(
            """
            SELECT g.id, g.name, g.icon_url, g.description, g.is_direct_message,
                   g.dm_user_low, g.dm_user_high, g.created_at
            FROM group_members gm
            JOIN chat_groups g ON g.id = gm.group_id
            WHERE gm.user_id = $1
            ORDER BY gm.position
            """,
            user_id,
        )
        return [Group.from_record(row) for row in rows]

    async def get_chat(self, chat_id: str) -> Optional[Chat]:
        row = await self.pool.fetchrow("SELECT id, group_id, name, created_at FROM chats WHERE id = $1", chat_id)
        return Chat.from_record(row) if row else None

    async def create_chat(self, chat: Chat) -> Chat:
        async with self.pool.acquire() as conn:
            try:
                await self._insert_chat(conn, chat)
            except asyncpg.ForeignKeyViolationError as exc:
                raise GroupNotFound() from exc
        return chat

    async def list_chats(self, group_id: str) -> list[Chat]:
        rows = await self.pool.fetch(
            "SELECT id, group_id, name, created_at FROM chats WHERE group_id = $1 ORDER BY created_at, id",
            group_id,
        )
        return [Chat.from_record(row) for row in rows]

    async def list_member_ids(self, group_id: str) -> list[str]:
        rows = await self.pool.fetch(
            "SELECT user_id FROM group_members WHERE group_id = $1 ORDER BY position",
            group_id,
        )
        return [str(row["user_id"]) for row in rows]

    async def is_member(self, group_id: str, user_id: str) -> bool:
        found = await self.pool.fetchval(
            "SELECT 1 FROM group_members WHERE group_id = $1 AND user_id = $2",
            group_id,
            user_id,
        )
        return bool(found)

    async def add_member(self, group_id: str, user_id: str) -> bool:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                if not await conn.fetchval("SELECT 1 FROM chat_groups WHERE id = $1", group_id):
                    raise GroupNotFound()
                if not await conn.fetchval("SELECT 1 FROM users WHERE id = $1", user_id):
                    raise UserMissing()
                added = await conn.fetchval(
                    """
                    INSERT INTO group_members (group_id, user_id)
                    VALUES ($1, $2)
                    ON CONFLICT DO NOTHING
                    RETURNING user_id
                    """,
                    group_id,
                    user_id,
                )
        return added is not None

    async def remove_member(self, group_id: str, user_id: str) -> bool:
        removed = await self.pool.fetchval(
            "DELETE FROM group_members WHERE group_id = $1 AND user_id = $2 RETURNING user_id",
            group_id,
            user_id,
        )
        return removed is not None

    async def create_group_request(self, record: GroupRequest) -> GroupRequest:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                if not await conn.fetchval("SELECT 1 FROM chat_groups WHERE id = $1", record.group_id):
                    raise GroupNotFound()
                user_ids = [user_id for user_id in (record.from_user_id, record.to_user_id) if user_id]
                found = await conn.fetchval("SELECT COUNT(*) FROM users WHERE id = ANY($1::text[])", user_ids)
                if int(found or 0) != len(set(user_ids)):
                    raise UserMissing()
                try:
                    row = await conn.fetchrow(
                        """
                        INSERT INTO group_requests (id, kind, from_user_id, to_user_id, group_id, message, created_at)
                        VALUES ($1, $2, $3, $4, $5, $6, $7)
                        RETURNING id, kind, from_user_id, to_user_id, group_id, message, created_at
                        """,
                        record.id,
                        record.kind.value,
                        record.from_user_id,
                        record.to_user_id,
                        record.group_id,
                        record.message,
                        record.created_at,
                    )
                except asyncpg.UniqueViolationError as exc:
                    raise GroupRequestAlreadySent() from exc
        return GroupRequest.from_record(row)

    async def get_group_request(self, request_id: str) -> Optional[GroupRequest]:
        row = await self.pool.fetchrow(
            """
            SELECT id, kind, from_user_id, to_user_id, group_id, message, created_at
            FROM group_requests
            WHERE id = $1
            """,
            request_id,
        )
        return GroupRequest.from_record(row) if row else None

    async def accept_group_request(self, request_id: str) -> Tuple[GroupRequest, bool]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    DELETE FROM group_requests
                    WHERE id = $1
                    RETURNING id, kind, from_user_id, to_user_id, group_id, message, created_at
                    """,
                    request_id,
                )
                if row is None:
                    raise GroupRequestNotFound()
                record = GroupRequest.from_record(row)
                added = await conn.fetchval(
                    """
                    INSERT INTO group_members (group_id, user_id)
                    VALUES ($1, $2)
                    ON CONFLICT DO NOTHING
                    RETURNING user_id
                    """,
                    record.group_id,
                    record.joining_user_id,
                )
        return record, added is not None

    # Messages and content

    async def _insert_message(self, conn: asyncpg.Connection, *, message_id: str, chat_id: str, user_id: str, content_id: str) -> None:
        # The chat row lock orders concurrent inserts, so created_at never regresses within a chat.
        locked = await conn.fetchval("SELECT id FROM chats WHERE id = $1 FOR UPDATE", chat_id)
        if locked is None:
            raise ChatNotFound()
        created_at = await conn.fetchval(
            """
            INSERT INTO messages (id, chat_id, user_id, content_id, created_at)
            VALUES ($1, $2, $3, $4, GREATEST(clock_timestamp(), (SELECT last_message_at FROM chats WHERE id = $2)))
            RETURNING created_at
            """,
            message_id,
            chat_id,
            user_id,
            content_id,
        )
        await conn.execute("UPDATE chats SET last_message_at = $2 WHERE id = $1", chat_id, created_at)

    async def _fetch_message(self, conn, message_id: str) -> Message:
        row = await conn.fetchrow(f"{_MESSAGE_SELECT} WHERE m.id = $1", message_id)
        return _row_to_message(row)

    async def create_message(self, *, message_id: str, chat_id: str, user_id: str, content: Content) -> Message:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    "INSERT INTO contents (id, type, data, created_at) VALUES ($1, $2, $3, $4)",
                    content.id,
                    content.type,
                    content.data,
                    content.created_at,
                )
                await self._insert_message(conn, message_id=message_id, chat_id=chat_id, user_id=user_id, content_id=content.id)
                return await self._fetch_message(conn, message_id)

    async def create_message_with_content(
        self,
        *,
        message_id: str,
        chat_id: str,
        user_id: str,
        content_id: str,
    ) -> Message:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                if not await conn.fetchval("SELECT 1 FROM contents WHERE id = $1", content_id):
                    raise ContentNotFound()
                await self._insert_message(conn, message_id=message_id, chat_id=chat_id, user_id=user_id, content_id=content_id)
                return await self._fetch_message(conn, message_id)

    async def get_message(self, message_id: str) -> Optional[Message]:
        row = await self.pool.fetchrow(f"{_MESSAGE_SELECT} WHERE m.id = $1", message_id)
        return _row_to_message(row) if row else None

    async def get_content(self, content_id: str) -> Optional[Content]:
        row = await self.pool.fetchrow("SELECT id, type, data, created_at FROM contents WHERE id = $1", content_id)
        return Content.from_record(row) if row else None

    async def list_chat_messages(self, chat_id: str) -> list[Message]:
        rows = await self.pool.fetch(
            f"{_MESSAGE_SELECT} WHERE m.chat_id = $1 ORDER BY m.created_at ASC, m.seq ASC",
            chat_id,
        )
        return [_row_to_message(row) for row in rows]

    async def list_user_messages(self, user_id: str) -> list[Message]:
        rows = await self.pool.fetch(
            f"""
            {_MESSAGE_SELECT}
            JOIN chats ch ON ch.id = m.chat_id
            JOIN group_members gm ON gm.group_id = ch.group_id AND gm.user_id = $1
            ORDER BY m.created_at DESC, m.seq DESC
            """,
            user_id,
        )
        return [_row_to_message(row) for row in rows]

    # Read positions

    async def upsert_read_position(self, user_id: str, message: Message) -> Tuple[ReadPosition, bool]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    INSERT INTO read_positions (user_id, chat_id, message_id, updated_at)
                    VALUES ($1, $2, $3, NOW())
                    ON CONFLICT (user_id, chat_id) DO UPDATE
                    SET message_id = EXCLUDED.message_id, updated_at = EXCLUDED.updated_at
                    WHERE NOT EXISTS (
                        SELECT 1 FROM messages cur
                        WHERE cur.id = read_positions.message_id
                          AND (cur.created_at, cur.seq) >= ($4::timestamptz, $5::bigint)
                    )
                    RETURNING user_id, chat_id, message_id, updated_at
                    """,
                    user_id,
                    message.chat_id,
                    message.id,
                    message.created_at,
                    message.seq,
                )
                if row is not None:
                    return ReadPosition(**dict(row)), True
                current = await conn.fetchrow(
                    """
                    SELECT user_id, chat_id, message_id, updated_at
                    FROM read_positions
                    WHERE user_id = $1 AND chat_id = $2
                    """,
                    user_id,
                    message.chat_id,
                )
        return ReadPosition(**dict(current)), False

    async def get_read_position(self, user_id: str, chat_id: str) -> Optional[ReadPosition]:
        row = await self.pool.fetchrow(
            "SELECT user_id, chat_id, message_id, updated_at FROM read_positions WHERE user_id = $1 AND chat_id = $2",
            user_id,
            chat_id,
        )
        return ReadPosition(**dict(row)) if row else None
