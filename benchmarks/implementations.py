"""Different PostgreSQL client implementations for benchmarking."""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterator, Sequence
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

import asyncpg
import psycopg2
import psycopg2.extras
import psycopg2.pool
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from sqlalchemy import DateTime, ForeignKey, String, Text, delete, desc, func, select, text, update
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from pg_benchmark.logging_config import get_logger, log_performance
from pg_benchmark.models import BENCH_USER_PREFIX, Comment, NewPost, NewUser, Post, User

logger = get_logger(__name__)

TABLES = ("users", "posts", "comments", "tags", "post_tags")

USER_COLUMNS = "id, username, email, first_name, last_name, age, created_at, updated_at"

INSERT_USER = (
    "INSERT INTO users (username, email, first_name, last_name, age) "
    "VALUES ($1, $2, $3, $4, $5) RETURNING id"
)
SELECT_USER_BY_ID = f"SELECT {USER_COLUMNS} FROM users WHERE id = $1"
SELECT_USERS_LIMIT = f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC LIMIT $1"
SELECT_USERS_FILTERED = (
    f"SELECT {USER_COLUMNS} FROM users WHERE age >= $1 AND age <= $2 ORDER BY age, username LIMIT $3"
)
UPDATE_USER = "UPDATE users SET first_name = $1, last_name = $2, updated_at = NOW() WHERE id = $3"
DELETE_USER = "DELETE FROM users WHERE id = $1"
INSERT_POST = "INSERT INTO posts (user_id, title, content, status) VALUES ($1, $2, $3, $4) RETURNING id"
SELECT_POSTS_WITH_USER = """
    SELECT p.id AS post_id, p.title, p.content, p.status, p.view_count,
           p.created_at AS post_created_at, p.updated_at AS post_updated_at,
           u.id AS user_id, u.username, u.email, u.first_name, u.last_name, u.age,
           u.created_at AS user_created_at, u.updated_at AS user_updated_at
    FROM posts p
    JOIN users u ON p.user_id = u.id
    ORDER BY p.created_at DESC
    LIMIT $1
"""
SELECT_USERS_POSTS_COMMENTS = """
    SELECT u.id AS user_id, u.username, u.email, u.first_name, u.last_name, u.age,
           u.created_at AS user_created_at, u.updated_at AS user_updated_at,
           p.id AS post_id, p.title, p.content, p.status, p.view_count,
           p.created_at AS post_created_at, p.updated_at AS post_updated_at,
           c.id AS comment_id, c.user_id AS comment_user_id, c.content AS comment_content,
           c.created_at AS comment_created_at
    FROM users u
    JOIN posts p ON u.id = p.user_id
    JOIN comments c ON p.id = c.post_id
    ORDER BY u.created_at DESC, p.created_at DESC, c.created_at DESC
    LIMIT $1
"""
COUNT_POSTS_PER_USER = """
    SELECT u.id, COUNT(p.id) AS post_count
    FROM users u
    LEFT JOIN posts p ON u.id = p.user_id
    GROUP BY u.id
    ORDER BY post_count DESC
"""
CLEANUP = "DELETE FROM users WHERE username LIKE $1"
CLEANUP_PATTERN = f"{BENCH_USER_PREFIX}%"

_PLACEHOLDER = re.compile(r"\$\d+")


def pyformat(sql: str) -> str:
    """Rewrite ``$n`` placeholders to the ``%s`` style used by psycopg."""
    return _PLACEHOLDER.sub("%s", sql)


def count_sql(table: str) -> str:
    if table not in TABLES:
        raise ValueError(f"Unknown table: {table}")
    return f"SELECT COUNT(*) AS count FROM {table}"


def _user_params(user: NewUser) -> tuple[Any, ...]:
    return (user.username, user.email, user.first_name, user.last_name, user.age)


def _post_params(post: NewPost, user_id: UUID | None = None) -> tuple[Any, ...]:
    return (user_id or post.user_id, post.title, post.content, post.status)


def _posts_with_user(rows: Sequence[Any]) -> list[tuple[Post, User]]:
    return [(Post.from_row(r, "post_"), User.from_row(r, "user_")) for r in rows]


def _users_posts_comments(rows: Sequence[Any]) -> list[tuple[User, Post, Comment]]:
    return [(User.from_row(r, "user_"), Post.from_row(r, "post_"), Comment.from_row(r, "comment_")) for r in rows]


def _affected(status: str) -> int:
    """Row count from a command tag such as ``UPDATE 1``."""
    return int(status.split()[-1])


class BaseClientImplementation(ABC):
    """
    Base class for PostgreSQL client implementations.

    Every operation acquires a pooled connection and releases it before
    returning, so one instance can serve many concurrent callers.
    """

    name: str = ""
    # True when the methods block the calling thread instead of suspending.
    # Concurrent scenarios then run on worker threads.
    blocking: bool = False

    @abstractmethod
    async def setup(self, database_url: str, pool_size: int = 10) -> None:
        """Open the connection pool."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection pool."""
        pass

    @abstractmethod
    async def insert_user(self, user: NewUser) -> UUID:
        pass

    @abstractmethod
    async def select_user_by_id(self, user_id: UUID) -> User | None:
        pass

    @abstractmethod
    async def select_users_limit(self, limit: int) -> list[User]:
        pass

    @abstractmethod
    async def select_users_filtered(self, min_age: int, max_age: int, limit: int) -> list[User]:
        pass

    @abstractmethod
    async def update_user(self, user_id: UUID, first_name: str, last_name: str) -> bool:
        pass

    @abstractmethod
    async def delete_user(self, user_id: UUID) -> bool:
        pass

    @abstractmethod
    async def insert_post(self, post: NewPost) -> UUID:
        pass

    @abstractmethod
    async def select_posts_with_user(self, limit: int) -> list[tuple[Post, User]]:
        pass

    @abstractmethod
    async def select_users_posts_comments(self, limit: int) -> list[tuple[User, Post, Comment]]:
        pass

    @abstractmethod
    async def count_posts_per_user(self) -> list[tuple[UUID, int]]:
        pass

    @abstractmethod
    async def insert_user_with_posts(self, user: NewUser, posts: Sequence[NewPost]) -> UUID:
        """Insert a user and its posts in one transaction."""
        pass

    @abstractmethod
    async def count_rows(self, table: str) -> int:
        pass

    @abstractmethod
    async def cleanup(self) -> int:
        """Delete every benchmark-created user (posts and comments cascade)."""
        pass

    async def insert_users_batch(self, users: Sequence[NewUser]) -> list[UUID]:
        """Insert users one statement at a time, as every library does the same work."""
        return [await self.insert_user(user) for user in users]

    @asynccontextmanager
    async def connected(self, database_url: str, pool_size: int = 10) -> AsyncIterator[BaseClientImplementation]:
        """Hold the pool open for the duration of the block."""
        await self._open(database_url, pool_size)
        try:
            yield self
        finally:
            await self.close()

    async def _open(self, database_url: str, pool_size: int) -> None:
        await log_performance(logger, f"{self.name} setup")(self.setup)(database_url, pool_size)
        logger.info("%s pool ready (max %d connections)", self.name, pool_size)


class AsyncpgImplementation(BaseClientImplementation):
    """
    asyncpg with its built-in connection pool.

    The low-level async driver: binary protocol, prepared statement cache.
    """

    name = "asyncpg"

    def __init__(self) -> None:
        self._pool: asyncpg.Pool | None = None

    async def setup(self, database_url: str, pool_size: int = 10) -> None:
        self._pool = await asyncpg.create_pool(database_url, min_size=1, max_size=pool_size)

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> asyncpg.Pool:
        assert self._pool is not None, "setup() has not been called"
        return self._pool

    async def insert_user(self, user: NewUser) -> UUID:
        return await self.pool.fetchval(INSERT_USER, *_user_params(user))

    async def select_user_by_id(self, user_id: UUID) -> User | None:
        row = await self.pool.fetchrow(SELECT_USER_BY_ID, user_id)
        return User.from_row(row) if row else None

    async def select_users_limit(self, limit: int) -> list[User]:
        return [User.from_row(r) for r in await self.pool.fetch(SELECT_USERS_LIMIT, limit)]

    async def select_users_filtered(self, min_age: int, max_age: int, limit: int) -> list[User]:
        rows = await self.pool.fetch(SELECT_USERS_FILTERED, min_age, max_age, limit)
        return [User.from_row(r) for r in rows]

    async def update_user(self, user_id: UUID, first_name: str, last_name: str) -> bool:
        return _affected(await self.pool.execute(UPDATE_USER, first_name, last_name, user_id)) > 0

    async def delete_user(self, user_id: UUID) -> bool:
        return _affected(await self.pool.execute(DELETE_USER, user_id)) > 0

    async def insert_post(self, post: NewPost) -> UUID:
        return await self.pool.fetchval(INSERT_POST, *_post_params(post))

    async def select_posts_with_user(self, limit: int) -> list[tuple[Post, User]]:
        return _posts_with_user(await self.pool.fetch(SELECT_POSTS_WITH_USER, limit))

    async def select_users_posts_comments(self, limit: int) -> list[tuple[User, Post, Comment]]:
        return _users_posts_comments(await self.pool.fetch(SELECT_USERS_POSTS_COMMENTS, limit))

    async def count_posts_per_user(self) -> list[tuple[UUID, int]]:
        return [(r["id"], r["post_count"]) for r in await self.pool.fetch(COUNT_POSTS_PER_USER)]

    async def insert_user_with_posts(self, user: NewUser, posts: Sequence[NewPost]) -> UUID:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                user_id = await conn.fetchval(INSERT_USER, *_user_params(user))
                for post in posts:
                    await conn.execute(INSERT_POST, *_post_params(post, user_id))
        return user_id

    async def count_rows(self, table: str) -> int:
        return await self.pool.fetchval(count_sql(table))

    async def cleanup(self) -> int:
        return _affected(await self.pool.execute(CLEANUP, CLEANUP_PATTERN))


class PsycopgImplementation(BaseClientImplementation):
    """
    psycopg 3 in async mode with psycopg_pool.AsyncConnectionPool.

    Rows come back as dicts; a pooled connection commits when returned.
    """

    name = "psycopg"

    def __init__(self) -> None:
        self._pool: AsyncConnectionPool | None = None

    async def setup(self, database_url: str, pool_size: int = 10) -> None:
        self._pool = AsyncConnectionPool(
            database_url,
            min_size=1,
            max_size=pool_size,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        await self._pool.open(wait=True)

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> AsyncConnectionPool:
        assert self._pool is not None, "setup() has not been called"
        return self._pool

    async def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        async with self.pool.connection() as conn:
            cur = await conn.execute(pyformat(sql), params)
            return await cur.fetchall()

    async def _fetchone(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        async with self.pool.connection() as conn:
            cur = await conn.execute(pyformat(sql), params)
            return await cur.fetchone()

    async def _rowcount(self, sql: str, params: Sequence[Any] = ()) -> int:
        async with self.pool.connection() as conn:
            cur = await conn.execute(pyformat(sql), params)
            return cur.rowcount

    async def insert_user(self, user: NewUser) -> UUID:
        row = await self._fetchone(INSERT_USER, _user_params(user))
        assert row is not None
        return row["id"]

    async def select_user_by_id(self, user_id: UUID) -> User | None:
        row = await self._fetchone(SELECT_USER_BY_ID, (user_id,))
        return User.from_row(row) if row else None

    async def select_users_limit(self, limit: int) -> list[User]:
        return [User.from_row(r) for r in await self._fetchall(SELECT_USERS_LIMIT, (limit,))]

    async def select_users_filtered(self, min_age: int, max_age: int, limit: int) -> list[User]:
        rows = await self._fetchall(SELECT_USERS_FILTERED, (min_age, max_age, limit))
        return [User.from_row(r) for r in rows]

    async def update_user(self, user_id: UUID, first_name: str, last_name: str) -> bool:
        return await self._rowcount(UPDATE_USER, (first_name, last_name, user_id)) > 0

    async def delete_user(self, user_id: UUID) -> bool:
        return await self._rowcount(DELETE_USER, (user_id,)) > 0

    async def insert_post(self, post: NewPost) -> UUID:
        row = await self._fetchone(INSERT_POST, _post_params(post))
        assert row is not None
        return row["id"]

    async def select_posts_with_user(self, limit: int) -> list[tuple[Post, User]]:
        return _posts_with_user(await self._fetchall(SELECT_POSTS_WITH_USER, (limit,)))

    async def select_users_posts_comments(self, limit: int) -> list[tuple[User, Post, Comment]]:
        return _users_posts_comments(await self._fetchall(SELECT_USERS_POSTS_COMMENTS, (limit,)))

    async def count_posts_per_user(self) -> list[tuple[UUID, int]]:
        return [(r["id"], r["post_count"]) for r in await self._fetchall(COUNT_POSTS_PER_USER)]

    async def insert_user_with_posts(self, user: NewUser, posts: Sequence[NewPost]) -> UUID:
        async with self.pool.connection() as conn:
            async with conn.transaction():
                cur = await conn.execute(pyformat(INSERT_USER), _user_params(user))
                row = await cur.fetchone()
                assert row is not None
                user_id = row["id"]
                for post in posts:
                    await conn.execute(pyformat(INSERT_POST), _post_params(post, user_id))
        return user_id

    async def count_rows(self, table: str) -> int:
        row = await self._fetchone(count_sql(table))
        assert row is not None
        return row["count"]

    async def cleanup(self) -> int:
        return await self._rowcount(CLEANUP, (CLEANUP_PATTERN,))


class Psycopg2Implementation(BaseClientImplementation):
    """
    psycopg2 with ThreadedConnectionPool (synchronous).

    The methods are coroutines only to fit the common interface; they block
    the calling thread for the whole round trip, like any DB-API 2 driver.
    """

    name = "psycopg2"
    blocking = True

    def __init__(self) -> None:
        self._pool: psycopg2.pool.ThreadedConnectionPool | None = None
        self._slots: threading.BoundedSemaphore | None = None

    async def setup(self, database_url: str, pool_size: int = 10) -> None:
        psycopg2.extras.register_uuid()
        self._pool = psycopg2.pool.ThreadedConnectionPool(1, pool_size, database_url)
        # getconn raises once maxconn connections are out; callers queue here instead
        self._slots = threading.BoundedSemaphore(pool_size)

    async def close(self) -> None:
        if self._pool:
            self._pool.closeall()
            self._pool = None
            self._slots = None

    @contextmanager
    def _cursor(self) -> Iterator[psycopg2.extras.RealDictCursor]:
        """Pooled connection in a transaction: committed on success, rolled back on error."""
        assert self._pool is not None and self._slots is not None, "setup() has not been called"
        with self._slots:
            conn = self._pool.getconn()
            try:
                with conn:
                    with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                        yield cur
            finally:
                self._pool.putconn(conn)

    def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        with self._cursor() as cur:
            cur.execute(pyformat(sql), params)
            return cur.fetchall()

    def _fetchone(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        with self._cursor() as cur:
            cur.execute(pyformat(sql), params)
            return cur.fetchone()

    def _rowcount(self, sql: str, params: Sequence[Any] = ()) -> int:
        with self._cursor() as cur:
            cur.execute(pyformat(sql), params)
            return cur.rowcount

    async def insert_user(self, user: NewUser) -> UUID:
        row = self._fetchone(INSERT_USER, _user_params(user))
        assert row is not None
        return row["id"]

    async def select_user_by_id(self, user_id: UUID) -> User | None:
        row = self._fetchone(SELECT_USER_BY_ID, (user_id,))
        return User.from_row(row) if row else None

    async def select_users_limit(self, limit: int) -> list[User]:
        return [User.from_row(r) for r in self._fetchall(SELECT_USERS_LIMIT, (limit,))]

    async def select_users_filtered(self, min_age: int, max_age: int, limit: int) -> list[User]:
        return [User.from_row(r) for r in self._fetchall(SELECT_USERS_FILTERED, (min_age, max_age, limit))]

    async def update_user(self, user_id: UUID, first_name: str, last_name: str) -> bool:
        return self._rowcount(UPDATE_USER, (first_name, last_name, user_id)) > 0

    async def delete_user(self, user_id: UUID) -> bool:
        return self._rowcount(DELETE_USER, (user_id,)) > 0

    async def insert_post(self, post: NewPost) -> UUID:
        row = self._fetchone(INSERT_POST, _post_params(post))
        assert row is not None
        return row["id"]

    async def select_posts_with_user(self, limit: int) -> list[tuple[Post, User]]:
        return _posts_with_user(self._fetchall(SELECT_POSTS_WITH_USER, (limit,)))

    async def select_users_posts_comments(self, limit: int) -> list[tuple[User, Post, Comment]]:
        return _users_posts_comments(self._fetchall(SELECT_USERS_POSTS_COMMENTS, (limit,)))

    async def count_posts_per_user(self) -> list[tuple[UUID, int]]:
        return [(r["id"], r["post_count"]) for r in self._fetchall(COUNT_POSTS_PER_USER)]

    async def insert_user_with_posts(self, user: NewUser, posts: Sequence[NewPost]) -> UUID:
        with self._cursor() as cur:
            cur.execute(pyformat(INSERT_USER), _user_params(user))
            user_id = cur.fetchone()["id"]
            for post in posts:
                cur.execute(pyformat(INSERT_POST), _post_params(post, user_id))
        return user_id

    async def count_rows(self, table: str) -> int:
        row = self._fetchone(count_sql(table))
        assert row is not None
        return row["count"]

    async def cleanup(self) -> int:
        return self._rowcount(CLEANUP, (CLEANUP_PATTERN,))


# SQLAlchemy ORM mapping of the benchmark schema


class Base(DeclarativeBase):
    pass


class UserRecord(Base):
    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, server_default=text("uuid_generate_v4()"))
    username: Mapped[str] = mapped_column(String(50), unique=True)
    email: Mapped[str] = mapped_column(String(100), unique=True)
    first_name: Mapped[str] = mapped_column(String(50))
    last_name: Mapped[str] = mapped_column(String(50))
    age: Mapped[int | None]
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def to_model(self) -> User:
        return User(
            id=self.id,
            username=self.username,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            age=self.age,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PostRecord(Base):
    __tablename__ = "posts"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, server_default=text("uuid_generate_v4()"))
    user_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"))
    title: Mapped[str] = mapped_column(String(200))
    content: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), server_default="draft")
    view_count: Mapped[int] = mapped_column(server_default="0")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def to_model(self) -> Post:
        return Post(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            content=self.content,
            status=self.status,
            view_count=self.view_count,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class CommentRecord(Base):
    __tablename__ = "comments"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, server_default=text("uuid_generate_v4()"))
    post_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"))
    user_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"))
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def to_model(self) -> Comment:
        return Comment(
            id=self.id,
            post_id=self.post_id,
            user_id=self.user_id,
            content=self.content,
            created_at=self.created_at,
        )


def asyncpg_url(database_url: str) -> str:
    """SQLAlchemy URL for the asyncpg dialect (``postgres://`` is accepted too)."""
    url = make_url(database_url.replace("postgres://", "postgresql://", 1))
    return url.set(drivername="postgresql+asyncpg").render_as_string(hide_password=False)


class SqlAlchemyImplementation(BaseClientImplementation):
    """
    SQLAlchemy 2 asyncio ORM on the asyncpg dialect.

    Measures the ORM layer (unit of work, identity map, row -> object
    mapping) on top of the same driver as AsyncpgImplementation.
    """

    name = "sqlalchemy"

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    async def setup(self, database_url: str, pool_size: int = 10) -> None:
        self._engine = create_async_engine(asyncpg_url(database_url), pool_size=pool_size, max_overflow=0)
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)
        # Connect once so a bad URL fails here rather than in the first scenario
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    def session(self) -> AsyncSession:
        assert self._sessionmaker is not None, "setup() has not been called"
        return self._sessionmaker()

    async def insert_user(self, user: NewUser) -> UUID:
        async with self.session() as session:
            record = UserRecord(**vars(user))
            session.add(record)
            await session.commit()
            return record.id

    async def select_user_by_id(self, user_id: UUID) -> User | None:
        async with self.session() as session:
            record = await session.get(UserRecord, user_id)
            return record.to_model() if record else None

    async def select_users_limit(self, limit: int) -> list[User]:
        stmt = select(UserRecord).order_by(UserRecord.created_at.desc()).limit(limit)
        async with self.session() as session:
            return [r.to_model() for r in await session.scalars(stmt)]

    async def select_users_filtered(self, min_age: int, max_age: int, limit: int) -> list[User]:
        stmt = (
            select(UserRecord)
            .where(UserRecord.age >= min_age, UserRecord.age <= max_age)
            .order_by(UserRecord.age, UserRecord.username)
            .limit(limit)
        )
        async with self.session() as session:
            return [r.to_model() for r in await session.scalars(stmt)]

    async def update_user(self, user_id: UUID, first_name: str, last_name: str) -> bool:
        stmt = (
            update(UserRecord)
            .where(UserRecord.id == user_id)
            .values(first_name=first_name, last_name=last_name, updated_at=func.now())
        )
        async with self.session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0

    async def delete_user(self, user_id: UUID) -> bool:
        async with self.session() as session:
            result = await session.execute(delete(UserRecord).where(UserRecord.id == user_id))
            await session.commit()
            return result.rowcount > 0

    async def insert_post(self, post: NewPost) -> UUID:
        async with self.session() as session:
            record = PostRecord(**vars(post))
            session.add(record)
            await session.commit()
            return record.id

    async def select_posts_with_user(self, limit: int) -> list[tuple[Post, User]]:
        stmt = (
            select(PostRecord, UserRecord)
            .join(UserRecord, PostRecord.user_id == UserRecord.id)
            .order_by(PostRecord.created_at.desc())
            .limit(limit)
        )
        async with self.session() as session:
            result = await session.execute(stmt)
            return [(post.to_model(), user.to_model()) for post, user in result]

    async def select_users_posts_comments(self, limit: int) -> list[tuple[User, Post, Comment]]:
        stmt = (
            select(UserRecord, PostRecord, CommentRecord)
            .join(PostRecord, UserRecord.id == PostRecord.user_id)
            .join(CommentRecord, PostRecord.id == CommentRecord.post_id)
            .order_by(UserRecord.created_at.desc(), PostRecord.created_at.desc(), CommentRecord.created_at.desc())
            .limit(limit)
        )
        async with self.session() as session:
            result = await session.execute(stmt)
            return [(user.to_model(), post.to_model(), comment.to_model()) for user, post, comment in result]

    async def count_posts_per_user(self) -> list[tuple[UUID, int]]:
        post_count = func.count(PostRecord.id).label("post_count")
        stmt = (
            select(UserRecord.id, post_count)
            .outerjoin(PostRecord, UserRecord.id == PostRecord.user_id)
            .group_by(UserRecord.id)
            .order_by(desc(post_count))
        )
        async with self.session() as session:
            result = await session.execute(stmt)
            return [(user_id, count) for user_id, count in result]

    async def insert_user_with_posts(self, user: NewUser, posts: Sequence[NewPost]) -> UUID:
        async with self.session() as session:
            async with session.begin():
                record = UserRecord(**vars(user))
                session.add(record)
                await session.flush()
                session.add_all(
                    PostRecord(user_id=record.id, title=p.title, content=p.content, status=p.status) for p in posts
                )
            return record.id

    async def count_rows(self, table: str) -> int:
        async with self.session() as session:
            return (await session.execute(text(count_sql(table)))).scalar_one()

    async def cleanup(self) -> int:
        stmt = delete(UserRecord).where(UserRecord.username.like(CLEANUP_PATTERN))
        async with self.session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount


IMPLEMENTATIONS: dict[str, type[BaseClientImplementation]] = {
    "asyncpg": AsyncpgImplementation,
    "psycopg": PsycopgImplementation,
    "psycopg2": Psycopg2Implementation,
    "sqlalchemy": SqlAlchemyImplementation,
}


# Factory function
def create_implementation(name: str, **kwargs: Any) -> BaseClientImplementation:
    """Create an implementation by name."""
    if name not in IMPLEMENTATIONS:
        raise ValueError(f"Unknown implementation: {name}")
    return IMPLEMENTATIONS[name](**kwargs)
