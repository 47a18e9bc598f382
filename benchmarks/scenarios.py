"""
Benchmark scenarios for every client implementation.

Each benchmark is registered once per library, in report order, so
the same workload can be compared across libraries under one name.
"""

from __future__ import annotations

import itertools
from collections.abc import Mapping
from typing import Any, Callable
from uuid import UUID

from implementations import BaseClientImplementation

from pg_benchmark.concurrency import Workload
from pg_benchmark.config import BenchmarkSettings
from pg_benchmark.models import BenchmarkSizes, HeavyWorkloadConfig, NewPost, NewUser
from pg_benchmark.registry import ScenarioGroup, ScenarioRegistry, scenario_id

# Age window of the filtered select
MIN_AGE = 25
MAX_AGE = 55

READ_LIMIT = 50
HEAVY_READ_OPERATIONS = 200
HEAVY_WRITE_BATCH = 50
CONCURRENCY_LEVELS = (10, 50, 100)
CONCURRENT_MIXED_OPS_PER_TASK = 20
TRANSACTION_POST_COUNTS = (1, 5, 10)


class UserFactory:
    """Hands out fresh NewUser inputs; safe to call from several threads."""

    def __init__(self, token: str) -> None:
        self.token = token
        self._counter = itertools.count()

    def next(self) -> NewUser:
        return NewUser.generate(next(self._counter), self.token)

    def batch(self, size: int) -> list[NewUser]:
        return [self.next() for _ in range(size)]


class UserIdCycle:
    """Existing user ids, loaded once per scenario and cycled through."""

    def __init__(self, impl: BaseClientImplementation, count: int = 100) -> None:
        self.impl = impl
        self.count = count
        self.ids: list[UUID] = []
        self._position = itertools.count()

    async def load(self) -> None:
        users = await self.impl.select_users_limit(self.count)
        if not users:
            raise RuntimeError("users table is empty; load the seed data first")
        self.ids = [user.id for user in users]

    def next(self) -> UUID:
        return self.ids[next(self._position) % len(self.ids)]


class ClientWorkloads:
    """Workload functions of one client implementation."""

    def __init__(
        self,
        impl: BaseClientImplementation,
        run_token: str,
        heavy: HeavyWorkloadConfig | None = None,
    ) -> None:
        self.impl = impl
        self.library = impl.name
        self.heavy = heavy or HeavyWorkloadConfig()
        self.users = UserFactory(f"{run_token}_{impl.name}")
        self.user_ids = UserIdCycle(impl)
        self._operations = itertools.count()

    # ==================== Insert ====================

    def insert_single_user(self) -> Workload:
        """Benchmark: Insert one user."""

        async def task() -> None:
            await self.impl.insert_user(self.users.next())

        return task

    def insert_batch_users(self, size: int) -> Workload:
        """Benchmark: Insert ``size`` users, one statement each."""

        async def task() -> None:
            await self.impl.insert_users_batch(self.users.batch(size))

        return task

    # ==================== Select ====================

    def select_user_by_id(self) -> Workload:
        """Benchmark: Primary key lookup."""

        async def task() -> None:
            await self.impl.select_user_by_id(self.user_ids.next())

        return task

    def select_users_limit(self, limit: int) -> Workload:
        """Benchmark: Newest ``limit`` users."""

        async def task() -> None:
            await self.impl.select_users_limit(limit)

        return task

    def select_users_filtered(self, limit: int) -> Workload:
        """Benchmark: Users in an age range, ordered, limited."""

        async def task() -> None:
            await self.impl.select_users_filtered(MIN_AGE, MAX_AGE, limit)

        return task

    # ==================== Update ====================

    def update_user(self) -> Workload:
        """Benchmark: Update names of an existing user."""

        async def task() -> None:
            await self.impl.update_user(self.user_ids.next(), "UpdatedFirst", "UpdatedLast")

        return task

    # ==================== Join / aggregate ====================

    def join_posts_users(self, limit: int) -> Workload:
        """Benchmark: Posts joined with their author."""

        async def task() -> None:
            await self.impl.select_posts_with_user(limit)

        return task

    def join_users_posts_comments(self, limit: int) -> Workload:
        """Benchmark: Users, posts and comments in one three-table join."""

        async def task() -> None:
            await self.impl.select_users_posts_comments(limit)

        return task

    def count_posts_per_user(self) -> Workload:
        """Benchmark: Post count per user (LEFT JOIN + GROUP BY)."""

        async def task() -> None:
            await self.impl.count_posts_per_user()

        return task

    # ==================== Transaction ====================

    def insert_user_with_posts(self, post_count: int) -> Workload:
        """Benchmark: User plus ``post_count`` posts in one transaction."""
        posts = [NewPost.generate(None, i) for i in range(post_count)]

        async def task() -> None:
            await self.impl.insert_user_with_posts(self.users.next(), posts)

        return task

    # ==================== Concurrent ====================

    def concurrent_read(self) -> Workload:
        """Benchmark: One pooled read; run by many units at once."""

        async def task() -> None:
            await self.impl.select_users_limit(READ_LIMIT)

        return task

    def concurrent_mixed_operation(self) -> Workload:
        """Benchmark: One pooled read or write, interleaved by a shared counter."""

        async def task() -> None:
            if self.heavy.is_write(next(self._operations)):
                await self.impl.insert_user(self.users.next())
            else:
                await self.impl.select_users_limit(READ_LIMIT)

        return task

    # ==================== Heavy ====================

    def heavy_mixed_workload(self) -> Workload:
        """Benchmark: Sequential mix of reads and writes."""

        async def task() -> None:
            for i in range(self.heavy.operations_per_connection):
                if self.heavy.is_write(i):
                    await self.impl.insert_user(self.users.next())
                else:
                    await self.impl.select_users_limit(READ_LIMIT)

        return task

    def heavy_read_intensive(self) -> Workload:
        """Benchmark: Rotating through four read queries."""

        async def task() -> None:
            for i in range(HEAVY_READ_OPERATIONS):
                kind = i % 4
                if kind == 0:
                    await self.impl.select_users_limit(100)
                elif kind == 1:
                    await self.impl.select_users_filtered(MIN_AGE, MAX_AGE, READ_LIMIT)
                elif kind == 2:
                    await self.impl.select_posts_with_user(READ_LIMIT)
                else:
                    await self.impl.count_posts_per_user()

        return task

    def heavy_write_intensive(self) -> Workload:
        """Benchmark: Insert a user, add a post, update the user; repeated."""

        async def task() -> None:
            for i in range(HEAVY_WRITE_BATCH):
                user_id = await self.impl.insert_user(self.users.next())
                await self.impl.insert_post(NewPost.generate(user_id, i))
                await self.impl.update_user(user_id, "Modified", "Name")

        return task


def build_registry(
    implementations: Mapping[str, BaseClientImplementation],
    settings: BenchmarkSettings,
    sizes: BenchmarkSizes | None = None,
    heavy: HeavyWorkloadConfig | None = None,
) -> ScenarioRegistry:
    """Register every benchmark for every implementation, in report order."""
    sizes = sizes or BenchmarkSizes()
    heavy = heavy or HeavyWorkloadConfig()
    workloads = [ClientWorkloads(impl, settings.run_token, heavy) for impl in implementations.values()]
    registry = ScenarioRegistry()

    def add(
        name: str,
        label: str,
        group: ScenarioGroup,
        make: Callable[[ClientWorkloads], Workload],
        iterations: int,
        parameter: int | None = None,
        *,
        needs_user_ids: bool = False,
        **fields: Any,
    ) -> None:
        for w in workloads:
            registry.add(
                id=scenario_id(name, w.library, parameter),
                label=label,
                group=group,
                workload=make(w),
                iterations=iterations,
                warmup=settings.warmup,
                name=name,
                library=w.library,
                parameter=parameter,
                threaded=w.impl.blocking,
                setup=w.user_ids.load if needs_user_ids else None,
                **fields,
            )

    add("insert_single_user", "Insert single user", ScenarioGroup.INSERT,
        lambda w: w.insert_single_user(), 100, mutates=True)
    for size in sizes.standard():
        add("insert_batch_users", f"Insert {size} users", ScenarioGroup.INSERT,
            lambda w, size=size: w.insert_batch_users(size), 50, size, elements=size, mutates=True)

    add("select_user_by_id", "Select user by id", ScenarioGroup.SELECT,
        lambda w: w.select_user_by_id(), 200, needs_user_ids=True)
    for size in sizes.standard():
        add("select_users_limit", f"Select {size} users", ScenarioGroup.SELECT,
            lambda w, size=size: w.select_users_limit(size), 100, size, elements=size)
    for size in sizes.standard():
        add("select_users_filtered", f"Select up to {size} users by age", ScenarioGroup.SELECT,
            lambda w, size=size: w.select_users_filtered(size), 100, size, elements=size)

    add("update_user", "Update user", ScenarioGroup.UPDATE,
        lambda w: w.update_user(), 100, needs_user_ids=True)

    for size in sizes.standard():
        add("join_posts_users", f"Join posts and users ({size})", ScenarioGroup.JOIN,
            lambda w, size=size: w.join_posts_users(size), 50, size, elements=size)
    for size in sizes.standard():
        add("join_users_posts_comments", f"Join users, posts and comments ({size})", ScenarioGroup.JOIN,
            lambda w, size=size: w.join_users_posts_comments(size), 30, size, elements=size)

    add("aggregate_count_posts_per_user", "Count posts per user", ScenarioGroup.AGGREGATE,
        lambda w: w.count_posts_per_user(), 50)

    for count in TRANSACTION_POST_COUNTS:
        add("transaction_insert_user_with_posts", f"Insert user with {count} posts", ScenarioGroup.TRANSACTION,
            lambda w, count=count: w.insert_user_with_posts(count), 30, count, mutates=True)

    for level in CONCURRENCY_LEVELS:
        add("concurrent_reads", f"{level} concurrent reads", ScenarioGroup.CONCURRENT,
            lambda w: w.concurrent_read(), 20, level, concurrency=level, elements=level)
    add("concurrent_mixed_workload", f"{heavy.concurrent_connections} tasks x {CONCURRENT_MIXED_OPS_PER_TASK} mixed ops",
        ScenarioGroup.CONCURRENT, lambda w: w.concurrent_mixed_operation(), 15,
        concurrency=heavy.concurrent_connections, ops_per_unit=CONCURRENT_MIXED_OPS_PER_TASK,
        elements=heavy.concurrent_connections * CONCURRENT_MIXED_OPS_PER_TASK, mutates=True)

    add("heavy_mixed_workload", f"{heavy.operations_per_connection} mixed operations", ScenarioGroup.HEAVY,
        lambda w: w.heavy_mixed_workload(), 20, elements=heavy.operations_per_connection, mutates=True)
    add("heavy_read_intensive", f"{HEAVY_READ_OPERATIONS} read operations", ScenarioGroup.HEAVY,
        lambda w: w.heavy_read_intensive(), 30, elements=HEAVY_READ_OPERATIONS)
    add("heavy_write_intensive", f"{HEAVY_WRITE_BATCH} insert/post/update rounds", ScenarioGroup.HEAVY,
        lambda w: w.heavy_write_intensive(), 20, elements=HEAVY_WRITE_BATCH * 3, mutates=True)

    return registry
