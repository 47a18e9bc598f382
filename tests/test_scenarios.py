"""Tests for the scenario definitions, using an in-memory client."""

from __future__ import annotations

import sys
import uuid
from collections import Counter
from pathlib import Path

import pytest

# Add benchmarks to path for implementations
sys.path.insert(0, str(Path(__file__).parent.parent / "benchmarks"))

from implementations import BaseClientImplementation
from scenarios import (
    CONCURRENCY_LEVELS,
    HEAVY_READ_OPERATIONS,
    HEAVY_WRITE_BATCH,
    ClientWorkloads,
    UserFactory,
    UserIdCycle,
    build_registry,
)

from pg_benchmark.config import BenchmarkSettings
from pg_benchmark.harness import BenchmarkHarness
from pg_benchmark.models import BENCH_USER_PREFIX, HeavyWorkloadConfig, User
from pg_benchmark.registry import GROUP_ORDER, ScenarioGroup


class FakeClient(BaseClientImplementation):
    """Records calls instead of talking to PostgreSQL."""

    def __init__(self, name: str = "asyncpg", blocking: bool = False, seeded: int = 5) -> None:
        self.name = name
        self.blocking = blocking
        self.calls: Counter[str] = Counter()
        self.usernames: list[str] = []
        self.seed = [
            User(uuid.uuid4(), f"user_{i}", f"user_{i}@example.com", "First", "Last", 30) for i in range(seeded)
        ]
        self.looked_up: list[uuid.UUID] = []

    async def setup(self, database_url: str, pool_size: int = 10) -> None:
        self.calls["setup"] += 1

    async def close(self) -> None:
        self.calls["close"] += 1

    async def insert_user(self, user):
        self.calls["insert_user"] += 1
        self.usernames.append(user.username)
        return uuid.uuid4()

    async def select_user_by_id(self, user_id):
        self.calls["select_user_by_id"] += 1
        self.looked_up.append(user_id)
        return None

    async def select_users_limit(self, limit):
        self.calls["select_users_limit"] += 1
        return self.seed[:limit]

    async def select_users_filtered(self, min_age, max_age, limit):
        self.calls["select_users_filtered"] += 1
        return []

    async def update_user(self, user_id, first_name, last_name):
        self.calls["update_user"] += 1
        return True

    async def delete_user(self, user_id):
        self.calls["delete_user"] += 1
        return True

    async def insert_post(self, post):
        self.calls["insert_post"] += 1
        return uuid.uuid4()

    async def select_posts_with_user(self, limit):
        self.calls["select_posts_with_user"] += 1
        return []

    async def select_users_posts_comments(self, limit):
        self.calls["select_users_posts_comments"] += 1
        return []

    async def count_posts_per_user(self):
        self.calls["count_posts_per_user"] += 1
        return []

    async def insert_user_with_posts(self, user, posts):
        self.calls["insert_user_with_posts"] += 1
        self.calls["posts"] += len(posts)
        return uuid.uuid4()

    async def count_rows(self, table):
        return 0

    async def cleanup(self):
        self.calls["cleanup"] += 1
        return 0


@pytest.fixture
def settings():
    return BenchmarkSettings(warmup=0, max_samples=2, run_token="tok")


class TestRegistry:
    """Which scenarios are registered."""

    def test_every_group_for_every_library(self, settings):
        clients = {"asyncpg": FakeClient("asyncpg"), "psycopg": FakeClient("psycopg")}
        registry = build_registry(clients, settings)

        assert registry.groups() == list(GROUP_ORDER)
        per_library = Counter(s.library for s in registry)
        assert per_library["asyncpg"] == per_library["psycopg"] == 29

    def test_libraries_interleave_per_benchmark(self, settings):
        clients = {"asyncpg": FakeClient("asyncpg"), "psycopg": FakeClient("psycopg")}
        ids = [s.id for s in build_registry(clients, settings)]
        assert ids[:4] == [
            "insert_single_user/asyncpg",
            "insert_single_user/psycopg",
            "insert_batch_users/asyncpg/10",
            "insert_batch_users/psycopg/10",
        ]

    def test_scenario_shapes(self, settings):
        registry = build_registry({"asyncpg": FakeClient()}, settings)

        batch = registry.get("insert_batch_users/asyncpg/1000")
        assert batch.group is ScenarioGroup.INSERT
        assert batch.elements == 1000
        assert batch.mutates

        assert not registry.get("select_users_limit/asyncpg/100").mutates
        assert registry.get("select_user_by_id/asyncpg").setup is not None
        assert registry.get("select_user_by_id/asyncpg").iterations == 200

        for level in CONCURRENCY_LEVELS:
            assert registry.get(f"concurrent_reads/asyncpg/{level}").concurrency == level

        mixed = registry.get("concurrent_mixed_workload/asyncpg")
        assert (mixed.concurrency, mixed.ops_per_unit) == (50, 20)
        assert mixed.mutates

        assert [s.parameter for s in registry.select(pattern="transaction_insert")] == [1, 5, 10]

    def test_blocking_client_scenarios_run_on_threads(self, settings):
        registry = build_registry({"psycopg2": FakeClient("psycopg2", blocking=True)}, settings)
        assert all(s.threaded for s in registry)


class TestWorkloads:
    """What the workload functions do."""

    async def test_inserted_usernames_are_unique_and_tagged(self):
        client = FakeClient("psycopg")
        workloads = ClientWorkloads(client, "tok")

        await workloads.insert_single_user()()
        await workloads.insert_batch_users(10)()

        assert client.calls["insert_user"] == 11
        assert len(set(client.usernames)) == 11
        assert all(name.startswith(f"{BENCH_USER_PREFIX}tok_psycopg_") for name in client.usernames)

    async def test_user_ids_cycle_through_loaded_users(self):
        client = FakeClient(seeded=3)
        cycle = UserIdCycle(client)
        await cycle.load()
        assert [cycle.next() for _ in range(4)] == [u.id for u in client.seed] + [client.seed[0].id]

    async def test_empty_users_table(self):
        cycle = UserIdCycle(FakeClient(seeded=0))
        with pytest.raises(RuntimeError):
            await cycle.load()

    async def test_transaction_posts(self):
        client = FakeClient()
        await ClientWorkloads(client, "tok").insert_user_with_posts(5)()
        assert client.calls["insert_user_with_posts"] == 1
        assert client.calls["posts"] == 5

    async def test_heavy_mixed_workload(self):
        client = FakeClient()
        await ClientWorkloads(client, "tok").heavy_mixed_workload()()
        assert client.calls["insert_user"] == 20
        assert client.calls["select_users_limit"] == 80

    async def test_heavy_read_intensive(self):
        client = FakeClient()
        await ClientWorkloads(client, "tok").heavy_read_intensive()()
        quarter = HEAVY_READ_OPERATIONS // 4
        assert client.calls["select_users_limit"] == quarter
        assert client.calls["select_users_filtered"] == quarter
        assert client.calls["select_posts_with_user"] == quarter
        assert client.calls["count_posts_per_user"] == quarter

    async def test_heavy_write_intensive(self):
        client = FakeClient()
        await ClientWorkloads(client, "tok").heavy_write_intensive()()
        assert client.calls["insert_user"] == HEAVY_WRITE_BATCH
        assert client.calls["insert_post"] == HEAVY_WRITE_BATCH
        assert client.calls["update_user"] == HEAVY_WRITE_BATCH

    async def test_concurrent_mixed_operations_share_a_counter(self):
        client = FakeClient()
        task = ClientWorkloads(client, "tok").concurrent_mixed_operation()
        for _ in range(10):
            await task()
        assert client.calls["insert_user"] == 2
        assert client.calls["select_users_limit"] == 8

    def test_user_factory_batches(self):
        factory = UserFactory("t")
        names = [u.username for u in factory.batch(3)] + [factory.next().username]
        assert names == [f"{BENCH_USER_PREFIX}t_{i}" for i in range(4)]


class TestEndToEnd:
    """All scenarios through the harness."""

    async def test_full_run_against_fake_clients(self, settings):
        clients = {"asyncpg": FakeClient("asyncpg"), "psycopg2": FakeClient("psycopg2", blocking=True)}
        registry = build_registry(clients, settings)
        harness = BenchmarkHarness(
            registry,
            settings,
            connectors={name: lambda c=c: c.connected("postgresql://fake/db", 100) for name, c in clients.items()},
            cleanups={name: c.cleanup for name, c in clients.items()},
        )

        report = await harness.run()

        assert report.failures() == []
        assert len(report.results()) == len(registry)
        for client in clients.values():
            assert client.calls["setup"] == 1
            assert client.calls["close"] == 1
            assert client.calls["cleanup"] > 0


class TestReadWriteMix:
    """How mixed workloads interleave writes."""

    @pytest.mark.parametrize("ratio, writes", [(0.8, 20), (0.7, 30), (0.75, 25), (0.0, 100), (1.0, 0)])
    def test_write_share_matches_ratio(self, ratio, writes):
        mix = HeavyWorkloadConfig(mixed_read_write_ratio=ratio)
        assert sum(mix.is_write(i) for i in range(100)) == writes

    def test_writes_are_spread_out(self):
        mix = HeavyWorkloadConfig(mixed_read_write_ratio=0.7)
        for start in range(0, 90, 10):
            assert sum(mix.is_write(i) for i in range(start, start + 10)) == 3
