"""Row models shared by every client implementation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from fractions import Fraction
from typing import Any
from uuid import UUID

# Usernames of every row the benchmarks insert start with this prefix;
# cleanup deletes by it.
BENCH_USER_PREFIX = "bench_user_"


@dataclass
class User:
    id: UUID
    username: str
    email: str
    first_name: str
    last_name: str
    age: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any], prefix: str = "") -> User:
        """Build from a mapping row; ``prefix`` selects aliased join columns."""
        return cls(
            id=row[f"{prefix}id"],
            username=row["username"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            age=row["age"],
            created_at=row[f"{prefix}created_at"],
            updated_at=row[f"{prefix}updated_at"],
        )


@dataclass
class Post:
    id: UUID
    user_id: UUID
    title: str
    content: str
    status: str
    view_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any], prefix: str = "") -> Post:
        return cls(
            id=row[f"{prefix}id"],
            user_id=row["user_id"],
            title=row["title"],
            content=row["content"],
            status=row["status"],
            view_count=row["view_count"],
            created_at=row[f"{prefix}created_at"],
            updated_at=row[f"{prefix}updated_at"],
        )


@dataclass
class Comment:
    id: UUID
    post_id: UUID
    user_id: UUID
    content: str
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any], prefix: str = "") -> Comment:
        return cls(
            id=row[f"{prefix}id"],
            post_id=row["post_id"],
            user_id=row[f"{prefix}user_id"],
            content=row[f"{prefix}content"],
            created_at=row[f"{prefix}created_at"],
        )


@dataclass
class NewUser:
    """Input for creating a user."""

    username: str
    email: str
    first_name: str
    last_name: str
    age: int | None

    @classmethod
    def generate(cls, index: int, token: str = "") -> NewUser:
        """
        Deterministic user number ``index``.

        ``token`` namespaces usernames per run so repeated inserts never hit
        the unique constraints on username and email.
        """
        key = f"{token}_{index}" if token else str(index)
        return cls(
            username=f"{BENCH_USER_PREFIX}{key}",
            email=f"{BENCH_USER_PREFIX}{key}@benchmark.com",
            first_name=f"First{index}",
            last_name=f"Last{index}",
            age=20 + (index % 60),
        )


@dataclass
class NewPost:
    """Input for creating a post."""

    user_id: UUID | None
    title: str
    content: str
    status: str

    @classmethod
    def generate(cls, user_id: UUID | None, index: int) -> NewPost:
        return cls(
            user_id=user_id,
            title=f"Benchmark Post Title {index}",
            content=(
                f"This is the content for benchmark post number {index}. It contains enough "
                "text to simulate a realistic blog post with multiple paragraphs of content "
                "that would be typical in a real-world application."
            ),
            status="draft" if index % 3 == 0 else "published",
        )


@dataclass(frozen=True)
class BenchmarkSizes:
    """Row counts used by parameterized scenarios."""

    small: int = 10
    medium: int = 100
    large: int = 1000

    def standard(self) -> tuple[int, int, int]:
        return (self.small, self.medium, self.large)


@dataclass(frozen=True)
class HeavyWorkloadConfig:
    """Shape of the heavy and concurrent mixed workloads."""

    concurrent_connections: int = 50
    operations_per_connection: int = 100
    mixed_read_write_ratio: float = 0.8  # 0.0 = all writes, 1.0 = all reads

    def is_write(self, op_index: int) -> bool:
        """
        Whether operation ``op_index`` of a mixed workload is a write.

        Writes are spread evenly: any run of n consecutive operations holds
        n * (1 - ratio) writes, give or take one.
        """
        write_share = 1 - Fraction(str(self.mixed_read_write_ratio))
        return (op_index + 1) * write_share // 1 > op_index * write_share // 1
