"""Build per-run shard data: worker count, round-robin assignment, gzip on overflow.

Everything here is pure: no cluster calls, no I/O, no clock. The caller turns
a :class:`ShardResult` into whatever key/value store it needs.
"""

from __future__ import annotations

import base64
import gzip
import json
from dataclasses import dataclass, field

__all__ = [
    "GZIP_THRESHOLD_BYTES",
    "ShardingError",
    "NoRepositoriesError",
    "InvalidBoundsError",
    "Repository",
    "WorkerBounds",
    "ShardPayload",
    "ShardResult",
    "shard_key_json",
    "shard_key_gzip",
    "build",
]

# Per-shard size above which the payload is stored gzipped and base64-encoded.
# Values in the target store are limited to about 1 MiB; 900 KiB leaves headroom
# for keys, metadata and base64 expansion.
GZIP_THRESHOLD_BYTES = 900 * 1024

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class ShardingError(ValueError):
    """Base class for errors raised while building shards."""


class NoRepositoriesError(ShardingError):
    """Raised when there are no repositories to assign."""

    def __init__(self, message: str = "sharding: no repositories to assign") -> None:
        super().__init__(message)


class InvalidBoundsError(ShardingError):
    """Raised when worker bounds make no sense."""


def shard_key_json(index: int) -> str:
    """Key for an uncompressed shard at ``index``."""
    return f"shard-{index:04d}.json"


def shard_key_gzip(index: int) -> str:
    """Key for a gzip+base64 shard at ``index``."""
    return f"shard-{index:04d}.json.gz"


@dataclass(frozen=True)
class Repository:
    """A discovered repository, identified by its platform-qualified slug."""

    slug: str


@dataclass(frozen=True)
class WorkerBounds:
    """The worker limits the builder needs."""

    min_workers: int
    max_workers: int
    repos_per_worker: int

    def validate(self) -> None:
        """Raise :class:`InvalidBoundsError` if the bounds are nonsensical."""
        if self.min_workers < 1:
            raise InvalidBoundsError(
                f"sharding: invalid worker bounds: minWorkers={self.min_workers} must be ≥ 1"
            )
        if self.max_workers < 1:
            raise InvalidBoundsError(
                f"sharding: invalid worker bounds: maxWorkers={self.max_workers} must be ≥ 1"
            )
        if self.min_workers > self.max_workers:
            raise InvalidBoundsError(
                "sharding: invalid worker bounds: "
                f"minWorkers={self.min_workers} > maxWorkers={self.max_workers}"
            )
        if self.repos_per_worker < 1:
            raise InvalidBoundsError(
                "sharding: invalid worker bounds: "
                f"reposPerWorker={self.repos_per_worker} must be ≥ 1"
            )

    def actual_workers(self, repo_count: int) -> int:
        """Clamp ``ceil(repo_count / repos_per_worker)`` into ``[min, max]``."""
        target = -(-repo_count // self.repos_per_worker)
        return max(self.min_workers, min(self.max_workers, target))


@dataclass(frozen=True)
class ShardPayload:
    """JSON document stored under each shard key."""

    index: int
    total: int
    repos: tuple[str, ...] = ()

    def to_json(self) -> str:
        """Compact JSON; an empty shard serialises its repos as ``null``."""
        document = {
            "index": self.index,
            "total": self.total,
            "repos": list(self.repos) if self.repos else None,
        }
        text = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
        for char, escaped in _HTML_ESCAPES.items():
            text = text.replace(char, escaped)
        return text

    @classmethod
    def from_json(cls, raw: str | bytes) -> ShardPayload:
        """Parse a shard document produced by :meth:`to_json`."""
        document = json.loads(raw)
        return cls(
            index=int(document.get("index", 0)),
            total=int(document.get("total", 0)),
            repos=tuple(document.get("repos") or ()),
        )


@dataclass
class ShardResult:
    """Worker count, shard data keyed by shard key, and per-shard compression flags."""

    actual_workers: int
    data: dict[str, str] = field(default_factory=dict)
    compressed: list[bool] = field(default_factory=list)


def _gzip_base64(raw: bytes) -> str:
    return base64.b64encode(gzip.compress(raw, mtime=0)).decode("ascii")


def build(repos, bounds: WorkerBounds) -> ShardResult:
    """Compute the worker count and shard data for ``repos`` within ``bounds``.

    Repositories are sorted by slug before round-robin assignment, so the
    output depends only on the set of inputs, not their order.
    """
    ordered = sorted(repos, key=lambda repo: repo.slug)
    if not ordered:
        raise NoRepositoriesError()
    bounds.validate()

    actual = bounds.actual_workers(len(ordered))
    shards: list[list[str]] = [[] for _ in range(actual)]
    for position, repo in enumerate(ordered):
        shards[position % actual].append(repo.slug)

    result = ShardResult(actual_workers=actual)
    for index, slugs in enumerate(shards):
        raw = ShardPayload(index=index, total=actual, repos=tuple(slugs)).to_json().encode("utf-8")
        if len(raw) > GZIP_THRESHOLD_BYTES:
            result.data[shard_key_gzip(index)] = _gzip_base64(raw)
            result.compressed.append(True)
        else:
            result.data[shard_key_json(index)] = raw.decode("utf-8")
            result.compressed.append(False)
    return result