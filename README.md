# renoshard

Split a list of repositories across a bounded number of workers and produce
the per-shard data as a mapping of string keys to string values, ready to be
stored in a key/value store such as the data of a Kubernetes ConfigMap.

The work is pure. It makes no network calls, does no file I/O and reads no
clock, so the same set of inputs always gives the same output.

## What `build` does

`renoshard.sharding.build(repos, bounds)` takes an iterable of `Repository`
objects and a `WorkerBounds`, and returns a `ShardResult`:

1. Sorts the repositories by slug. The result depends only on which
   repositories are given, not on their order.
2. Computes the worker count as `ceil(len(repos) / repos_per_worker)`, clamped
   to `[min_workers, max_workers]` (see `WorkerBounds.actual_workers`).
3. Assigns the repositories to the shards round-robin.
4. Serialises each shard as compact JSON:
   `{"index": i, "total": n, "repos": [...]}`. A shard with no repositories
   has `"repos": null`. The characters `<`, `>`, `&`, U+2028 and U+2029 are
   written as `\u` escapes.
   - A shard of at most `GZIP_THRESHOLD_BYTES` (900 KiB) is stored under
     `shard_key_json(i)`, i.e. `shard-NNNN.json`.
   - A larger shard is gzipped (with a fixed zero timestamp, so the output is
     reproducible), base64-encoded and stored under `shard_key_gzip(i)`,
     i.e. `shard-NNNN.json.gz`.

`ShardResult` has:

- `actual_workers`: the number of shards.
- `data`: the shard keys mapped to their contents.
- `compressed`: one flag per shard index, `True` where the shard was gzipped.

## Usage

```python
from renoshard.sharding import Repository, WorkerBounds, ShardPayload, build, shard_key_json

repos = [Repository("owner/repo-b"), Repository("owner/repo-a"), Repository("owner/repo-c")]
bounds = WorkerBounds(min_workers=1, max_workers=5, repos_per_worker=2)

result = build(repos, bounds)
print(result.actual_workers)          # 2
print(sorted(result.data))            # ['shard-0000.json', 'shard-0001.json']
print(result.compressed)              # [False, False]

payload = ShardPayload.from_json(result.data[shard_key_json(0)])
print(payload.repos)                  # ('owner/repo-a', 'owner/repo-c')
```

`ShardPayload.to_json()` and `ShardPayload.from_json(raw)` convert a single
shard document to and from JSON; `from_json` accepts `str` or `bytes`. A
gzipped shard must be base64-decoded and decompressed before it is passed to
`from_json`.

## Errors

`build` raises:

- `NoRepositoriesError` when no repositories are given.
- `InvalidBoundsError` when any of these holds:
  - `min_workers < 1`
  - `max_workers < 1`
  - `min_workers > max_workers`
  - `repos_per_worker < 1`

The same bounds check is available as `WorkerBounds.validate()`. Both errors
derive from `ShardingError`, which is a `ValueError`.

## What it does not do

The package only computes shard data. It does not discover repositories,
write the data to any store, or run workers, and it has no command-line tool.

## Running the tests

```
pip install -e .[test]
pytest
```