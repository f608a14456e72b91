# buildxkit

Building blocks for tools that drive container image builds.

- **`buildxkit.platforms`**: parse, normalize, format and deduplicate
  platform specifiers such as `linux/amd64` or `linux/arm/v7`
  (`Platform`, `parse_platform`, `parse`, `normalize`, `default_spec`,
  `dedupe`, `format_platform`, `format_platforms`, `format_in_groups`).
  `parse` accepts comma separated lists and the word `local` for the host.
- **`buildxkit.nodegroup`**: builder groups (`NodeGroup`, `Node`) with
  `update` and `leave`, name checking (`validate_name`) and conversion to and
  from JSON-ready dictionaries. A platform given to one node is removed from
  the others in the group; duplicate endpoints are rejected.
- **`buildxkit.store`**: a directory-backed store of node groups. `Store.txn()`
  is a context manager that holds a file lock and yields a `Txn` with `list`,
  `node_group_by_name`, `save`, `remove`, `set_current` and `current`. The
  current builder is chosen per endpoint key, may be global, and may be
  remembered as that key's default.
- **`buildxkit.confutil`**: `config_dir` finds the store directory
  (`$BUILDX_CONFIG`, or a `buildx` directory next to a Docker config file),
  `default_config_file` looks for `buildkitd.default.toml`, and
  `load_config_files` reads a BuildKit daemon TOML config together with the
  registry CA, key and certificate files it names, rewriting their paths to
  lie under `/etc/buildkit/certs/<registry>/`.
- **`buildxkit.buildflags`**: parsers for flag values:
  `cache.parse_cache_entry`, `output.parse_outputs`,
  `secrets.parse_secret` / `parse_secret_specs`,
  `ssh.parse_ssh` / `parse_ssh_specs` / `is_git_ssh`, and
  `entitlements.parse_entitlements`.
- **`buildxkit.progress`**: progress records (`SolveStatus`, `Vertex`,
  `VertexStatus`, `VertexLog`) and the `Writer` interface in
  `progress.writer`, with `write` and `new_channel`; `progress.wrap.wrap` and
  `SubLogger` for reporting work, sub-tasks and logs; `progress.prefix.with_prefix`
  and `progress.reset.reset_time`, writers that prefix vertex names or shift
  times to start now; and `progress.reader.from_reader`, which reports reading
  a stream to its end as a vertex.
- **`buildxkit.waitmap`**: `WaitMap`, whose `get` blocks until the requested
  keys are set, or raises `TimeoutError`.
- **`buildxkit.logutil`**: `MessageFilter` for dropping log records by
  message, `LevelFormatter` for `LEVEL: message` lines, and `pause`, which
  buffers a logger's stream output until the returned callback is called.
- **`buildxkit.monitor`**: in-process pipes (`pipe`, `io_set_pipe`,
  `IOSetIn`, `IOSetOut`), `copy_to_func`, `trace_reader`, `MuxIO`, which routes
  one input to one of several outputs and switches on `Ctrl-A c`, and
  `IOForwarder`, which forwards to a destination that can be swapped.
- **`buildxkit.version`**: `PACKAGE`, `VERSION` and `REVISION` values.

## Installation

```
pip install .
```

## Examples

Parsing platforms:

```python
from buildxkit.platforms import parse, format_platforms

print(format_platforms(parse(["linux/amd64,linux/arm"])))
# ['linux/amd64', 'linux/arm/v7']
```

Managing builder instances:

```python
from buildxkit.store import Store
from buildxkit.nodegroup import NodeGroup

store = Store("/tmp/builders")
with store.txn() as txn:
    group = NodeGroup(name="mybuilder", driver="docker-container")
    group.update("node0", "unix:///var/run/docker.sock", ["linux/amd64"],
                 True, False, None, "", None)
    txn.save(group)
    txn.set_current("default", "mybuilder", False, True)
    print(txn.current("default").name)  # mybuilder
```

Waiting on values:

```python
from buildxkit.waitmap import WaitMap

values = WaitMap()
values.set("foo", "bar")
print(values.get("foo", timeout=1.0))  # {'foo': 'bar'}
```

Parsing build flags:

```python
from buildxkit.buildflags.cache import parse_cache_entry

entries = parse_cache_entry(["type=local,src=/tmp/cache"])
print(entries[0].type, entries[0].attrs)  # local {'src': '/tmp/cache'}
```

## What it does not do

This is a library only. It has no command-line tool and does not run builds:
it does not talk to a build daemon, a container engine or an image registry,
does not start or manage containers, and does not draw progress on a
terminal. The parsed secret and SSH specifications are plain records; serving
them to a build is left to the caller. `MuxIO` and `IOForwarder` move bytes
between streams but provide no interactive prompt of their own.

## Running the tests

```
pip install ".[test]"
pytest
```