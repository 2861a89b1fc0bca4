# praasctl

`praasctl` holds building blocks for a process-as-a-service runtime.
Applications own long-lived *processes*. A backend allocates them, they
receive function invocations, and they can be swapped out to storage.
The package covers the configuration, the allocation backend, the swap
locations, the state of a single process and the process-side message
store.

## Control-plane pieces

- `praasctl.config.Config` is the control-plane configuration. You can
  build it with `Config.from_dict`, with `Config.from_stream` from a
  JSON document, or with `Config.defaults()`.
  - The keys `verbose`, `backend-type`, `ip-address` and
    `http-client-io-threads` are required.
  - The sections `backend`, `http`, `workers`, `downscaler` and
    `tcpserver` are optional and fall back to their defaults.
  - A missing field raises `InvalidConfigurationError`.
- `praasctl.config.parse_args(argv)` reads the file named by
  `-c/--config`. With no file it returns the defaults. If the file
  cannot be opened it exits with status 1.
- `praasctl.backend` holds the allocation side.
  - `parse_backend_type` maps `docker`, `aws_fargate` and `aws_lambda`
    onto `BackendType`. Any other name gives `NONE`.
  - `create_backend(cfg)` returns a `DockerBackend` for the Docker
    backend type and `None` for every other type.
  - `DockerBackend.allocate_process` sends a POST request to `/create`
    on the configured container manager. It reports a `DockerInstance`
    or an error message through its callback.
  - `DockerBackend` allows at most 1024 MB of memory (`max_memory()`)
    and 1 vCPU (`max_vcpus()`).
- `praasctl.deployment` decides where swapped state lives.
  `create_deployment(cfg)` returns a `LocalDeployment`, which hands out
  `DiskSwapLocation` objects. A swap of process `p` is kept under
  `<root>/swaps/p`. `LocalDeployment.delete_swap` only logs a warning
  and leaves the swap in place.
- `praasctl.process.Process` tracks one process:
  - its `ProcessStatus`;
  - its backend handle;
  - its pending invocations (`add_invocation`, `send_invocations`,
    `finish_invocation`);
  - its data-plane metrics (`update_metrics`, `get_metrics`);
  - its swap location (`swap`).

  `connect` registers the data-plane connection of a process that is
  still allocating, and raises `InvalidProcessStateError` otherwise.
  The creation callback is reported only once the backend handle is
  set. If `wait_for_allocation` is set, it also waits for the process
  to connect.

Every error is a subclass of `praasctl.errors.PraasError`:
`InvalidConfigurationError`, `ObjectExistsError`,
`ObjectDoesNotExistError`, `InvalidProcessStateError` and
`FailedAllocationError`.

```python
import io
from praasctl.config import Config
from praasctl.backend import BackendType

cfg = Config.from_stream(io.StringIO(
    '{"verbose": false, "backend-type": "docker", '
    '"ip-address": "127.0.0.1", "http-client-io-threads": 1}'
))
assert cfg.backend_type is BackendType.DOCKER
```

## Process-controller pieces

- `praasctl.controller_config.ControllerConfig` is the configuration of
  a process controller. It can be built with `from_dict` or
  `from_stream`. `load_env` then overrides values from these
  environment variables: `CONTROLPLANE_ADDR`, `PROCESS_ID`,
  `CODE_LOCATION` and `CONFIG_LOCATION`.
- `load_controller_config(argv)` does the same starting from a
  `-c/--config` option.
- `parse_language` and `parse_ipc_mode` map names onto `Language` and
  `IPCMode`.
- `praasctl.messages.MessageStore` is the process mailbox.
  - `put` stores a message once per key.
  - `try_get` removes it, matching the source or `ANY`.
  - `state` stores or overwrites a state entry and records when it was
    updated in `state_keys`.
  - `try_state` reads an entry without removing it.
- `praasctl.messages.PendingMessages` records the workers that are
  waiting for a message (`insert_get` / `find_get`) or for an
  invocation result (`insert_invocation` / `find_invocation`).

```python
from praasctl.messages import MessageStore

store = MessageStore()
store.put("greeting", "process-1", b"hello")
assert store.try_get("greeting", "process-1") == b"hello"
```

## What the package does not do

The package has no command to run and no servers:

- There is no HTTP API and no TCP server for process connections.
- There is no registry of applications and no application-level
  management of processes.
- There is no pool of task workers.
- There is no invocation work queue and no launching of function
  worker processes.

Callers provide the data-plane connection and the request objects that
`Process` uses. They also drive allocation and swapping themselves.

The tests run with pytest, which comes with the `test` extra.