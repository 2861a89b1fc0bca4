import time
from types import SimpleNamespace

import pytest

from praasctl.backend import ProcessInstance
from praasctl.deployment import DiskSwapLocation
from praasctl.errors import InvalidProcessStateError
from praasctl.process import (
    DataPlaneMetrics,
    Process,
    ProcessResources,
    ProcessStatus,
)


class FakeConnection:
    def __init__(self):
        self.swaps = []
        self.sent = []

    def send_swap_request(self, path):
        self.swaps.append(path)

    def send_invocation(self, function_name, invocation_id, payload):
        self.sent.append((function_name, invocation_id, payload))


class FailingInstance(ProcessInstance):
    def connect(self, callback):
        callback("no address")


@pytest.fixture
def process():
    return Process("p1", SimpleNamespace(name="app"), ProcessResources("1", "128"))


def request(body):
    return SimpleNamespace(body=body)


def test_new_process_is_allocating(process):
    assert process.status is ProcessStatus.ALLOCATING
    assert process.connection is None
    assert process.active_invocations == 0


def test_connect_sets_allocated(process):
    conn = FakeConnection()
    process.connect(conn)
    assert process.status is ProcessStatus.ALLOCATED
    assert process.connection is conn


def test_connect_twice_raises(process):
    process.connect(FakeConnection())
    with pytest.raises(InvalidProcessStateError):
        process.connect(FakeConnection())


def test_pending_invocations_sent_on_connect(process):
    invocation = process.add_invocation(request(b"data"), lambda s, b: None, "fn", time.perf_counter())
    assert invocation.submitted is False
    conn = FakeConnection()
    process.connect(conn)
    assert conn.sent == [("fn", invocation.invocation_id, b"data")]
    assert invocation.submitted is True
    assert process.active_invocations == 1


def test_invocation_sent_immediately_when_allocated(process):
    conn = FakeConnection()
    process.connect(conn)
    invocation = process.add_invocation(request(b"x"), lambda s, b: None, "fn", time.perf_counter())
    assert conn.sent == [("fn", invocation.invocation_id, b"x")]
    assert len(invocation.invocation_id) == 16


def test_finish_invocation_responds(process):
    process.connect(FakeConnection())
    responses = []
    invocation = process.add_invocation(
        request(b"in"), lambda status, body: responses.append((status, body)), "fn", time.perf_counter()
    )
    assert process.finish_invocation(invocation.invocation_id, 0, b"out") is True
    assert responses == [
        (
            200,
            {
                "function": "fn",
                "invocation_id": invocation.invocation_id,
                "return_code": 0,
                "result": "out",
            },
        )
    ]
    assert process.active_invocations == 0
    assert process.invocations == []


def test_finish_unknown_invocation_is_ignored(process):
    process.connect(FakeConnection())
    process.add_invocation(request(b"in"), lambda s, b: None, "fn", time.perf_counter())
    assert process.finish_invocation("unknown", 0, b"") is False
    assert process.active_invocations == 1


def test_close_connection(process):
    process.connect(FakeConnection())
    process.close_connection()
    assert process.status is ProcessStatus.CLOSED
    assert process.connection is None


def test_swap_without_connection_is_noop(process, tmp_path):
    process.state.swap = DiskSwapLocation(tmp_path)
    process.swap()
    assert process.connection is None


def test_swap_sends_root_path(process, tmp_path):
    conn = FakeConnection()
    process.connect(conn)
    process.state.swap = DiskSwapLocation(tmp_path)
    process.swap()
    assert conn.swaps == [str(tmp_path)]


def test_metrics_update_and_snapshot(process):
    assert process.get_metrics() == DataPlaneMetrics()
    process.update_metrics(10, 3, 42)
    metrics = process.get_metrics()
    assert (metrics.computation_time, metrics.invocations, metrics.last_invocation) == (10, 3, 42)
    assert metrics.last_report > 0
    metrics.invocations = 99
    assert process.get_metrics().invocations == 3


def test_failure_reported_immediately(process):
    results = []
    process.set_creation_callback(lambda p, e: results.append((p, e)), False)
    process.created_callback("broken")
    assert results == [(None, "broken")]
    process.created_callback("again")
    assert len(results) == 1


def test_success_waits_for_handle(process):
    results = []
    process.set_creation_callback(lambda p, e: results.append((p, e)), False)
    process.created_callback(None)
    assert results == []
    process.set_handle(ProcessInstance("10.0.0.1", 8000))
    process.created_callback(None)
    assert results == [(process, None)]


def test_success_waits_for_connection_when_requested(process):
    results = []
    process.set_creation_callback(lambda p, e: results.append((p, e)), True)
    process.set_handle(ProcessInstance("10.0.0.1", 8000))
    process.created_callback(None)
    assert results == []
    process.connect(FakeConnection())
    assert results == [(process, None)]
    process.created_callback(None)
    assert len(results) == 1


def test_handle_connect_failure_is_reported(process):
    results = []
    process.set_creation_callback(lambda p, e: results.append((p, e)), False)
    process.set_handle(FailingInstance("10.0.0.1", 8000))
    process.created_callback(None)
    assert results == [(None, "no address")]