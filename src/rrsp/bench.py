from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from .client import RecordClient
from .connection import Connection
from .errors import Timeout
from .net import Impairment
from .record import AddStatus
from .server import Server


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    exchanges: int
    duration_s: float
    exchanges_per_s: float
    retransmits: int
    timeouts: int
    discarded: int
    retried_requests: int


def run_benchmark(
    *,
    records: int = 100,
    loss_rate: float = 0.0,
    delay_ms: int = 0,
    duplicate_rate: float = 0.0,
    timeout_ms: int = 100,
    max_attempts: int = 5,
    max_request_retries: int = 20,
) -> BenchmarkResult:
    """Add then read back *records* records over an impaired loopback channel.

    Both directions are impaired. A request that times out is re-issued with
    the same sequence number, which must not duplicate work on the server.
    """
    impair = Impairment(loss_rate=loss_rate, delay_ms=delay_ms, duplicate_rate=duplicate_rate)

    server = Server.bind("127.0.0.1", 0, poll_ms=50, impairment=impair)
    host, port = server.address
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()

    retried = 0

    def with_retry(fn, *args):
        nonlocal retried
        for _ in range(max_request_retries):
            try:
                return fn(*args)
            except Timeout:
                retried += 1
        raise Timeout(f"request still failing after {max_request_retries} retries")

    start = time.monotonic()
    try:
        with Connection.open(
            host,
            port,
            timeout_ms=timeout_ms,
            max_attempts=max_attempts,
            impairment=impair,
        ) as conn:
            client = RecordClient(conn)
            for i in range(1, records + 1):
                status = with_retry(client.add, i, f"rec{i}", i % 120)
                assert status is AddStatus.ADDED, f"id {i}: {status.name}"
            for i in range(1, records + 1):
                rec = with_retry(client.retrieve, i)
                assert rec is not None and rec.name == f"rec{i}" and rec.age == i % 120
            metrics = conn.metrics
            exchanges = conn.sequence
    finally:
        server.shutdown()
        t.join(timeout=5.0)
        server.close()

    duration_s = max(0.001, time.monotonic() - start)
    return BenchmarkResult(
        exchanges=exchanges,
        duration_s=duration_s,
        exchanges_per_s=exchanges / duration_s,
        retransmits=metrics.retransmits,
        timeouts=metrics.timeouts,
        discarded=metrics.discarded,
        retried_requests=retried,
    )
