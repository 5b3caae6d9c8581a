from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Callable, TextIO

from . import config as _cfg
from .bench import run_benchmark
from .client import RecordClient
from .connection import Connection
from .constants import NAME_LEN, PORT_MAX, PORT_MIN
from .errors import ConnectFailed, Timeout
from .net import Impairment
from .record import AddStatus, Command, Record
from .server import Server

QUIT = 2


def _port(value: str) -> int:
    port = int(value)
    if port < PORT_MIN or port > PORT_MAX:
        raise argparse.ArgumentTypeError(f"{port}: invalid port number")
    return port


def _open(args: argparse.Namespace) -> Connection:
    return Connection.open(
        args.host,
        args.port,
        timeout_ms=args.timeout_ms,
        max_attempts=args.max_attempts,
        impairment=Impairment(args.loss_rate, args.delay_ms),
    )


def format_add(rec_id: int, status: AddStatus) -> str:
    if status is AddStatus.ADDED:
        return f"ID {rec_id} added successfully"
    return f"ID {rec_id} already exists"


def format_record(rec_id: int, rec: Record | None) -> str:
    if rec is None:
        return f"ID {rec_id} does not exist"
    return f"ID: {rec.id}\nName: {rec.name}\nAge: {rec.age}"


def cmd_serve(args: argparse.Namespace) -> int:
    server = Server.bind(
        args.listen_host,
        args.port,
        impairment=Impairment(args.loss_rate, args.delay_ms),
        idle_timeout_s=args.session_idle_s,
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.close()
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    with _open(args) as conn:
        status = RecordClient(conn).add(args.id, args.name, args.age)
    if args.json:
        print(json.dumps({"id": args.id, "status": status.name}, indent=2))
    else:
        print(format_add(args.id, status))
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    with _open(args) as conn:
        rec = RecordClient(conn).retrieve(args.id)
    if args.json:
        payload = {"id": args.id, "found": rec is not None}
        if rec is not None:
            payload.update(name=rec.name, age=rec.age)
        print(json.dumps(payload, indent=2))
    else:
        print(format_record(args.id, rec))
    return 0


def _read_int(ask: Callable[[str], str], prompt: str, retry_msg: str) -> int:
    text = ask(prompt)
    while True:
        try:
            value = int(text)
        except ValueError:
            value = 0
        if value != 0:
            return value
        text = ask(retry_msg)


def interact(client: RecordClient, ask: Callable[[str], str], out: TextIO) -> None:
    """The prompt loop: add and retrieve records until the user quits."""
    while True:
        try:
            cmd = int(ask(f"Enter command ({int(Command.ADD)} for Add, {int(Command.RETRIEVE)} for Retrieve, {QUIT} to quit):"))
        except ValueError:
            print("Illegal command", file=out)
            continue

        try:
            if cmd == Command.ADD:
                rec_id = _read_int(ask, "Enter id (integer):", "ID should be a non-zero integer:")
                name = ask(f"Enter name (up to {NAME_LEN} char):").strip()[:NAME_LEN]
                age = _read_int(ask, "Enter age (integer):", "Age should be a non-zero integer:")
                print(format_add(rec_id, client.add(rec_id, name, age)), file=out)
            elif cmd == Command.RETRIEVE:
                rec_id = _read_int(ask, "Enter id (integer):", "ID should be a non-zero integer:")
                print(format_record(rec_id, client.retrieve(rec_id)), file=out)
            elif cmd == QUIT:
                return
            else:
                print(f"Illegal command {cmd}", file=out)
        except Timeout as exc:
            print(f"Request failed: {exc}", file=out)
        except ValueError as exc:
            print(f"Invalid record: {exc}", file=out)


def cmd_client(args: argparse.Namespace) -> int:
    with _open(args) as conn:
        try:
            interact(RecordClient(conn), input, sys.stdout)
        except EOFError:
            pass
    return 0


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(
        records=args.records,
        loss_rate=args.loss_rate,
        delay_ms=args.delay_ms,
        duplicate_rate=args.duplicate_rate,
        timeout_ms=args.timeout_ms,
        max_attempts=args.max_attempts,
    )
    payload = {"role": "bench", **asdict(r)}
    print(json.dumps(payload, indent=2) if args.json else payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rrsp", description="Record store over reliable UDP (stop-and-wait ARQ).")
    p.add_argument("--log-level", default=_cfg.LOG_LEVEL, choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_impairment(x: argparse.ArgumentParser) -> None:
        x.add_argument("--loss-rate", type=float, default=0.0, help="simulate packet loss")
        x.add_argument("--delay-ms", type=int, default=0, help="simulate per-datagram delay")

    def add_arq(x: argparse.ArgumentParser) -> None:
        add_impairment(x)
        x.add_argument("--timeout-ms", type=int, default=_cfg.TIMEOUT_MS)
        x.add_argument("--max-attempts", type=int, default=_cfg.ATTEMPTS)

    def add_target(x: argparse.ArgumentParser) -> None:
        add_arq(x)
        x.add_argument("--host", default=_cfg.DEFAULT_HOST)
        x.add_argument("--port", type=_port, default=_cfg.DEFAULT_PORT)

    serve = sub.add_parser("serve", help="run the record server")
    add_impairment(serve)
    serve.add_argument("--listen-host", default=_cfg.DEFAULT_HOST)
    serve.add_argument("--port", type=_port, default=_cfg.DEFAULT_PORT)
    serve.add_argument("--session-idle-s", type=float, default=_cfg.SESSION_IDLE)
    serve.set_defaults(func=cmd_serve)

    client = sub.add_parser("client", help="interactive add/retrieve prompt")
    add_target(client)
    client.set_defaults(func=cmd_client)

    add = sub.add_parser("add", help="add one record")
    add_target(add)
    add.add_argument("--id", type=int, required=True)
    add.add_argument("--name", required=True)
    add.add_argument("--age", type=int, required=True)
    add.add_argument("--json", action="store_true")
    add.set_defaults(func=cmd_add)

    get = sub.add_parser("get", help="retrieve one record")
    add_target(get)
    get.add_argument("--id", type=int, required=True)
    get.add_argument("--json", action="store_true")
    get.set_defaults(func=cmd_get)

    bench = sub.add_parser("bench", help="loopback soak test under simulated impairment")
    add_arq(bench)
    bench.set_defaults(timeout_ms=100)
    bench.add_argument("--records", type=int, default=100)
    bench.add_argument("--duplicate-rate", type=float, default=0.0)
    bench.add_argument("--json", action="store_true")
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        return int(args.func(args))
    except ConnectFailed as exc:
        print(f"connect failed: {exc}", file=sys.stderr)
        return 1
    except Timeout as exc:
        print(f"request failed: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"invalid record: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
