"""Utility for stress-testing the Inkwell /ws endpoint.

Each worker opens an authenticated connection, answers application level
``PING`` probes with ``PONG`` and emits ``TYPING`` envelopes for a chat on a
fixed interval. Because senders receive their own envelopes back, the time
until the echo arrives is reported as the fan-out latency.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import statistics
import sys
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect


logger = logging.getLogger("inkwell.load_test")


@dataclass(slots=True)
class WorkerResult:
    """Outcome of a single websocket session."""

    connected: bool
    connect_latency: float | None = None
    envelopes_sent: int = 0
    frames_received: Counter = field(default_factory=Counter)
    probes_answered: int = 0
    echo_latencies: list[float] = field(default_factory=list)
    duration: float = 0.0
    close_code: int | None = None
    error: str | None = None


async def _read_frames(
    websocket: ClientConnection,
    result: WorkerResult,
    chat_id: int,
    pending: deque[float],
) -> None:
    async for raw in websocket:
        try:
            frame = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            result.frames_received["invalid"] += 1
            continue
        frame_type = frame.get("type", "unknown")
        result.frames_received[frame_type] += 1
        if frame_type == "PING":
            await websocket.send(json.dumps({"type": "PONG"}))
            result.probes_answered += 1
        elif frame_type == "TYPING" and frame.get("chatId") == chat_id and pending:
            result.echo_latencies.append(time.perf_counter() - pending.popleft())


async def _worker(
    index: int,
    url: str,
    token: str,
    *,
    chat_id: int,
    session_duration: float,
    interval: float,
    open_timeout: float,
) -> WorkerResult:
    """Keep one connection open for the configured duration."""

    start_time = time.perf_counter()
    result = WorkerResult(connected=False)
    separator = "&" if "?" in url else "?"
    try:
        async with connect(
            f"{url}{separator}{urlencode({'token': token})}",
            open_timeout=open_timeout,
            ping_interval=None,
        ) as websocket:
            connected_at = time.perf_counter()
            result.connected = True
            result.connect_latency = connected_at - start_time
            logger.debug("worker %s connected in %.3fs", index, result.connect_latency)

            pending: deque[float] = deque()
            reader = asyncio.create_task(_read_frames(websocket, result, chat_id, pending))
            try:
                deadline = connected_at + session_duration
                while time.perf_counter() < deadline and not reader.done():
                    pending.append(time.perf_counter())
                    await websocket.send(json.dumps({"type": "TYPING", "chatId": chat_id}))
                    result.envelopes_sent += 1
                    await asyncio.sleep(interval)
            finally:
                reader.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await reader
            result.close_code = websocket.close_code
    except asyncio.CancelledError:
        raise
    except Exception as exc:  # pragma: no cover - network failures are non-deterministic
        result.error = f"{type(exc).__name__}: {exc}"
        logger.warning("worker %s failed: %s", index, result.error)
    finally:
        result.duration = time.perf_counter() - start_time
    return result


def _stats(samples: list[float]) -> dict[str, float] | None:
    if not samples:
        return None
    samples_sorted = sorted(samples)
    count = len(samples_sorted)
    return {
        "avg": statistics.fmean(samples_sorted),
        "p50": statistics.median(samples_sorted),
        "p95": samples_sorted[int(0.95 * (count - 1))],
        "max": samples_sorted[-1],
    }


def summarize(results: Iterable[WorkerResult]) -> dict[str, Any]:
    """Compute summary metrics for all workers."""

    results = list(results)
    successes = [item for item in results if item.connected and item.error is None]
    failures = [item for item in results if item.error is not None or not item.connected]

    frames: Counter = Counter()
    for item in successes:
        frames.update(item.frames_received)

    return {
        "attempted": len(results),
        "connected": len(successes),
        "failed": len(failures),
        "connection_latency": _stats([item.connect_latency for item in successes if item.connect_latency]),
        "echo_latency": _stats([lat for item in successes for lat in item.echo_latencies]),
        "envelopes_sent": sum(item.envelopes_sent for item in successes),
        "frames_received": dict(frames),
        "probes_answered": sum(item.probes_answered for item in successes),
        "failures": dict(Counter(item.error for item in failures if item.error)),
        "wall_clock_seconds": max((item.duration for item in results), default=0.0),
    }


def load_tokens(args: argparse.Namespace) -> list[str]:
    tokens = list(args.token)
    if args.token_file:
        lines = Path(args.token_file).read_text(encoding="utf-8").splitlines()
        tokens.extend(line.strip() for line in lines if line.strip())
    if not tokens:
        raise SystemExit("at least one --token or --token-file entry is required")
    return tokens


async def run_load_test(args: argparse.Namespace) -> dict[str, Any]:
    """Entry point used by the CLI wrapper."""

    tokens = load_tokens(args)
    if len(tokens) < args.connections:
        # Connections sharing a token belong to one user and replace each other.
        logger.warning(
            "%s tokens for %s connections; users will reconnect over each other",
            len(tokens),
            args.connections,
        )

    logger.info(
        "starting load test: url=%s connections=%s duration=%ss chat=%s",
        args.url,
        args.connections,
        args.session_duration,
        args.chat_id,
    )

    tasks = [
        asyncio.create_task(
            _worker(
                index,
                args.url,
                tokens[index % len(tokens)],
                chat_id=args.chat_id,
                session_duration=args.session_duration,
                interval=args.interval,
                open_timeout=args.open_timeout,
            ),
            name=f"realtime-load-worker-{index}",
        )
        for index in range(args.connections)
    ]

    def _cancel(signum: int, _frame: Any) -> None:  # pragma: no cover - signal handling
        logger.warning("received signal %s, cancelling load test", signum)
        for task in tasks:
            task.cancel()

    handlers: dict[int, Any] = {}
    for signum in (signal.SIGINT, signal.SIGTERM):  # pragma: no cover - platform specific
        with contextlib.suppress(ValueError):
            handlers[signum] = signal.getsignal(signum)
            signal.signal(signum, _cancel)

    try:
        results = await asyncio.gather(*tasks)
    finally:
        for signum, previous in handlers.items():  # pragma: no cover - best effort cleanup
            with contextlib.suppress(ValueError):
                signal.signal(signum, previous)

    summary = summarize(results)
    logger.info("load test finished: %s connected, %s failed", summary["connected"], summary["failed"])
    return summary


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("url", help="Websocket URL, e.g. ws://localhost:8000/ws")
    parser.add_argument("--token", action="append", default=[], help="Access token; repeat for several users")
    parser.add_argument("--token-file", default=None, help="File with one access token per line")
    parser.add_argument("--chat-id", type=int, required=True, help="Chat the TYPING envelopes are sent to")
    parser.add_argument("--connections", type=int, default=10, help="Number of concurrent connections")
    parser.add_argument(
        "--session-duration",
        type=float,
        default=30.0,
        help="How long each connection should stay open (seconds)",
    )
    parser.add_argument("--interval", type=float, default=5.0, help="Delay between TYPING envelopes (seconds)")
    parser.add_argument(
        "--open-timeout",
        type=float,
        default=10.0,
        help="Timeout for establishing the websocket connection",
    )
    parser.add_argument("--json", action="store_true", help="Emit the summary as JSON")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity level",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        summary = asyncio.run(run_load_test(args))
    except KeyboardInterrupt:  # pragma: no cover - manual interruption
        logger.warning("interrupted by user")
        return 130

    if args.json:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        print("\n=== Load Test Summary ===")
        for key, value in summary.items():
            print(f"{key}: {value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
