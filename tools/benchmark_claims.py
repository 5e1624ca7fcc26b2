#!/usr/bin/env -S uv run
"""
Claim Round-Trip Benchmark Tool for cloudqueues

Measures post / claim / delete / release latency against a live queues
endpoint configured through CLOUDQUEUES_* environment variables (see
cloudqueues.config.ClientSettings).

Usage:
    uv run tools/benchmark_claims.py
    uv run tools/benchmark_claims.py --messages 500 --batch 10
    uv run tools/benchmark_claims.py --queue bench-tmp --keep-queue
    uv run tools/benchmark_claims.py --help
"""
# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "cloudqueues",
#     "typer>=0.9.0",
#     "rich>=13.0",
# ]
# ///

from __future__ import annotations

import asyncio
import statistics
import sys
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from time import perf_counter

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cloudqueues import Message, QueueingService, QueueName

app = typer.Typer(
    help="Benchmark cloudqueues claim round-trips",
    add_completion=False,
)


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass
class BenchmarkConfig:
    """Configuration for a benchmark run."""

    messages: int = 100
    batch: int = 10
    ttl: timedelta = timedelta(minutes=5)
    grace: timedelta = timedelta(minutes=1)
    queue: QueueName = field(
        default_factory=lambda: QueueName(f"bench-{uuid.uuid4().hex[:12]}")
    )
    keep_queue: bool = False


@dataclass
class BenchmarkResult:
    """Latencies for one operation type."""

    operation: str
    latencies: list[float] = field(default_factory=list)  # seconds

    @property
    def count(self) -> int:
        return len(self.latencies)

    @property
    def p50(self) -> float:
        return statistics.median(self.latencies) if self.latencies else 0.0

    def percentile(self, q: float) -> float:
        if not self.latencies:
            return 0.0
        ordered = sorted(self.latencies)
        return ordered[min(int(len(ordered) * q), len(ordered) - 1)]

    @property
    def max_latency(self) -> float:
        return max(self.latencies) if self.latencies else 0.0


def format_ms(seconds: float) -> str:
    ms = seconds * 1000
    if ms < 10:
        return f"{ms:.2f}ms"
    return f"{ms:.1f}ms"


# ---------------------------------------------------------------------------
# Benchmark
# ---------------------------------------------------------------------------


async def run_benchmark(config: BenchmarkConfig) -> list[BenchmarkResult]:
    post = BenchmarkResult("post")
    claim_op = BenchmarkResult("claim")
    delete = BenchmarkResult("delete")
    release = BenchmarkResult("release")

    async with QueueingService.from_settings() as svc:
        await svc.create_queue(config.queue)
        try:
            for i in range(config.messages):
                start = perf_counter()
                await svc.post_messages(config.queue, Message(body={"seq": i}))
                post.latencies.append(perf_counter() - start)

            while True:
                start = perf_counter()
                claim = await svc.claim_messages(
                    config.queue, limit=config.batch, ttl=config.ttl, grace=config.grace
                )
                claim_op.latencies.append(perf_counter() - start)
                if not claim.messages:
                    break

                for message in claim.messages:
                    start = perf_counter()
                    await svc.delete_message(config.queue, message.id, claim)
                    delete.latencies.append(perf_counter() - start)

                start = perf_counter()
                await claim.release()
                release.latencies.append(perf_counter() - start)
        finally:
            if not config.keep_queue:
                await svc.delete_queue(config.queue)

    return [post, claim_op, delete, release]


def print_results(config: BenchmarkConfig, results: list[BenchmarkResult]) -> None:
    console = Console()
    console.print()
    console.print(
        Panel(
            f"[bold cyan]Claim Round-Trip Benchmark[/bold cyan]  queue={config.queue}",
            expand=False,
        )
    )

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Operation", style="cyan", width=10)
    table.add_column("Count", justify="right", style="green")
    table.add_column("P50", justify="right")
    table.add_column("P95", justify="right")
    table.add_column("P99", justify="right")
    table.add_column("Max", justify="right")

    for result in results:
        table.add_row(
            result.operation,
            str(result.count),
            format_ms(result.p50),
            format_ms(result.percentile(0.95)),
            format_ms(result.percentile(0.99)),
            format_ms(result.max_latency),
        )

    console.print(table)
    console.print()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@app.command()
def main(
    messages: int = typer.Option(100, "--messages", "-n", help="Messages to post"),
    batch: int = typer.Option(10, "--batch", "-b", help="Claim limit per request"),
    queue: str = typer.Option("", "--queue", "-q", help="Queue name (random if empty)"),
    keep_queue: bool = typer.Option(False, "--keep-queue", help="Do not delete the queue"),
) -> None:
    """
    Benchmark claim round-trips against a live endpoint.

    Posts N messages, then claims them in batches, deletes each message
    under its claim, and releases the claim, timing every call.
    """
    config = BenchmarkConfig(messages=messages, batch=batch, keep_queue=keep_queue)
    if queue:
        config.queue = QueueName(queue)

    try:
        results = asyncio.run(run_benchmark(config))
    except Exception as e:
        print(f"\nBenchmark failed: {e}", file=sys.stderr)
        raise typer.Exit(code=1)

    print_results(config, results)


if __name__ == "__main__":
    app()
