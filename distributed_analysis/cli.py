#!/usr/bin/env python3
"""Publish an analysis run coordination record and wait for its verdict.

Useful for exercising the handshake from a workstation or CI job without the
rollouts controller, and for checking that the external verdict writer in the
other cluster/account is picking records up.

Examples:
  distributed-analysis run --run-id abc-123 --template canary-check --cluster-id eu-1
  distributed-analysis publish --run-id abc-123 --template canary-check --dry-run
  distributed-analysis await --run-id abc-123 --cluster-id eu-1 --poll-timeout 60

Exit codes for ``run``: 0 verdict Passed, 2 any other verdict, 1 error.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from distributed_analysis.config import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
    DEFAULT_REGION,
    DEFAULT_TABLE_NAME,
    DYNAMODB_ENDPOINT_URL,
    PUBLISH_TIMEOUT_SECONDS,
    PluginConfig,
    _configure_logging,
)
from distributed_analysis.errors import CoordinationError
from distributed_analysis.outcome import map_verdict
from distributed_analysis.poller import VerdictPoller
from distributed_analysis.publisher import RequestPublisher
from distributed_analysis.store import CoordinationStore, InMemoryStore, _build_dynamodb_store


def _log(tag: str, message: str) -> None:
    print(f"[{tag}] {message}")


def _store_for(cfg: PluginConfig, args: argparse.Namespace) -> CoordinationStore:
    if getattr(args, "dry_run", False):
        return InMemoryStore()
    return _build_dynamodb_store(cfg)


def _config_from_args(args: argparse.Namespace) -> PluginConfig:
    return PluginConfig(
        table_name=args.table,
        region=args.region,
        endpoint_url=args.endpoint_url,
        cluster_id=args.cluster_id,
        analysis_template=getattr(args, "template", "") or "",
        namespace=args.namespace,
        poll_interval=getattr(args, "poll_interval", 0) or 0,
        poll_timeout=getattr(args, "poll_timeout", 0) or 0,
    ).with_defaults()


def _publish(store: CoordinationStore, cfg: PluginConfig, args: argparse.Namespace) -> None:
    publisher = RequestPublisher(store, timeout_seconds=args.publish_timeout)
    if args.dry_run:
        record = publisher.build_record(args.run_id, cfg.analysis_template, cfg.cluster_id, cfg.namespace)
        _log("DRY-RUN", json.dumps({"table": cfg.table_name, "region": cfg.region, "item": record.to_item()}, indent=2))
        return
    publisher.publish(args.run_id, cfg.analysis_template, cfg.cluster_id, cfg.namespace)
    _log("SUCCESS", f"Wrote coordination record {args.run_id} to {cfg.table_name} ({cfg.region})")


def _await(store: CoordinationStore, cfg: PluginConfig, args: argparse.Namespace) -> str:
    _log("INFO", f"Waiting up to {cfg.poll_timeout:g}s for verdict on {args.run_id} (every {cfg.poll_interval:g}s)")
    return VerdictPoller(store).await_verdict(
        args.run_id,
        cfg.cluster_id,
        poll_interval=cfg.poll_interval,
        poll_timeout=cfg.poll_timeout,
    )


def cmd_publish(args: argparse.Namespace, store: Optional[CoordinationStore] = None) -> int:
    cfg = _config_from_args(args)
    cfg.validate()
    _publish(store if store is not None else _store_for(cfg, args), cfg, args)
    return 0


def cmd_await(args: argparse.Namespace, store: Optional[CoordinationStore] = None) -> int:
    cfg = _config_from_args(args)
    verdict = _await(store if store is not None else _build_dynamodb_store(cfg), cfg, args)
    _log("INFO", f"Verdict: {verdict}")
    return 0


def cmd_run(args: argparse.Namespace, store: Optional[CoordinationStore] = None) -> int:
    cfg = _config_from_args(args)
    cfg.validate()
    if store is None:
        store = _store_for(cfg, args)
    _publish(store, cfg, args)
    if args.dry_run:
        return 0
    outcome = map_verdict(_await(store, cfg, args))
    if outcome.passed:
        _log("SUCCESS", f"Verdict: {outcome.verdict}")
        return 0
    _log("FAILED", outcome.message)
    return 2


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--run-id", required=True, help="Analysis run UID (record key).")
    parser.add_argument("--table", default=DEFAULT_TABLE_NAME)
    parser.add_argument("--region", default=DEFAULT_REGION)
    parser.add_argument("--endpoint-url", default=DYNAMODB_ENDPOINT_URL)
    parser.add_argument("--cluster-id", default="")
    parser.add_argument("--namespace", default="")
    parser.add_argument("--log-level", default=None)


def _add_publish_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--template", required=True, help="Analysis template name.")
    parser.add_argument("--publish-timeout", type=float, default=PUBLISH_TIMEOUT_SECONDS)
    parser.add_argument("--dry-run", action="store_true", help="Print the item instead of writing it.")


def _add_poll_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--poll-interval", type=float, default=DEFAULT_POLL_INTERVAL_SECONDS)
    parser.add_argument("--poll-timeout", type=float, default=DEFAULT_POLL_TIMEOUT_SECONDS)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Coordinate an analysis run with an external verdict writer through DynamoDB.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    publish = sub.add_parser("publish", help="Write the coordination record and exit.")
    _add_common(publish)
    _add_publish_args(publish)
    publish.set_defaults(func=cmd_publish)

    wait = sub.add_parser("await", help="Poll for the verdict of an existing record.")
    _add_common(wait)
    _add_poll_args(wait)
    wait.set_defaults(func=cmd_await)

    run = sub.add_parser("run", help="Publish, wait for the verdict and map it to an exit code.")
    _add_common(run)
    _add_publish_args(run)
    _add_poll_args(run)
    run.set_defaults(func=cmd_run)
    return parser


def main(argv: Optional[List[str]] = None, store: Optional[CoordinationStore] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)
    try:
        return args.func(args, store)
    except CoordinationError as exc:
        _log("ERROR", f"{type(exc).__name__}: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
