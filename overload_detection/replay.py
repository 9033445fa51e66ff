#!/usr/bin/env python3
"""Offline harness replaying recorded host demand through the IQR policy."""

from __future__ import annotations

import argparse
import csv
import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .host import Dimension, Host, Vm
from .policies import (
    DEFAULT_STATIC_THRESHOLD,
    MIN_HISTORY_IOPS,
    MIN_HISTORY_MIPS,
    IqrOverloadPolicy,
    StaticThresholdPolicy,
)
from .statistics import has_sufficient_history

Sample = Tuple[datetime, float, float]

# Exit code for bad flags or input rows, same as InvalidSafetyParameterError.
CONFIG_EXIT_CODE = 2


@dataclass
class Decision:
    timestamp: datetime
    dimension: Dimension
    utilization: float
    threshold: Optional[float]
    overloaded: bool
    adaptive: bool


def load_samples(path: Path) -> List[Sample]:
    """Read ``timestamp,requested_mips,requested_iops`` rows.

    Demand must be finite and non-negative; a bad row raises ``ValueError``
    naming its line.
    """

    samples: List[Sample] = []
    with path.open() as f:
        reader = csv.DictReader(f)
        for row in reader:
            mips = float(row["requested_mips"])
            iops = float(row["requested_iops"])
            if not all(math.isfinite(value) and value >= 0 for value in (mips, iops)):
                raise ValueError(
                    f"{path}:{reader.line_num}: demand must be finite and non-negative "
                    f"(mips={mips}, iops={iops})"
                )
            samples.append((datetime.fromisoformat(row["timestamp"]), mips, iops))
    return samples


def run_replay(samples: List[Sample], policy: IqrOverloadPolicy, host: Host) -> List[Decision]:
    """Evaluate both dimensions once per sample, then append it to history.

    The host's VM list is replaced by a single VM carrying the row's demand.
    """

    decisions: List[Decision] = []

    for ts, mips, iops in samples:
        host.vms = [Vm("replay", mips, iops)]
        for dimension, check in (
            (Dimension.MIPS, policy.is_host_over_utilized),
            (Dimension.IOPS, policy.is_host_over_utilized_io),
        ):
            history = host.recent_utilization_history(dimension)
            adaptive = has_sufficient_history(history, policy.min_history[dimension])
            previous = host.last_threshold(dimension)
            overloaded = check(host)
            entry = host.last_threshold(dimension)
            decisions.append(
                Decision(
                    timestamp=ts,
                    dimension=dimension,
                    utilization=host.requested_utilization(dimension),
                    threshold=entry.threshold if entry is not previous else None,
                    overloaded=overloaded,
                    adaptive=adaptive,
                )
            )
        host.record_utilization()

    return decisions


def build_policy(args: argparse.Namespace, host: Host) -> IqrOverloadPolicy:
    fallback = StaticThresholdPolicy(args.fallback_threshold)
    return IqrOverloadPolicy(
        [host],
        None,
        None,
        weight_mips_util=args.weight_mips,
        weight_iops_util=args.weight_iops,
        safety_parameter=args.safety_parameter,
        fallback=fallback,
        min_history_mips=args.min_history_mips,
        min_history_iops=args.min_history_iops,
    )


def prepare(args: argparse.Namespace) -> Tuple[Host, IqrOverloadPolicy]:
    """Build the replay host and policy, raising ``ValueError`` on bad flags."""

    host = Host("replay", args.total_mips, args.total_iops, history_length=args.history_length)
    for flag, minimum in (
        ("--min-history-mips", args.min_history_mips),
        ("--min-history-iops", args.min_history_iops),
    ):
        if minimum > host.history_length:
            raise ValueError(
                f"{flag}={minimum} exceeds --history-length={host.history_length}; "
                "the IQR threshold could never apply"
            )
    return host, build_policy(args, host)


def run_cli(args: argparse.Namespace, tag: str) -> Tuple[int, List[Decision]]:
    """Replay ``args.csv`` and return (exit_code, decisions).

    Bad flags or input rows are logged and yield a non-zero exit code.
    """

    try:
        host, policy = prepare(args)
        samples = load_samples(args.csv)
    except ValueError as exc:
        logging.error("[%s] %s", tag, exc)
        return getattr(exc, "exit_code", CONFIG_EXIT_CODE), []
    return 0, run_replay(samples, policy, host)


def add_policy_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("csv", type=Path, help="CSV with timestamp,requested_mips,requested_iops columns")
    ap.add_argument("--total-mips", type=float, default=1000.0, help="Host compute capacity (MIPS)")
    ap.add_argument("--total-iops", type=float, default=1000.0, help="Host I/O capacity (IOPS)")
    ap.add_argument("--history-length", type=int, default=30, help="Utilization samples kept per dimension")
    ap.add_argument("--safety-parameter", type=float, default=1.5, help="IQR multiplier (must be >= 0)")
    ap.add_argument("--fallback-threshold", type=float, default=DEFAULT_STATIC_THRESHOLD,
                    help="Static threshold used while history is too short")
    ap.add_argument("--min-history-mips", type=int, default=MIN_HISTORY_MIPS,
                    help="Most recent non-zero MIPS samples required for the IQR threshold")
    ap.add_argument("--min-history-iops", type=int, default=MIN_HISTORY_IOPS,
                    help="Most recent non-zero IOPS samples required for the IQR threshold")
    ap.add_argument("--weight-mips", type=float, default=0.5, help="MIPS weight passed to the orchestrator")
    ap.add_argument("--weight-iops", type=float, default=0.5, help="IOPS weight passed to the orchestrator")
    ap.add_argument("--log-level", default=os.getenv("OVERLOAD_LOG", "WARNING"),
                    help="Logging level (DEBUG, INFO, WARNING, ...)")


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Replay recorded host demand through the IQR overload detector")
    add_policy_arguments(ap)
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    exit_code, decisions = run_cli(args, "Replay")
    if exit_code:
        return exit_code
    for decision in decisions:
        if not decision.overloaded:
            continue
        source = "iqr" if decision.adaptive else "fallback"
        threshold = "n/a" if decision.threshold is None else f"{decision.threshold:.3f}"
        print(
            f"{decision.timestamp.isoformat()} OVERLOAD {decision.dimension.value.upper():<4} "
            f"util={decision.utilization:.3f} threshold={threshold} via={source}"
        )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
