#!/usr/bin/env python3
"""Plot replayed host utilization against the adaptive thresholds."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt

from .host import Dimension
from .replay import Decision, add_policy_arguments, run_cli

_LABELS = {
    Dimension.MIPS: "Compute (MIPS)",
    Dimension.IOPS: "I/O (IOPS)",
}


def plot(decisions: List[Decision], output: Path) -> None:
    fig, axes = plt.subplots(len(Dimension), 1, figsize=(12, 7), sharex=True)

    for ax, dimension in zip(axes, Dimension):
        rows = [d for d in decisions if d.dimension is dimension]
        times = [d.timestamp for d in rows]
        ax.plot(times, [d.utilization for d in rows], label="Requested utilization", color="steelblue")

        adaptive = [d for d in rows if d.adaptive and d.threshold is not None]
        if adaptive:
            ax.step(
                [d.timestamp for d in adaptive],
                [d.threshold for d in adaptive],
                where="post",
                color="crimson",
                linestyle="--",
                label="IQR threshold",
            )
        fallback = [d for d in rows if not d.adaptive and d.threshold is not None]
        if fallback:
            ax.step(
                [d.timestamp for d in fallback],
                [d.threshold for d in fallback],
                where="post",
                color="grey",
                linestyle=":",
                label="Fallback threshold",
            )

        over = [d for d in rows if d.overloaded]
        if over:
            ax.scatter(
                [d.timestamp for d in over],
                [d.utilization for d in over],
                color="crimson",
                marker="s",
                s=40,
                zorder=5,
                label="Overloaded",
            )

        ax.set_ylabel(_LABELS[dimension])
        ax.legend(loc="upper left", bbox_to_anchor=(1.02, 1.0), borderaxespad=0.0)

    axes[-1].set_xlabel("Time")
    axes[0].set_title("Adaptive Overload Thresholds")
    fig.autofmt_xdate()

    fig.savefig(output, dpi=150, bbox_inches="tight")
    plt.close(fig)


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Plot replayed utilization against IQR thresholds")
    add_policy_arguments(ap)
    ap.add_argument("--output", type=Path, default=Path("overload_thresholds.png"))
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    exit_code, decisions = run_cli(args, "Plot")
    if exit_code:
        return exit_code
    plot(decisions, args.output)
    print(f"Saved plot to {args.output}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
