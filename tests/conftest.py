from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import pytest

from overload_detection import Dimension, Host, Vm


class RecordingFallback:
    """Fallback double that remembers which dimension was asked."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.calls = []

    def is_host_over_utilized(self, host):
        self.calls.append((Dimension.MIPS, host.host_id))
        return self.answer

    def is_host_over_utilized_io(self, host):
        self.calls.append((Dimension.IOPS, host.host_id))
        return self.answer


def seed_history(host: Host, dimension: Dimension, samples) -> None:
    for ratio in samples:
        host.add_utilization_sample(dimension, ratio)


# Sorted, the 4th and 10th values are 0.4 and 0.6, so the IQR is 0.2.
IQR_02_HISTORY = [0.5, 0.3, 0.7, 0.4, 0.5, 0.6, 0.3, 0.5, 0.7, 0.5, 0.3, 0.7, 0.5]


@pytest.fixture
def host():
    return Host("node-1", total_mips=1000.0, total_iops=1000.0)


@pytest.fixture
def fallback():
    return RecordingFallback()


def set_demand(host: Host, mips: float = 0.0, iops: float = 0.0) -> None:
    host.vms = [Vm("vm-a", mips / 2, iops / 2), Vm("vm-b", mips / 2, iops / 2)]
