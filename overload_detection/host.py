"""Host and VM model with bounded per-dimension histories."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Optional

from .statistics import trim_zero_tail

# Samples kept per dimension; matches the consolidation cycle window.
HISTORY_LENGTH = 30


class Dimension(Enum):
    """Resource dimensions evaluated independently."""

    MIPS = "mips"
    IOPS = "iops"


@dataclass
class Vm:
    vm_id: str
    requested_mips: float = 0.0
    requested_iops: float = 0.0

    def __post_init__(self) -> None:
        self.requested_mips = float(self.requested_mips)
        self.requested_iops = float(self.requested_iops)
        demand = (self.requested_mips, self.requested_iops)
        if not all(math.isfinite(value) and value >= 0 for value in demand):
            raise ValueError(
                f"VM {self.vm_id} demand must be finite and non-negative "
                f"(mips={self.requested_mips}, iops={self.requested_iops})"
            )

    def requested(self, dimension: Dimension) -> float:
        if dimension is Dimension.MIPS:
            return self.requested_mips
        return self.requested_iops


@dataclass(frozen=True)
class HistoryEntry:
    """One threshold decision recorded on a host."""

    time: float
    utilization: float
    threshold: float


@dataclass
class Host:
    """A physical host as seen by the overload policies.

    Utilization histories are chronological (oldest first) and bounded to
    ``history_length`` samples. The threshold history is written by the
    policies and only read by trend/consolidation logic elsewhere.
    """

    host_id: str
    total_mips: float
    total_iops: float
    vms: List[Vm] = field(default_factory=list)
    history_length: int = HISTORY_LENGTH

    _utilization: Dict[Dimension, Deque[float]] = field(init=False, repr=False, compare=False)
    _thresholds: Dict[Dimension, Deque[HistoryEntry]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for name in ("total_mips", "total_iops"):
            value = float(getattr(self, name))
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"host {self.host_id}: {name} must be a positive finite number, got {value}")
            setattr(self, name, value)
        if int(self.history_length) < 1:
            raise ValueError(f"host {self.host_id}: history_length must be >= 1")
        self.history_length = int(self.history_length)
        self._utilization = {dim: deque(maxlen=self.history_length) for dim in Dimension}
        self._thresholds = {dim: deque(maxlen=self.history_length) for dim in Dimension}

    # ------------------------------------------------------------------
    def capacity(self, dimension: Dimension) -> float:
        if dimension is Dimension.MIPS:
            return self.total_mips
        return self.total_iops

    def total_requested(self, dimension: Dimension) -> float:
        return sum(vm.requested(dimension) for vm in self.vms)

    def requested_utilization(self, dimension: Dimension) -> float:
        """Requested demand of all VMs as a fraction of capacity."""

        return self.total_requested(dimension) / self.capacity(dimension)

    # ------------------------------------------------------------------
    def utilization_history(self, dimension: Dimension) -> List[float]:
        return list(self._utilization[dimension])

    def recent_utilization_history(self, dimension: Dimension) -> List[float]:
        """Newest sample first, with the idle run at the oldest end trimmed."""

        return trim_zero_tail(list(reversed(self._utilization[dimension])))

    def add_utilization_sample(self, dimension: Dimension, ratio: float) -> None:
        ratio = float(ratio)
        if not math.isfinite(ratio):
            raise ValueError(f"host {self.host_id}: utilization sample must be finite, got {ratio}")
        self._utilization[dimension].append(ratio)

    def record_utilization(self) -> Dict[Dimension, float]:
        """Append the current requested utilization of every dimension."""

        sample = {dim: self.requested_utilization(dim) for dim in Dimension}
        for dim, ratio in sample.items():
            self.add_utilization_sample(dim, ratio)
        return sample

    # ------------------------------------------------------------------
    def threshold_history(self, dimension: Dimension) -> List[HistoryEntry]:
        return list(self._thresholds[dimension])

    def last_threshold(self, dimension: Dimension) -> Optional[HistoryEntry]:
        entries = self._thresholds[dimension]
        return entries[-1] if entries else None

    def add_history_entry(
        self,
        dimension: Dimension,
        time: float,
        utilization: float,
        threshold: float,
    ) -> HistoryEntry:
        entry = HistoryEntry(float(time), float(utilization), float(threshold))
        self._thresholds[dimension].append(entry)
        return entry
