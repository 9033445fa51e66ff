"""Host overload policies: adaptive IQR threshold with a fallback chain.

``IqrOverloadPolicy`` derives an upper utilization threshold from each host's
own history, separately for MIPS and IOPS::

    threshold = 1 - safety_parameter * IQR(history)

The history is read newest first with the idle run at its oldest end trimmed.
A dimension whose most recent ``min_history_*`` samples are not all non-zero
cannot produce a meaningful IQR; the question is then forwarded, as is, to the
configured fallback policy. Both dimensions route through the same
fallback instance but are decided independently.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Sequence, runtime_checkable

from .host import Dimension, Host
from .statistics import count_non_zero_beginning, iqr

# 12 samples was suggested as a safe minimum for MIPS histories. The IOPS
# default reuses it; nobody has validated it for I/O yet.
MIN_HISTORY_MIPS = 12
MIN_HISTORY_IOPS = 12

# Terminal fallback threshold used when none is given.
DEFAULT_STATIC_THRESHOLD = 0.7


class InvalidSafetyParameterError(ValueError):
    """Raised when a policy is configured with an unusable safety parameter."""

    def __init__(self, message: str, exit_code: int = 2):
        super().__init__(message)
        self.exit_code = exit_code


@runtime_checkable
class OverloadPolicy(Protocol):
    """Anything that can answer the overload question for both dimensions."""

    def is_host_over_utilized(self, host: Host) -> bool:
        ...

    def is_host_over_utilized_io(self, host: Host) -> bool:
        ...


@dataclass
class ConsolidationSettings:
    """Collaborator configuration held for the migration orchestrator.

    None of these values influence the overload decision itself.
    """

    hosts: Sequence[Host]
    vm_selection_policy: Any
    vm_selection_policy_io: Any
    weight_mips_util: float
    weight_iops_util: float
    utilization_threshold: Optional[float] = None


class StaticThresholdPolicy:
    """Overloaded when requested utilization exceeds a fixed threshold."""

    def __init__(
        self,
        utilization_threshold: float = DEFAULT_STATIC_THRESHOLD,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        threshold = float(utilization_threshold)
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"utilization threshold must be within [0, 1], got {threshold}")
        self.utilization_threshold = threshold
        self.clock = clock

    def is_host_over_utilized(self, host: Host) -> bool:
        return self._check(host, Dimension.MIPS)

    def is_host_over_utilized_io(self, host: Host) -> bool:
        return self._check(host, Dimension.IOPS)

    def _check(self, host: Host, dimension: Dimension) -> bool:
        utilization = host.requested_utilization(dimension)
        host.add_history_entry(dimension, self.clock(), utilization, self.utilization_threshold)
        return utilization > self.utilization_threshold


def _validate_min_history(name: str, value: int) -> int:
    if isinstance(value, bool) or int(value) != value or value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


class IqrOverloadPolicy:
    """Inter-quartile range overload detection for MIPS and IOPS."""

    def __init__(
        self,
        hosts: Sequence[Host],
        vm_selection_policy: Any,
        vm_selection_policy_io: Any,
        *,
        weight_mips_util: float,
        weight_iops_util: float,
        safety_parameter: float,
        fallback: OverloadPolicy,
        utilization_threshold: Optional[float] = None,
        min_history_mips: int = MIN_HISTORY_MIPS,
        min_history_iops: int = MIN_HISTORY_IOPS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._safety_parameter = self._validate_safety_parameter(safety_parameter)
        self.settings = ConsolidationSettings(
            hosts=list(hosts),
            vm_selection_policy=vm_selection_policy,
            vm_selection_policy_io=vm_selection_policy_io,
            weight_mips_util=float(weight_mips_util),
            weight_iops_util=float(weight_iops_util),
            utilization_threshold=utilization_threshold,
        )
        self.min_history = {
            Dimension.MIPS: _validate_min_history("min_history_mips", min_history_mips),
            Dimension.IOPS: _validate_min_history("min_history_iops", min_history_iops),
        }
        self.clock = clock
        self._fallback: Optional[OverloadPolicy] = None
        self.fallback = fallback

    # ------------------------------------------------------------------
    @staticmethod
    def _validate_safety_parameter(value: float) -> float:
        value = float(value)
        if not math.isfinite(value) or value < 0:
            raise InvalidSafetyParameterError(
                f"The safety parameter cannot be less than zero. The passed value is: {value}"
            )
        return value

    @property
    def safety_parameter(self) -> float:
        return self._safety_parameter

    @safety_parameter.setter
    def safety_parameter(self, value: float) -> None:
        self._safety_parameter = self._validate_safety_parameter(value)

    @property
    def fallback(self) -> OverloadPolicy:
        return self._fallback

    @fallback.setter
    def fallback(self, policy: OverloadPolicy) -> None:
        if policy is None:
            raise ValueError("a fallback overload policy is required")
        seen: List[int] = []
        node: Any = policy
        while node is not None:
            if node is self or id(node) in seen:
                raise ValueError("fallback chain must not loop back on itself")
            seen.append(id(node))
            node = getattr(node, "fallback", None)
        self._fallback = policy

    # ------------------------------------------------------------------
    def is_host_over_utilized(self, host: Host) -> bool:
        threshold = self.upper_threshold(host, Dimension.MIPS)
        if threshold is None:
            return self.fallback.is_host_over_utilized(host)
        return self._exceeds(host, Dimension.MIPS, threshold)

    def is_host_over_utilized_io(self, host: Host) -> bool:
        threshold = self.upper_threshold(host, Dimension.IOPS)
        if threshold is None:
            return self.fallback.is_host_over_utilized_io(host)
        return self._exceeds(host, Dimension.IOPS, threshold)

    def upper_threshold(self, host: Host, dimension: Dimension) -> Optional[float]:
        """Adaptive threshold, or None when the history is too short.

        Thresholds are not clamped: a large safety parameter can push them
        below zero, which makes every host overloaded.
        """

        history = host.recent_utilization_history(dimension)
        usable = count_non_zero_beginning(history)
        minimum = self.min_history[dimension]
        if usable < minimum:
            logging.debug(
                "[IQR] host %s %s history too short (%d < %d), using fallback",
                host.host_id,
                dimension.value,
                usable,
                minimum,
            )
            return None
        return 1 - self.safety_parameter * iqr(history)

    def _exceeds(self, host: Host, dimension: Dimension, threshold: float) -> bool:
        utilization = host.requested_utilization(dimension)
        host.add_history_entry(dimension, self.clock(), utilization, threshold)
        overloaded = utilization > threshold
        if overloaded:
            logging.debug(
                "[IQR] host %s %s overloaded: utilization %.3f > threshold %.3f",
                host.host_id,
                dimension.value,
                utilization,
                threshold,
            )
        return overloaded
