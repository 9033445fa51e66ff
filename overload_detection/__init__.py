"""Adaptive host overload detection primitives."""

from .host import HISTORY_LENGTH, Dimension, HistoryEntry, Host, Vm
from .policies import (
    MIN_HISTORY_IOPS,
    MIN_HISTORY_MIPS,
    ConsolidationSettings,
    InvalidSafetyParameterError,
    IqrOverloadPolicy,
    OverloadPolicy,
    StaticThresholdPolicy,
)
from .statistics import count_non_zero_beginning, has_sufficient_history, iqr, quartiles, trim_zero_tail

__all__ = [
    "HISTORY_LENGTH",
    "MIN_HISTORY_IOPS",
    "MIN_HISTORY_MIPS",
    "ConsolidationSettings",
    "Dimension",
    "HistoryEntry",
    "Host",
    "InvalidSafetyParameterError",
    "IqrOverloadPolicy",
    "OverloadPolicy",
    "StaticThresholdPolicy",
    "Vm",
    "count_non_zero_beginning",
    "has_sufficient_history",
    "iqr",
    "quartiles",
    "trim_zero_tail",
]
