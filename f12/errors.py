from __future__ import annotations


class F12Error(Exception):
    """Base class for control-loop errors."""


class DemandQueryFailed(F12Error):
    pass


class SchedulerInitFailed(F12Error):
    pass


class SchedulerCountFailed(F12Error):
    pass


class SchedulerReconcileFailed(F12Error):
    pass


class TelemetryPushFailed(F12Error):
    pass
