"""Polling scheduler package."""

from .polling import JOB_ID, PollingScheduler

__all__ = ["JOB_ID", "PollingScheduler"]
