"""
Shared FastAPI dependencies
"""

from fastapi import Request

from netwatch_monitor.collectors.netwatch_poller import NetwatchPoller
from netwatch_monitor.collectors.snapshot_source import SnapshotSource

def get_snapshot_source(request: Request) -> SnapshotSource:
    return request.app.state.snapshot_source

def get_poller(request: Request) -> NetwatchPoller:
    return request.app.state.poller
