"""
Models for the NeoHub daemon.

- RunRequest: immutable request sent by the CLI over the socket
- EditorID / Editor: registry key and managed editor instance
- ForegroundApp / HubWindow / ActivationTarget: focus bookkeeping
"""

from .request import RunRequest, EditorID
from .editor import Editor
from .activation import (
    ForegroundApp,
    HubWindow,
    HubWindowTarget,
    EditorTarget,
    ForeignAppTarget,
    ActivationTarget,
)

__all__ = [
    "RunRequest",
    "EditorID",
    "Editor",
    "ForegroundApp",
    "HubWindow",
    "HubWindowTarget",
    "EditorTarget",
    "ForeignAppTarget",
    "ActivationTarget",
]
