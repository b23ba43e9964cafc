# Models package
from .router_profile import RouterProfile
from .netwatch_device import NetwatchDevice
from .status_change import NetwatchStatusChange

__all__ = ['RouterProfile', 'NetwatchDevice', 'NetwatchStatusChange']
