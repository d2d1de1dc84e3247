"""Device handlers for the managed appliance."""
from .base import NetworkDevice, DeviceConfig, DeviceCommandError
from .vyos import VyosDevice, find_nic_name_by_mac

__all__ = [
    "NetworkDevice",
    "DeviceConfig",
    "DeviceCommandError",
    "VyosDevice",
    "find_nic_name_by_mac",
]
