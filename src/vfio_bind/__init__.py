"""vfio-bind - PCI device rebinding to vfio-pci.

This module provides:
- PCI address parsing and normalization
- A device control backend over sysfs
- The rebind operation (unbind, driver_override, probe)
"""

from .device import DeviceIdentifier
from .backend import DeviceBackend, SysfsBackend
from .rebinder import DeviceRebinder, RebindResult, rebind

__all__ = [
    "DeviceIdentifier",
    "DeviceBackend",
    "SysfsBackend",
    "DeviceRebinder",
    "RebindResult",
    "rebind",
]

__version__ = "0.1.0"
