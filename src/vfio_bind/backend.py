"""
Device control backends.

The rebind logic talks to the kernel through a DeviceBackend. The
SysfsBackend drives the real PCI device model under /sys; tests swap in
a fake that keeps the binding state in memory.
"""

from __future__ import annotations

import abc
import logging
import subprocess
from pathlib import Path
from typing import Optional, Union

from .common.decorators import handle_errors
from .common.exceptions import DeviceNotFoundError, DriverOperationFailedError

logger = logging.getLogger(__name__)


class DeviceBackend(abc.ABC):
    """Operations the rebind needs from the kernel's device model."""

    @abc.abstractmethod
    def read_attribute(self, bdf: str, name: str) -> str:
        """
        Read a device attribute such as "vendor" or "device".

        Raises:
            DeviceNotFoundError: device entry missing or unreadable
        """

    @abc.abstractmethod
    def current_driver(self, bdf: str) -> Optional[str]:
        """Name of the driver bound to the device, None if unbound."""

    @abc.abstractmethod
    def unbind(self, bdf: str, driver: str) -> None:
        """Detach the device from driver."""

    @abc.abstractmethod
    def set_override(self, bdf: str, driver: str) -> None:
        """Force driver to be preferred the next time the device is probed."""

    @abc.abstractmethod
    def trigger_probe(self, bdf: str) -> None:
        """Ask the kernel to match the device against registered drivers."""

    @abc.abstractmethod
    def load_module(self, name: str) -> bool:
        """Load a kernel module; loading an already loaded one is a no-op."""


class SysfsBackend(DeviceBackend):
    """
    DeviceBackend over the PCI bus in sysfs.

    Every operation is a single read or write of a kernel control file.
    The root defaults to /sys and can point at any directory laid out the
    same way.
    """

    SYSFS_ROOT = Path("/sys")
    MODPROBE_TIMEOUT = 30

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root) if root is not None else self.SYSFS_ROOT
        self.devices_path = self.root / "bus" / "pci" / "devices"
        self.drivers_path = self.root / "bus" / "pci" / "drivers"
        self.probe_path = self.root / "bus" / "pci" / "drivers_probe"

    def device_path(self, bdf: str) -> Path:
        return self.devices_path / bdf

    def read_attribute(self, bdf: str, name: str) -> str:
        device_path = self.device_path(bdf)
        if not device_path.is_dir():
            raise DeviceNotFoundError(bdf, f"{device_path} does not exist")

        try:
            return (device_path / name).read_text().strip()
        except OSError as e:
            raise DeviceNotFoundError(bdf, f"cannot read {name}", cause=e) from e

    def current_driver(self, bdf: str) -> Optional[str]:
        driver_link = self.device_path(bdf) / "driver"
        if driver_link.exists():
            return driver_link.resolve().name
        return None

    def unbind(self, bdf: str, driver: str) -> None:
        self._write(self.drivers_path / driver / "unbind", bdf, bdf, "unbind")

    def set_override(self, bdf: str, driver: str) -> None:
        self._write(self.device_path(bdf) / "driver_override", driver, bdf,
                    "set driver override for")

    def trigger_probe(self, bdf: str) -> None:
        self._write(self.probe_path, bdf, bdf, "probe")

    @handle_errors(OSError, subprocess.SubprocessError, default=False,
                   log_level=logging.WARNING, message="modprobe failed")
    def load_module(self, name: str) -> bool:
        subprocess.run(
            ["modprobe", name],
            capture_output=True,
            text=True,
            timeout=self.MODPROBE_TIMEOUT,
            check=True,
        )
        logger.debug(f"Loaded kernel module {name}")
        return True

    def _write(self, path: Path, value: str, bdf: str, operation: str) -> None:
        logger.debug(f"Writing {value!r} to {path}")
        try:
            path.write_text(value)
        except OSError as e:
            reason = e.strerror or str(e)
            raise DriverOperationFailedError(bdf, operation, f"{path}: {reason}", cause=e) from e
