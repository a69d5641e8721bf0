"""
Device Rebind - moves a PCI device over to the vfio-pci driver.

The device is detached from whatever driver currently owns it, its
driver_override is pointed at vfio-pci and the bus is asked to probe it
again so vfio-pci claims it. Every step is attempted once and the first
failure aborts the rest; nothing is rolled back.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Optional, List, TextIO, Union

from .common.decorators import timed
from .common.exceptions import DriverOperationFailedError
from .common.logging_config import LogContext

from .backend import DeviceBackend, SysfsBackend
from .device import DeviceIdentifier

logger = logging.getLogger(__name__)


@dataclass
class RebindResult:
    """Result of a rebind."""
    bdf: str
    vendor_id: str
    device_id: str
    previous_driver: str
    bound_driver: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        """True if the device ended up on vfio-pci."""
        return self.bound_driver == DeviceRebinder.VFIO_DRIVER


class DeviceRebinder:
    """
    Rebinds PCI devices to vfio-pci.

    Progress lines go to `out` (stdout unless given); diagnostics go to
    the log.
    """

    VFIO_DRIVER = "vfio-pci"
    VFIO_MODULES = ("vfio", "vfio_iommu_type1", "vfio_pci")

    def __init__(self, backend: Optional[DeviceBackend] = None, out: Optional[TextIO] = None):
        self.backend = backend or SysfsBackend()
        self._out = out

    def load_modules(self) -> None:
        """Make sure the vfio modules are loaded."""
        for module in self.VFIO_MODULES:
            self.backend.load_module(module)

    @timed
    def rebind(self, device: Union[str, DeviceIdentifier]) -> RebindResult:
        """
        Rebind a device to vfio-pci.

        Args:
            device: PCI address (e.g., "0000:00:03.0") or DeviceIdentifier

        Returns:
            RebindResult describing the device before and after.

        Raises:
            DeviceNotFoundError: no such device
            DriverOperationFailedError: device has no driver, or the
                kernel rejected a write
        """
        if not isinstance(device, DeviceIdentifier):
            device = DeviceIdentifier.parse(device)
        bdf = device.address

        with LogContext(bdf=bdf):
            self.load_modules()

            vendor_id = self.backend.read_attribute(bdf, "vendor").replace("0x", "")
            device_id = self.backend.read_attribute(bdf, "device").replace("0x", "")

            current_driver = self.backend.current_driver(bdf)
            if current_driver is None:
                raise DriverOperationFailedError(bdf, "unbind", "device is not bound to a driver")

            logger.info(f"{bdf} [{vendor_id}:{device_id}] is bound to {current_driver}")
            if current_driver == self.VFIO_DRIVER:
                logger.info(f"{bdf} already bound to {self.VFIO_DRIVER}, rebinding anyway")

            self._progress(f"Unbinding {bdf} ...")
            self.backend.unbind(bdf, current_driver)

            self._progress(f"Binding {bdf} to {self.VFIO_DRIVER} driver")
            self.backend.set_override(bdf, self.VFIO_DRIVER)
            self.backend.trigger_probe(bdf)

            result = RebindResult(
                bdf=bdf,
                vendor_id=vendor_id,
                device_id=device_id,
                previous_driver=current_driver,
                bound_driver=self.backend.current_driver(bdf),
            )

            if not result.verified:
                warning = (
                    f"{bdf} is bound to {result.bound_driver or 'no driver'} "
                    f"after probe, expected {self.VFIO_DRIVER}"
                )
                logger.warning(warning)
                result.warnings.append(warning)
            else:
                logger.info(f"Bound {bdf} to {self.VFIO_DRIVER}")

        return result

    def _progress(self, message: str) -> None:
        print(message, file=self._out or sys.stdout, flush=True)


def rebind(device: Union[str, DeviceIdentifier],
           backend: Optional[DeviceBackend] = None) -> RebindResult:
    """
    Convenience function to rebind a device to vfio-pci.

    Args:
        device: PCI address
        backend: DeviceBackend to use (default: sysfs)

    Returns:
        RebindResult; raises RebindError subclasses on failure.
    """
    return DeviceRebinder(backend).rebind(device)
