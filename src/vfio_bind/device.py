"""
PCI device identifiers.

A device is addressed by its BDF (domain:bus:device.function), the name
under which it appears in /sys/bus/pci/devices.
"""

import re
from dataclasses import dataclass

from .common.exceptions import DeviceNotFoundError


BDF_PATTERN = re.compile(
    r"^(?:(?P<domain>[0-9a-fA-F]{4,8}):)?"
    r"(?P<bus>[0-9a-fA-F]{2}):"
    r"(?P<device>[0-9a-fA-F]{2})\."
    r"(?P<function>[0-7])$"
)


@dataclass(frozen=True)
class DeviceIdentifier:
    """A normalized PCI address, e.g. 0000:00:03.0."""

    domain: str     # e.g., "0000"
    bus: str        # e.g., "00"
    device: str     # e.g., "03"
    function: str   # e.g., "0"

    @classmethod
    def parse(cls, value: str) -> "DeviceIdentifier":
        """
        Parse a BDF string.

        The short form "bus:device.function" gets domain 0000. Anything
        that is not a BDF cannot name an entry under the PCI device tree
        and is reported as an unknown device.

        Raises:
            DeviceNotFoundError: value is not a PCI address
        """
        match = BDF_PATTERN.match(value.strip())
        if match is None:
            raise DeviceNotFoundError(value, "not a PCI address (expected dddd:bb:dd.f)")

        return cls(
            domain=(match.group("domain") or "0000").lower(),
            bus=match.group("bus").lower(),
            device=match.group("device").lower(),
            function=match.group("function"),
        )

    @property
    def address(self) -> str:
        return f"{self.domain}:{self.bus}:{self.device}.{self.function}"

    def __str__(self) -> str:
        return self.address
