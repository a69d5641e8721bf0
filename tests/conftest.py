"""
Pytest configuration and shared fixtures for vfio-bind tests.

Provides a fake sysfs tree, an in-memory device backend and mocks for
system-level functionality.
"""

import logging
import logging.handlers
import os
import pytest
from unittest.mock import MagicMock, patch
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vfio_bind.common.exceptions import DeviceNotFoundError, DriverOperationFailedError  # noqa: E402
from vfio_bind.backend import DeviceBackend  # noqa: E402


NIC_BDF = "0000:00:03.0"


# ============ Logging Fixtures ============

@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler changes made by setup_logging()."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.handlers.RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


# ============ Sysfs Fixtures ============

@pytest.fixture
def sysfs(tmp_path: Path) -> Path:
    """
    Fake /sys with one Intel NIC at 0000:00:03.0 bound to e1000e.

    The drivers for e1000e and vfio-pci exist; control files are plain
    files that record what was written.
    """
    root = tmp_path / "sys"
    pci = root / "bus" / "pci"
    drivers = pci / "drivers"

    for driver in ("e1000e", "vfio-pci"):
        (drivers / driver).mkdir(parents=True)

    device = pci / "devices" / NIC_BDF
    device.mkdir(parents=True)
    (device / "vendor").write_text("0x8086\n")
    (device / "device").write_text("0x10d3\n")
    (device / "driver_override").write_text("(null)\n")
    (device / "driver").symlink_to(drivers / "e1000e")

    (pci / "drivers_probe").touch()
    return root


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for tests."""
    with patch('subprocess.run') as mock_run:
        mock_run.return_value = MagicMock(
            returncode=0,
            stdout="",
            stderr="",
        )
        yield mock_run


# ============ Fake Backend ============

class FakeBackend(DeviceBackend):
    """
    In-memory device model.

    Mirrors how the kernel reacts to the control files: unbind detaches
    the device from its driver, and a probe binds an unclaimed device to
    its override driver if that driver is registered.
    """

    def __init__(self, drivers=("e1000e", "vfio-pci")):
        self.drivers = set(drivers)
        self.devices: Dict[str, Dict[str, Optional[str]]] = {}
        self.modules: List[str] = []
        self.writes: List[Tuple[str, str, str]] = []
        self.reject: set = set()

    def add_device(self, bdf: str, vendor: str = "0x8086", device: str = "0x10d3",
                   driver: Optional[str] = None) -> None:
        self.devices[bdf] = {
            "vendor": vendor,
            "device": device,
            "driver": driver,
            "driver_override": None,
        }

    def read_attribute(self, bdf, name):
        if bdf not in self.devices:
            raise DeviceNotFoundError(bdf)
        return self.devices[bdf][name]

    def current_driver(self, bdf):
        if bdf not in self.devices:
            return None
        return self.devices[bdf]["driver"]

    def unbind(self, bdf, driver):
        self._check("unbind", bdf)
        if self.devices[bdf]["driver"] != driver:
            raise DriverOperationFailedError(bdf, "unbind", "No such device")
        self.writes.append(("unbind", bdf, driver))
        self.devices[bdf]["driver"] = None

    def set_override(self, bdf, driver):
        self._check("set_override", bdf)
        self.writes.append(("set_override", bdf, driver))
        self.devices[bdf]["driver_override"] = driver

    def trigger_probe(self, bdf):
        self._check("trigger_probe", bdf)
        self.writes.append(("trigger_probe", bdf, ""))
        state = self.devices[bdf]
        if state["driver"] is None and state["driver_override"] in self.drivers:
            state["driver"] = state["driver_override"]

    def load_module(self, name):
        self.modules.append(name)
        return True

    def _check(self, operation, bdf):
        if operation in self.reject:
            raise DriverOperationFailedError(bdf, operation, "Device or resource busy")


@pytest.fixture
def fake_backend() -> FakeBackend:
    """FakeBackend with 0000:00:03.0 bound to e1000e."""
    backend = FakeBackend()
    backend.add_device(NIC_BDF, driver="e1000e")
    return backend


# ============ Marker Configuration ============

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "requires_root: marks tests that need root privileges"
    )
    config.addinivalue_line(
        "markers", "unit: fast unit tests with no external deps"
    )
    config.addinivalue_line(
        "markers", "hardware: hardware-dependent tests"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests based on environment."""
    skip_hw = pytest.mark.skip(reason="Hardware tests disabled in CI")
    skip_root = pytest.mark.skip(reason="Requires root privileges")

    for item in items:
        if "hardware" in item.keywords and os.environ.get("CI"):
            item.add_marker(skip_hw)

        if "requires_root" in item.keywords:
            try:
                if os.getuid() != 0:
                    item.add_marker(skip_root)
            except AttributeError:
                # Windows doesn't have getuid
                item.add_marker(skip_root)
