#!/usr/bin/env python3
"""
vfio-bind - Command Line Interface

Rebinds a single PCI device to the vfio-pci driver.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .common.exceptions import InvalidArgumentCountError, RebindError
from .common.logging_config import get_logger, setup_logging

from .backend import DeviceBackend
from .rebinder import DeviceRebinder

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vfio-bind",
        description="Rebind a PCI device to the vfio-pci driver",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vfio-bind 0000:01:00.0        # Move device to vfio-pci
  vfio-bind -v 01:00.0          # Short address, debug output
        """
    )
    parser.add_argument("devices", nargs="*", metavar="BDF",
                        help="PCI address of the device (domain:bus:device.function)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show debug output")
    parser.add_argument("--log-file", type=Path,
                        help="Also write logs to this file")
    parser.add_argument("--json-logs", action="store_true",
                        help="Use JSON format for the log file")
    return parser


def main(argv: Optional[List[str]] = None, backend: Optional[DeviceBackend] = None) -> int:
    """Main entry point."""
    # unknown options are rejected like extra device arguments
    args, extra = build_parser().parse_known_args(argv)
    arguments = args.devices + extra

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_file=args.log_file,
        json_logs=args.json_logs,
    )

    try:
        if len(args.devices) != 1 or extra:
            raise InvalidArgumentCountError(arguments)
        DeviceRebinder(backend).rebind(args.devices[0])
    except RebindError as e:
        logger.debug("rebind aborted", exc_info=True)
        print(str(e), file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
