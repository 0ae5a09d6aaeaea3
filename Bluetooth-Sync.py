#!/usr/bin/env python3
"""Copy Bluetooth LE pairing keys from the Windows install into BlueZ."""

import sys

from bt_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
