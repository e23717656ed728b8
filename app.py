#!/usr/bin/env python3
"""
RivalTray - Application Entry Point

Runs straight from a source checkout without installing the package.

Usage:
  python app.py                 # Start the tray icon (default)
  python app.py --once          # Sample the battery once
  python app.py --diagnostics   # Inspect the desktop session
"""

import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from rivaltray.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
