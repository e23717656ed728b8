"""Test doubles for the process, rasterizer and tray seams"""
from .process_mock import FakeCommandRunner
from .rasterizer_mock import FakeRasterizer
from .tray_mock import FakeTrayBackend

__all__ = [
    "FakeCommandRunner",
    "FakeRasterizer",
    "FakeTrayBackend",
]
