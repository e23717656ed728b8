"""pytest configuration and global fixtures"""
import os
import sys
from pathlib import Path

import pytest

# Qt must not need a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from rivaltray.core.services.config.config_service import ConfigService  # noqa: E402
from rivaltray.utils import unified_logger  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_log_dir(tmp_path):
    """Keep log files out of the user's state directory"""
    unified_logger.set_log_dir(tmp_path / "logs")
    yield


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config" / "config.json"


@pytest.fixture
def config_service(config_path):
    """Started ConfigService on a temporary file"""
    service = ConfigService(str(config_path), save_delay=0.01)
    service.start()
    yield service
    service.stop()


@pytest.fixture
def runtime_dir(tmp_path):
    return tmp_path / "runtime" / "rivaltray"


# ============= Fakes =============

@pytest.fixture
def fake_runner():
    from mocks import FakeCommandRunner

    return FakeCommandRunner()


@pytest.fixture
def fake_rasterizer():
    from mocks import FakeRasterizer

    return FakeRasterizer()


@pytest.fixture
def fake_backend():
    from mocks import FakeTrayBackend

    return FakeTrayBackend()
