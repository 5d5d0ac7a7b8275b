import pathlib
import sys

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import epf`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch):
    """Give every test default configuration and no EPF_* overrides."""
    from epf.config import get_config_manager
    from epf.observability import configure_logging

    for var in ("EPF_LOG_LEVEL", "EPF_LOG_FORMAT", "EPF_LOG_REJECTIONS"):
        monkeypatch.delenv(var, raising=False)
    get_config_manager().reset()
    configure_logging()
    yield
    get_config_manager().reset()
    configure_logging()
