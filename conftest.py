"""Global test configuration.

Keeps the developer's SignalFx credentials and janitor overrides out of the
test environment.
"""

import pytest


@pytest.fixture(autouse=True)
def _clean_janitor_env(monkeypatch):
    import os

    for key in list(os.environ):
        if key.startswith("JANITOR_") or key in ("SFX_TOKEN", "SFX_ORG_ID"):
            monkeypatch.delenv(key, raising=False)
