from collections.abc import Callable
from typing import Any

import pytest

from tests.common import PROXY_ENV_VARS, SlowIpstackServer


@pytest.fixture
def local_ipstack(monkeypatch: pytest.MonkeyPatch) -> Callable[..., SlowIpstackServer]:
    """Factory pointing the ipstack clients at a local SlowIpstackServer."""
    for name in PROXY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    def _serve(payload: Any, byte_interval: float = 0.25) -> SlowIpstackServer:
        server = SlowIpstackServer(payload, byte_interval=byte_interval)
        monkeypatch.setattr("ipstack_lookup.clients.base.API_HOST", server.host)
        return server

    return _serve
