from __future__ import annotations

import json as jsonlib
from typing import Any

import pytest
import requests

from binance_proxy.config import Credential


def make_response(status_code: int, body: Any = None, *, text: str | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    if text is not None:
        response._content = text.encode("utf-8")  # noqa: SLF001
    elif body is not None:
        response._content = jsonlib.dumps(body).encode("utf-8")  # noqa: SLF001
    else:
        response._content = b""  # noqa: SLF001
    # Marks the body as read so iter_content replays it instead of touching raw.
    response._content_consumed = True  # noqa: SLF001
    return response


class StubSession:
    """Stands in for ``requests.Session`` and records every call."""

    def __init__(self, outcome: requests.Response | BaseException | None = None) -> None:
        self.outcome = outcome if outcome is not None else make_response(200, {})
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def credential() -> Credential:
    return Credential(key="test-key", secret="S")


@pytest.fixture
def fixed_clock():
    return lambda: 1000
