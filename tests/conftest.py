"""Pytest config: PYTHONPATH, env and HTTP stub helpers for tests."""
import json
import os
import sys
from pathlib import Path

import httpx
import pytest

root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(root))
os.environ.setdefault("OPENAI_API_KEY", "sk-test-dummy")
os.environ.setdefault("ASTROLOGY_API_USER_ID", "test-user")
os.environ.setdefault("ASTROLOGY_API_KEY", "test-key")
os.environ.setdefault("MODERATION_ENABLED", "false")


class Recorder:
    """httpx.MockTransport handler that records requests and answers from a route table."""

    def __init__(self, routes=None):
        # path suffix -> (status, json body) or callable(request) -> httpx.Response
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, answer in self.routes.items():
            if request.url.path.endswith(suffix):
                if callable(answer):
                    return answer(request)
                status, body = answer
                return httpx.Response(status, json=body)
        return httpx.Response(404, text="no route")

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def body(self, index: int) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def http_client(recorder):
    with httpx.Client(transport=httpx.MockTransport(recorder)) as client:
        yield client
