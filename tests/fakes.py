"""
In-memory stand-ins for ``requests.Session`` and ``time.sleep``.
"""

from __future__ import annotations

import json
from collections import defaultdict, deque
from typing import Any, Dict, List, Optional, Tuple

TESSER_URL = "https://tesser.test"
AUTH_URL = "https://auth.test/oauth/token"
CIRCLE_URL = "https://circle.test"


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """
    Routes ``(METHOD, url)`` to queued responses.

    The last queued response for a route is reused once the queue drains.
    A queued exception is raised instead of returned.
    """

    def __init__(self) -> None:
        self._routes: Dict[Tuple[str, str], deque] = defaultdict(deque)
        self.calls: List[Dict[str, Any]] = []

    def add(self, method: str, url: str, *responses: Any) -> None:
        self._routes[(method, url)].extend(responses)

    def add_json(self, method: str, url: str, *payloads: Any, status: int = 200) -> None:
        self.add(method, url, *(FakeResponse(status, payload) for payload in payloads))

    def _respond(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        queue = self._routes.get((method, url))
        if not queue:
            raise AssertionError(f"Unexpected request {method} {url}")
        response = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond(method, url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("POST", url, **kwargs)

    def calls_to(self, method: str, url: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["method"] == method and c["url"] == url]

    def json_bodies(self, method: str, url: str) -> List[Any]:
        return [json.loads(c["data"]) for c in self.calls_to(method, url)]


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def payment_payload(payment_id: str, *steps: Dict[str, Any]) -> Dict[str, Any]:
    return {"data": {"id": payment_id, "steps": list(steps)}}


def step(sequence: int, status: str = "pending", **extra: Any) -> Dict[str, Any]:
    return {"stepSequence": sequence, "status": status, **extra}
