"""Test utilities for nadder applications.

Drives the ASGI app directly, with no network involved::

    from nadder.testing import TestClient
"""

from nadder.testing.client import TestClient, TestResponse, WebSocketRejected, WebSocketSession

__all__ = ["TestClient", "TestResponse", "WebSocketRejected", "WebSocketSession"]
