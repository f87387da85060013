"""Helpers for tests of the gateway's error-tracking (Sentry) proxy.

Builds envelopes and auth headers the way the browser SDK does, so the proxy
can be exercised without a real frontend.
"""
from __future__ import annotations

import json
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

SDK_NAME = "sentry.javascript.react"
SDK_VERSION = "8.45.0"
SENTRY_PROTOCOL_VERSION = 7
ENVELOPE_CONTENT_TYPE = "application/x-sentry-envelope"


def generate_event_id() -> str:
    """Return a 32-character lowercase hex event id."""
    return secrets.token_hex(16)


def sentry_auth_header(sentry_key: str) -> str:
    return (
        f"Sentry sentry_key={sentry_key},sentry_version={SENTRY_PROTOCOL_VERSION},"
        f"sentry_client={SDK_NAME}/{SDK_VERSION}"
    )


def create_envelope(
    event_data: Dict[str, Any],
    sentry_key: str,
    project_id: str,
    host: str = "localhost:8080",
    event_id: Optional[str] = None,
) -> str:
    """Serialize one event as a three-line envelope (header, item header, payload).

    Keys in `event_data` override the generated payload defaults.
    """
    event_id = event_id or generate_event_id()
    envelope_header = {
        "event_id": event_id,
        "sent_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "dsn": f"http://{sentry_key}@{host}/sentry/{project_id}",
    }
    item_header = {"type": "event", "content_type": "application/json"}
    payload = {
        "event_id": event_id,
        "platform": "javascript",
        "timestamp": int(time.time()),
        "sdk": {"name": SDK_NAME, "version": SDK_VERSION},
        **event_data,
    }
    return "\n".join(json.dumps(part) for part in (envelope_header, item_header, payload))


def sentry_request_headers(sentry_key: str) -> Dict[str, str]:
    return {
        "Content-Type": ENVELOPE_CONTENT_TYPE,
        "X-Sentry-Auth": sentry_auth_header(sentry_key),
    }
