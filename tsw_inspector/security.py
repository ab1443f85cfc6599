from __future__ import annotations

import uuid

from flask import g, request


def assign_request_id() -> None:
    incoming = request.headers.get("X-Request-Id", "").strip()
    g.request_id = incoming[:64] if incoming else str(uuid.uuid4())


def attach_security_headers(response):
    # The page only ever talks to this server; the simulation is reached server-side.
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
    response.headers[
        "Content-Security-Policy"
    ] = (
        "default-src 'self'; "
        "script-src 'self'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; "
        "connect-src 'self'; "
        "object-src 'none';"
    )

    if request.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store"

    if hasattr(g, "request_id"):
        response.headers["X-Request-Id"] = g.request_id

    return response
