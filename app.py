"""WSGI entrypoint for the TSW inspector."""

from __future__ import annotations

import os

from tsw_inspector import create_app

app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    # The poll timers live in this process; a reloader would fork a second copy.
    app.run(host="127.0.0.1", port=port, debug=False, threaded=True, use_reloader=False)


__all__ = ["app", "create_app"]
