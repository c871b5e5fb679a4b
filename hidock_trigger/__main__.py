"""Allow ``python -m hidock_trigger`` to launch the supervisor daemon."""

from __future__ import annotations

from .app.main import run

if __name__ == "__main__":
    run()
