"""Allow ``python -m hidock_trigger.monitor`` to launch the monitor."""

from .main import run

if __name__ == "__main__":
    run()
