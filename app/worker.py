"""Standalone queue worker.

Runs the dispatcher in the foreground, outside the API process:

    python -m app.worker

SIGINT/SIGTERM let the current job finish, then exit.
"""

import logging
import signal

from app.core.logging import setup_logging
from app.services.dispatcher import QueueDispatcher

logger = logging.getLogger(__name__)


def main() -> None:
    setup_logging()
    dispatcher = QueueDispatcher()

    def signal_handler(signum, frame):
        logger.info("worker_signal_received", extra={"signal": signum})
        dispatcher.stop()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    dispatcher.run_forever()


if __name__ == "__main__":
    main()
