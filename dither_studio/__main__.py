"""Run the dithering service with ``python -m dither_studio``."""

from __future__ import annotations

import logging

from .app import app
from .config import SETTINGS

logger = logging.getLogger("dither-studio")


def main() -> None:
    """Serve the app on ``PORT`` with the Flask development server."""
    logger.info("Starting dither-studio on port %d", SETTINGS.port)
    app.run(host="0.0.0.0", port=SETTINGS.port, debug=False)


if __name__ == "__main__":
    main()
