"""Entry point for the HypoTrack storm track editor."""
from __future__ import annotations

import logging
import os
from pathlib import Path
import sys

from PyQt5 import QtWidgets

from hypotrack import TITLE, VERSION
from hypotrack.config import config_path, load_settings
from hypotrack.ui.main_window import HypoTrackWindow

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    base_dir = os.path.dirname(sys.argv[0])
    log_path = os.path.join(base_dir, "hypotrack_log.txt")

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_path, mode="a", encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )


def main_script_path() -> Path | None:
    """Path of the launched script or console entry point, if there is one."""
    if not sys.argv or not sys.argv[0]:
        return None
    return Path(sys.argv[0])


def main() -> None:
    configure_logging()
    logger.info("Starting %s v%s", TITLE, VERSION)

    app = QtWidgets.QApplication(sys.argv)
    app.setApplicationName(TITLE)

    ini_path = config_path(main_script_path())
    settings = load_settings(ini_path)
    logger.info("Using settings from %s, saves in %s", ini_path, settings.storage_dir)

    window = HypoTrackWindow(settings, settings_path=ini_path)
    window.show()
    window.start()

    def cleanup():
        try:
            if window:
                window.close()
        except Exception:  # pragma: no cover - best effort
            logger.exception("Unexpected error while closing window")

    app.aboutToQuit.connect(cleanup)

    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
