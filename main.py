import argparse
import sys

from PyQt5.QtWidgets import QApplication, QMessageBox

from pagestitch.core.session import SessionPersistence
from pagestitch.ui import MainWindow
from pagestitch.utils import configure_logging


def main():
    """
    Run PDF Stitcher. The previous session is restored from the app data
    directory; PDF paths on the command line are added to it.
    """
    parser = argparse.ArgumentParser(description="Assemble and annotate pages from several PDFs.")
    parser.add_argument('files', nargs='*', help="PDF files to open")
    parser.add_argument('-v', '--verbose', action='store_true', help="log debug events")
    args, qt_args = parser.parse_known_args()

    configure_logging(verbose=args.verbose)
    app = QApplication(sys.argv[:1] + qt_args)

    persistence = SessionPersistence()
    session = persistence.restore()
    persistence.attach(session)

    window = MainWindow(session, persistence)
    if persistence.restore_error:
        QMessageBox.warning(
            window, "Session Not Restored",
            "Could not restore previous session. Clearing data.",
        )
    if args.files:
        window.load_files(args.files)
    window.showMaximized()
    sys.exit(app.exec_())


if __name__ == '__main__':
    main()
