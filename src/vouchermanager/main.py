"""Application entry point for the voucher manager backend."""

from vouchermanager.app import App
from vouchermanager.config import Config
from vouchermanager.logging import setup_logging
from vouchermanager.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
