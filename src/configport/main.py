"""Application entry point for the configport server."""

from configport.app import App
from configport.config import Config
from configport.logging import setup_logging
from configport.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
