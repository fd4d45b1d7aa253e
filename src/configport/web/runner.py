"""Uvicorn runner for the transfer API."""

import copy

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from configport.app import App
from configport.config import Config
from configport.web.server import create_fastapi_app

ACCESS_FORMAT = '%(asctime)s - %(client_addr)s "%(request_line)s" %(status_code)s'
DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def run_server(app: App, config: Config) -> None:
    fastapi_app = create_fastapi_app(app, config)

    # Uvicorn's default config is module state, so it is copied before editing
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["access"]["fmt"] = ACCESS_FORMAT
    log_config["formatters"]["default"]["fmt"] = DEFAULT_FORMAT

    uvicorn.run(
        fastapi_app,
        host=config.host,
        port=config.port,
        log_config=log_config,
        log_level="debug" if config.debug else "info",
        access_log=config.debug,
    )
