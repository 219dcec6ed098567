"""Slagboom.

HTTP basic authentication gate for Starlette, served with uvicorn.
"""

import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
import uvicorn

from . import __version__, make_app
from .config import MainConfig
from .log import LogLevels, init_logger, logger
from .tomlconfig import ConfigReader


def main(
    *,
    cfg: Annotated[Path, typer.Option(help="Configuration file.")] = Path(
        "config.toml"
    ),
    log_dir: Annotated[Optional[Path], typer.Option(help="Log directory.")] = None,
    loglevel: Annotated[
        LogLevels, typer.Option(case_sensitive=False, help="Log level.")
    ] = LogLevels.INFO,
    version: Annotated[bool, typer.Option(help="Print version and exit.")] = False,
):
    """Slagboom.

    HTTP basic authentication gate for Starlette, served with uvicorn.
    """
    if version:
        print(__version__)
        return

    instance = cfg.resolve().parent
    if log_dir is None:
        log_dir = instance / "log"

    debug = init_logger(loglevel, log_dir)

    with logger.catch(onerror=lambda _: sys.exit(1)):
        logger.info("Start server")

        config = ConfigReader.from_file(MainConfig, cfg)
        if not config.accounts:
            logger.warning("No accounts configured, only skipped paths are reachable")

        app = make_app(config, debug=debug)

        if config.server.ssl_key and config.server.ssl_cert:
            ssl_key = instance / config.server.ssl_key
            ssl_cert = instance / config.server.ssl_cert
            ssl = ssl_key.exists() and ssl_cert.exists()
        else:
            ssl = False
        if not ssl:
            ssl_key = None
            ssl_cert = None
        logger.success(
            "Serving on {}://{}:{}",
            "https" if ssl else "http",
            config.server.host,
            config.server.port,
        )

        try:
            uvicorn.run(
                app,
                host=config.server.host,
                port=config.server.port,
                log_config={"version": 1, "disable_existing_loggers": False},
                log_level="debug",  # loguru does the filtering
                ssl_keyfile=ssl_key,
                ssl_certfile=ssl_cert,
            )
        except KeyboardInterrupt:
            pass

        logger.success("Complete")


def run():
    """Console script entry point."""
    typer.run(main)


if __name__ == "__main__":
    run()
