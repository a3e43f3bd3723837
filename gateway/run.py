"""
Gateway runner - entry point for the NIRA backend.

Usage:
    # Start the gateway with config from ~/.nira
    python -m gateway.run

    # Override individual settings
    python -m gateway.run --port 9000 --model llama3 --allowed_paths /home/me/notes:/home/me/docs
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

import uvicorn

from gateway.config import ConfigError, NiraConfig, load_config
from gateway.server import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "asyncio")


def setup_logging(level: str = "INFO", log_dir: Optional[Union[str, Path]] = None) -> None:
    """Configure the root logger: console always, rotating file when *log_dir* is set."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT)

    if not any(getattr(h, "_nira_console", False) for h in root.handlers):
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        console._nira_console = True  # type: ignore[attr-defined]
        root.addHandler(console)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / "gateway.log"
        if not any(
            isinstance(h, RotatingFileHandler) and Path(h.baseFilename) == log_file.absolute()
            for h in root.handlers
        ):
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    # Keep third-party libraries at WARNING level to reduce noise
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def main(
    host: Optional[str] = None,
    port: Optional[int] = None,
    model: Optional[str] = None,
    ollama_endpoint: Optional[str] = None,
    database_path: Optional[str] = None,
    allowed_paths: Optional[str] = None,
    log_level: Optional[str] = None,
    config: Optional[str] = None,
) -> None:
    """
    Start the NIRA gateway.

    Args:
        host: Interface to bind (default 127.0.0.1)
        port: Port to listen on (default 8080)
        model: Ollama model tag
        ollama_endpoint: Base URL of the Ollama server
        database_path: SQLite file
        allowed_paths: Directories to seed the allow-list with (os.pathsep separated)
        log_level: DEBUG, INFO, WARNING or ERROR
        config: YAML config file to use instead of ~/.nira/config.yaml
    """
    try:
        cfg: NiraConfig = load_config(
            config,
            host=host,
            port=port,
            model=model,
            ollama_endpoint=ollama_endpoint,
            database_path=database_path,
            allowed_paths=allowed_paths,
            log_level=log_level,
        )
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(cfg.log_level, cfg.log_dir)
    logger.info("Starting NIRA gateway on %s:%d (model %s at %s)", cfg.host, cfg.port, cfg.model, cfg.ollama_endpoint)

    app = create_app(cfg)
    uvicorn.run(
        app,
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
        timeout_keep_alive=600,
    )


def cli() -> None:
    import fire
    fire.Fire(main)


if __name__ == "__main__":
    cli()
