"""Settings from the environment (optionally a .env file) and logging setup."""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class Settings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 9000
    mitm_port: int = 9001
    mode: str = "dh"            # "dh", "dh-ack", "srp" or "mitm"
    attack: str = "generator-one"
    log_level: str = "INFO"


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        host=os.getenv("SERVER_HOST", "127.0.0.1"),
        port=int(os.getenv("SERVER_PORT", "9000")),
        mitm_port=int(os.getenv("MITM_PORT", "9001")),
        mode=os.getenv("SERVER_MODE", "dh"),
        attack=os.getenv("MITM_ATTACK", "generator-one"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
