"""Bus settings read from TOPICBUS_* environment variables (and .env when present)."""

import os
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from topicbus.observability import get_logger

ENV_PREFIX = "TOPICBUS_"

DEFAULT_EXCHANGE = "/"
DEFAULT_PRIORITY = 50


class BusSettings(BaseModel):
    """Tunables for a Bus instance."""

    default_exchange: str = DEFAULT_EXCHANGE
    default_priority: int = DEFAULT_PRIORITY
    # 0 keeps every matched topic; >0 evicts least recently used topics past the bound
    matcher_cache_size: int = Field(default=0, ge=0)
    isolate_failures: bool = False
    log_level: str = "INFO"


def _env_values(source: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name in BusSettings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in source:
            values[name] = source[key]
    return values


def load_settings(env: Optional[Mapping[str, str]] = None) -> BusSettings:
    """
    Build BusSettings from the environment. If env is None, os.environ is used
    after loading .env. Invalid fields are logged and fall back to their defaults.
    """
    if env is None:
        load_dotenv()
        env = os.environ
    values = _env_values(env)
    try:
        return BusSettings(**values)
    except ValidationError as e:
        logger = get_logger("topicbus.config")
        for error in e.errors():
            name = error["loc"][0] if error["loc"] else None
            if name in values:
                logger.warning(
                    "invalid_setting",
                    extra={"setting": ENV_PREFIX + str(name).upper(), "error": error["msg"]},
                )
                values.pop(name)
        return BusSettings(**values)
