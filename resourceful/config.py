# Configuration settings should be set in app.config
# Settings that are not found there fall back to the Resourceful class variables
# and finally to the environment
import os
import logging
from flask import current_app
from functools import lru_cache
import resourceful
from typing import Any


@lru_cache(maxsize=128)
def get_config(option: str) -> Any:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :return: configuration value
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        result = getattr(resourceful.Resourceful, option, os.environ.get(option, None))
    return result


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return resourceful.log.getEffectiveLevel() < logging.INFO
