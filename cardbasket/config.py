# cardbasket/config.py
import copy
import logging
import os
from pathlib import Path

import yaml
from yaml.loader import SafeLoader
from dotenv import load_dotenv

from .errors import ConfigurationError

# Set up logging
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
logger = logging.getLogger("cardbasket")

CONFIG_ENV_VAR = "CARDBASKET_CONFIG"
DEFAULT_CONFIG_PATH = Path("config.yaml")

DEFAULT_CONFIG = {
    "catalog": {
        "endpoint": "https://api.pokemontcg.io/v2/cards",
        "timeout": 30,
        "sets": [],
    },
    "marketplace": {
        "endpoint": "https://api.ebay.com/buy/browse/v1/item_summary/search",
        "marketplace_id": "EBAY_GB",
        "country": "GB",
        "max_listings": 200,
        "max_workers": 8,
        "timeout": 30,
        "retries": 3,
        "cache_ttl": None,
        "exclude_terms": ["lot", "bundle", "japanese", "korean", "chinese"],
    },
    "optimization": {
        "shipping_policy": "vendor_max",
        "unsatisfiable_policy": "exclude",
        "time_limit": None,
        "tolerance": 1e-6,
    },
    "output": {
        "directory": "output",
        "filename": "chosen_listings.csv",
    },
    "logging": {
        "level": "INFO",
        "file": "pokebay.log",
    },
}

REQUIRED_CREDENTIALS = ("EBAY_BEARER_TOKEN", "POKEMON_TCG_API_KEY")


def setup_logging(level="INFO", log_file=None):
    """
    Attach a console handler (and optionally a file handler) to the package
    logger. Calling it twice does not duplicate handlers.
    """
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(formatter)
        logger.addHandler(ch)

    if log_file:
        log_path = str(Path(log_file).resolve())
        if not any(isinstance(h, logging.FileHandler) and h.baseFilename == log_path
                   for h in logger.handlers):
            fh = logging.FileHandler(log_path, encoding="utf-8")
            fh.setFormatter(formatter)
            logger.addHandler(fh)

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger


def _merge(base, override):
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path=None):
    """
    Load the YAML configuration and merge it over DEFAULT_CONFIG.

    Resolution order for the file: explicit ``path``, then the
    ``CARDBASKET_CONFIG`` environment variable, then ``./config.yaml``.
    """
    config_path = Path(path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    try:
        with open(config_path, 'r', encoding='utf-8') as file:
            loaded = yaml.load(file, Loader=SafeLoader) or {}
        logger.info(f"Configuration loaded from {config_path}.")
    except FileNotFoundError:
        logger.error(f"Configuration file '{config_path}' not found, using defaults.")
        loaded = {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in '{config_path}': {e}") from e

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Configuration file '{config_path}' must contain a mapping.")
    return _merge(DEFAULT_CONFIG, loaded)


def load_credentials(env_file=None):
    """Read API credentials from the environment (after loading ``.env``)."""
    load_dotenv(env_file)
    missing = [name for name in REQUIRED_CREDENTIALS if not os.getenv(name)]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")
    return {name: os.environ[name] for name in REQUIRED_CREDENTIALS}
