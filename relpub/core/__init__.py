"""Core domain types and logic."""

from .algorithms import DigestAlgorithm, lookup_algorithm
from .config import Config, ConfigError, load_config, load_config_or_default
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # algorithms
    "DigestAlgorithm",
    "lookup_algorithm",
    # config
    "Config",
    "ConfigError",
    "load_config",
    "load_config_or_default",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]
