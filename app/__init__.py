"""
Inventory Cache - stale-while-revalidate aggregation over the Veeqo inventory API.
"""

__version__ = "1.0.0"
__author__ = "Engineering Team"

# Export main components for easy import
from app.config import config
from app.logger import logger
from app.errors import (
    ConfigError,
    ExternalServiceError,
    UpstreamError,
    DataContractError,
    AggregationError
)

__all__ = [
    'config',
    'logger',
    'ConfigError',
    'ExternalServiceError',
    'UpstreamError',
    'DataContractError',
    'AggregationError'
]
