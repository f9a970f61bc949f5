"""Plugin collectors for the directory data pipeline."""

from collectors.base import (
    BaseCollector,
    ClientConfig,
    FetchClient,
    FetchError,
    RetryPolicy,
    get_session,
    run_in_batches,
)
from collectors.community import CommunityCollector
from collectors.npm import NpmEnricher, is_valid_package_name
from collectors.official import OfficialCollector

__all__ = [
    "BaseCollector",
    "ClientConfig",
    "FetchClient",
    "FetchError",
    "RetryPolicy",
    "get_session",
    "run_in_batches",
    "CommunityCollector",
    "NpmEnricher",
    "is_valid_package_name",
    "OfficialCollector",
]
