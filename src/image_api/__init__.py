"""SDR Image API - container image mirror and recommendation service.

Provides:
- Sync engine mirroring the organization's container package tags
- SQLite image store
- Recommendation resolver and read API
"""

# Logging is configured before other imports
from .logging_config import StructuredFormatter, configure_logging

configure_logging()

from .__version__ import __version__  # noqa: E402
from .config import ImageApiConfig, get_config, reset_config  # noqa: E402
from .models import ImageRecord, SyncState  # noqa: E402
from .recommend import recommend, recommend_secondary  # noqa: E402
from .storage import ImageStore, StoreError  # noqa: E402

__all__ = [
    "ImageApiConfig",
    "ImageRecord",
    "ImageStore",
    "StoreError",
    "StructuredFormatter",
    "SyncState",
    "__version__",
    "configure_logging",
    "get_config",
    "recommend",
    "recommend_secondary",
    "reset_config",
]
