"""Feed service package.

Re-exports all public symbols::

    from geofeed.services.feed import Feed, FeedConfig
"""

from .api import ClientHub, build_app
from .configs import ApiConfig, FeedConfig
from .service import Feed


__all__ = [
    "ApiConfig",
    "ClientHub",
    "Feed",
    "FeedConfig",
    "build_app",
]
