from .coordinator import IngestionCoordinator
from .fetcher import GraphMediaResolver, MediaFetcher, MediaResolver
from .staging import TempStorage
from .validator import AttachmentValidator

__all__ = [
    "IngestionCoordinator",
    "GraphMediaResolver",
    "MediaFetcher",
    "MediaResolver",
    "TempStorage",
    "AttachmentValidator",
]
