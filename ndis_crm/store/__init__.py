"""Store client contract: table rows over SQLAlchemy and file storage buckets."""

from .client import StoreClient
from .storage import FileStorage, build_object_path, get_storage

__all__ = ["StoreClient", "FileStorage", "build_object_path", "get_storage"]
