"""TaskNest - file-backed hierarchical task, project and memory storage."""

__version__ = "0.1.0"

from tasknest.storage import Storage, create_storage  # noqa: E402

__all__ = ["Storage", "create_storage", "__version__"]
