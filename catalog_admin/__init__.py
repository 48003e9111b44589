"""Admin client for a remote product catalog."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from catalog_admin.config import DEFAULT_API_DOMAIN, IMAGE_MIME_TYPES, MAX_IMAGE_BYTES
from catalog_admin.image_codec import (
    compress_image,
    decode_payload,
    downscale_image,
    encode_image,
    open_image,
)
from catalog_admin.models import Product, ProductDecodeError, parse_product_list
from catalog_admin.observable import Observable, ObservableList
from catalog_admin.settings import JSONFileStore, MemoryStore, Settings
from catalog_admin.store import OperationResult, ProductStore
from catalog_admin.transport import InvalidResponseError, Transport, TransportError

__all__ = [
    # Version
    "__version__",
    # Config
    "DEFAULT_API_DOMAIN",
    "IMAGE_MIME_TYPES",
    "MAX_IMAGE_BYTES",
    # Image payloads
    "compress_image",
    "decode_payload",
    "downscale_image",
    "encode_image",
    "open_image",
    # Models
    "Product",
    "ProductDecodeError",
    "parse_product_list",
    # State and sync
    "Observable",
    "ObservableList",
    "OperationResult",
    "ProductStore",
    # Settings
    "Settings",
    "MemoryStore",
    "JSONFileStore",
    # Transport
    "Transport",
    "TransportError",
    "InvalidResponseError",
]
