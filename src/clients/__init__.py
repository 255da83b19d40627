# Dataset-specific data adapters
# Each client module contains the file layout and coercion rules for one export

from .m5_client import (
    DataCache,
    M5DataLoader,
    ProductView,
    filter_items,
    filter_options,
)

__all__ = [
    "DataCache",
    "M5DataLoader",
    "ProductView",
    "filter_items",
    "filter_options",
]
