"""
Cloud Inventory - provider-agnostic resource listing for CMDB consumers.

Enumerates and tag-filters cloud resources across accounts and regions
through one operation contract per resource type.
"""

__version__ = "0.1.0"

from cloud_inventory.core.exceptions import InventoryError

__all__ = ["InventoryError"]
