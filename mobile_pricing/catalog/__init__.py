"""Product catalog: devices, plans, subsidies and global settings."""

from mobile_pricing.catalog.repository import ProductCatalog

__all__ = ["ProductCatalog"]
