"""
Permission model: relationship-level capability grants.
"""

from sealbid.core.permissions.registry import CapabilityRegistry, CapabilityGrant

__all__ = ["CapabilityRegistry", "CapabilityGrant"]
