"""Role registry for aftersales.

Tracks the owner identity and the agent roster, and performs the
owner/agent authorization checks for every entry point.
"""

from aftersales.registry.roles import RoleRegistry

__all__ = ["RoleRegistry"]
