"""Role registry: who may act as owner and who as agent.

The registry is the single shared configuration object that the
RequestLedger consults before every mutation.  Its re-entrant lock is
also the ledger's lock, so registry and ledger mutations share one
total order.
"""

from __future__ import annotations

import threading

import structlog

from aftersales.errors import PreconditionViolated, Unauthorized
from aftersales.observability.metrics import authorization_failures_total

_log = structlog.get_logger(component="registry")


class RoleRegistry:
    """Owner identity plus the set of authorized agents.

    Args:
        initializer: Identity that creates the system.  Becomes the owner
                     and the first agent.
        strict:      Reject an empty identity on ownership transfer or agent
                     insertion with PreconditionViolated instead of
                     accepting it.
    """

    def __init__(self, initializer: str, strict: bool = False) -> None:
        self.lock = threading.RLock()
        self._strict = strict
        self._owner = initializer
        self._agents: set[str] = {initializer}
        _log.info("registry_initialized", owner=initializer, strict=strict)

    @property
    def owner(self) -> str:
        with self.lock:
            return self._owner

    @property
    def strict(self) -> bool:
        return self._strict

    def agents(self) -> tuple[str, ...]:
        """Return the agent set as a sorted tuple."""
        with self.lock:
            return tuple(sorted(self._agents))

    def is_owner(self, identity: str) -> bool:
        with self.lock:
            return bool(identity) and identity == self._owner

    def is_agent(self, identity: str) -> bool:
        with self.lock:
            return bool(identity) and identity in self._agents

    def require_owner(self, caller: str, operation: str) -> None:
        """Raise Unauthorized unless *caller* is the current owner."""
        if not self.is_owner(caller):
            _reject(operation, caller)

    def require_agent(self, caller: str, operation: str) -> None:
        """Raise Unauthorized unless *caller* is an agent."""
        if not self.is_agent(caller):
            _reject(operation, caller)

    def add_agent(self, caller: str, identity: str) -> None:
        """Insert *identity* into the agent set.  Owner only; idempotent."""
        with self.lock:
            self.require_owner(caller, "add_agent")
            if not identity:
                if self._strict:
                    raise PreconditionViolated("add_agent", "agent must be a non-empty identity")
                # Stored but inert: the empty identity never passes an agent check.
                _log.warning("empty_agent_identity_added", by=caller)
            if identity in self._agents:
                _log.debug("agent_already_present", agent=identity)
                return
            self._agents.add(identity)
            _log.info("agent_added", agent=identity, by=caller)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Hand ownership to *new_owner*.  Owner only.

        The previous owner keeps its agent membership.
        """
        with self.lock:
            self.require_owner(caller, "transfer_ownership")
            if self._strict and not new_owner:
                raise PreconditionViolated("transfer_ownership", "new owner must be a non-empty identity")
            previous = self._owner
            self._owner = new_owner
            _log.info("ownership_transferred", previous_owner=previous, new_owner=new_owner)


def _reject(operation: str, caller: str) -> None:
    authorization_failures_total.labels(operation=operation).inc()
    _log.warning("authorization_denied", operation=operation, caller=caller)
    raise Unauthorized(operation, caller)
