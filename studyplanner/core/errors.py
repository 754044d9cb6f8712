"""Domain errors raised by the planning services."""
from __future__ import annotations


class InvalidPlanningRequest(ValueError):
    """A planning request that cannot be satisfied (bad range, unparseable date)."""


class OracleFailure(RuntimeError):
    """The text-generation call raised or returned nothing usable."""


class MalformedOracleOutput(OracleFailure):
    """The oracle answered, but not with the structure that was asked for."""


class SessionNotFound(LookupError):
    """No session with the given id exists in the plan."""
