"""Python client for the habits API with an optimistic query cache."""

from habitgrid.client.cache import QueryCache
from habitgrid.client.mutations import WEEK_PREFIX, HabitsClient, MutationResult
from habitgrid.client.transport import HabitsTransport

__all__ = ["QueryCache", "HabitsTransport", "HabitsClient", "MutationResult", "WEEK_PREFIX"]
