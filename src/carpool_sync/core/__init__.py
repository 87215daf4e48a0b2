"""Remote client functionality shared between the store and the CLI."""

from .async_utils import run_sync
from .client import SupabaseClient

__all__ = ["SupabaseClient", "run_sync"]
