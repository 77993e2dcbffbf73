"""Data store contract and its Supabase implementation."""

from .store import Between, Store
from .supabase_client import SupabaseClient

__all__ = ["Between", "Store", "SupabaseClient"]
