"""
Local persistence (JSON key-value store).
"""

from chartwallet.storage.kv_store import KeyValueStore

__all__ = ["KeyValueStore"]
