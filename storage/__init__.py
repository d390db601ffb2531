"""Local persistence for the Canvas dashboard."""

from .cache_manager import CacheSnapshot, clear_cache, load_cache, save_cache

__all__ = ['CacheSnapshot', 'clear_cache', 'load_cache', 'save_cache']
