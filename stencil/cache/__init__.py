from .fs_cache import CACHE_VERSION, CacheSnapshot, CompilationCache

__all__ = ["CompilationCache", "CacheSnapshot", "CACHE_VERSION"]
