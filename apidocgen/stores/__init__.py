"""Persistent stores used between compiler runs."""

from .annotation_cache import AnnotationCache, CacheLock, atomic_write

__all__ = ["AnnotationCache", "CacheLock", "atomic_write"]
