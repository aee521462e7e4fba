"""Pure domain utilities: tokens, domain keys, paths.

Nothing here performs I/O or reads configuration; every input is passed in,
so the functions are safe to call from any thread or request.
"""
__all__ = ["keys", "paths", "tokens"]
