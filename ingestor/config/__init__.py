from .cache import cache
from .derivation import derivation
from .runtime import runtime
from .storage import storage

__all__ = ["cache", "derivation", "runtime", "storage"]
