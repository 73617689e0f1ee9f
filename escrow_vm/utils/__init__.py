"""
escrow_vm.utils — small, dependency-light helpers (hashing, unit conversion).
"""

from .hash import domain_hash, sha3_256
from .units import from_nano, to_nano

__all__ = ["sha3_256", "domain_hash", "to_nano", "from_nano"]
