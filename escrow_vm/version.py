"""escrow_vm.version — package version.

Resolution order:
  1) ESCROW_VM_VERSION (exact value)
  2) installed distribution metadata for 'escrow-vm'
  3) BASE_VERSION + '+dev'
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata as importlib_metadata
from typing import Optional

# Bump when deal addresses or wire bodies change.
BASE_VERSION = "0.1.0"


def _pkg_metadata_version(dist_name: str = "escrow-vm") -> Optional[str]:
    try:
        v = importlib_metadata.version(dist_name)
        return v if v and v != "0.0.0" else None
    except importlib_metadata.PackageNotFoundError:
        return None


@lru_cache(maxsize=1)
def compute_version() -> str:
    val = os.getenv("ESCROW_VM_VERSION")
    if val:
        return val
    return _pkg_metadata_version() or f"{BASE_VERSION}+dev"


__version__ = compute_version()

__all__ = ["__version__", "BASE_VERSION", "compute_version"]
