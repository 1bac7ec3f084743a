from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable


@dataclass(frozen=True, slots=True)
class AuthContext:
    """
    Call-scoped identity for administrative transitions.

    - caller: opaque identity of whoever issued the call (compared for equality
      against the engine's administrator; no internal structure assumed)
    """

    caller: Hashable


__all__ = ["AuthContext"]
