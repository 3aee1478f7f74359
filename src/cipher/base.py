"""
Core types for the signature cipher.

A cipher is an ordered list of character-buffer operations recovered from a
player script. Applying it to the scrambled signature attached to a stream
URL yields the value the media server accepts.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# ──────────────────────────────
#  Errors
# ──────────────────────────────
class CipherError(Exception):
    """Base class for failures while loading or applying a cipher."""


class NetworkError(CipherError):
    """Player script could not be fetched (bad status or transport failure)."""

    def __init__(self, message: str, *, url: str | None = None, status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class FormatError(CipherError):
    """Player script does not contain the expected cipher structure."""


# ──────────────────────────────
#  Operations
# ──────────────────────────────
class OperationType(str, Enum):
    REVERSE = "reverse"
    SLICE = "slice"
    SPLICE = "splice"
    SWAP = "swap"


@dataclass(frozen=True)
class CipherOperation:
    type: OperationType
    parameter: int = 0                # ignored for REVERSE

    def __post_init__(self):
        if isinstance(self.parameter, bool) or not isinstance(self.parameter, int):
            raise ValueError(f"Operation parameter must be an int, got {self.parameter!r}")
        if self.parameter < 0:
            raise ValueError(f"Operation parameter must be non-negative, got {self.parameter}")

    def apply(self, buffer: list[str]) -> None:
        """Mutate `buffer` in place. Never raises for any buffer length."""
        if self.type is OperationType.REVERSE:
            buffer.reverse()
        elif self.type in (OperationType.SLICE, OperationType.SPLICE):
            # del clamps on its own when parameter >= len(buffer)
            del buffer[:self.parameter]
        elif self.type is OperationType.SWAP:
            if not buffer:
                return
            i = self.parameter % len(buffer)
            buffer[0], buffer[i] = buffer[i], buffer[0]

    def to_dict(self):
        return {"type": self.type.value, "parameter": self.parameter}


# ──────────────────────────────
#  Cipher
# ──────────────────────────────
@dataclass(frozen=True)
class SignatureCipher:
    operations: tuple[CipherOperation, ...] = ()

    def __post_init__(self):
        # Accept any iterable, store as tuple so the cipher stays immutable
        object.__setattr__(self, "operations", tuple(self.operations))

    def apply(self, signature: str) -> str:
        buffer = list(signature)
        for operation in self.operations:
            operation.apply(buffer)
        return "".join(buffer)

    def is_empty(self) -> bool:
        return not self.operations

    def __len__(self):
        return len(self.operations)

    def to_dict(self):
        return {"operations": [op.to_dict() for op in self.operations]}


# ──────────────────────────────
#  Stream format reference (produced by format parsers)
# ──────────────────────────────
@dataclass
class TrackFormat:
    url: str
    signature: Optional[str] = None   # scrambled token, None when URL is already valid
