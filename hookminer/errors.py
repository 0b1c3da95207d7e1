from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional


class MiningErrorCode(IntEnum):
    """Stable, machine-consumable error codes for the salt miner."""

    MINER_ERROR = 1000
    INVALID_REQUEST = 1001
    ORACLE_ERROR = 1002


@dataclass
class MinerError(Exception):
    """
    Base class for miner-facing errors.

    Attributes
    ----------
    message : str
        Human-friendly explanation (safe to log).
    code : MiningErrorCode
        Programmatic code stable across releases.
    retryable : bool
        Whether repeating the same call has a reasonable chance to succeed.
    context : dict
        Small, JSON-serializable context for diagnostics.
    """

    message: str
    code: MiningErrorCode = MiningErrorCode.MINER_ERROR
    retryable: bool = False
    context: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.context:
            base += f" ctx={self.context}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["code"] = int(self.code)
        return d


@dataclass
class InvalidRequest(MinerError):
    """Malformed mining parameters; nothing was attempted."""

    message: str = "invalid mining request"
    code: MiningErrorCode = MiningErrorCode.INVALID_REQUEST


@dataclass
class OracleError(MinerError):
    """
    A single address prediction failed (transport error, revert, or a
    response that is not an address). Scoped to one attempt.
    """

    message: str = "address prediction failed"
    code: MiningErrorCode = MiningErrorCode.ORACLE_ERROR
    retryable: bool = True
    index: Optional[int] = None

    def __post_init__(self) -> None:
        if self.index is not None:
            self.context.setdefault("index", self.index)


def normalize_exc(exc: BaseException, *, index: Optional[int] = None) -> OracleError:
    if isinstance(exc, OracleError):
        if index is not None and exc.index is None:
            exc.index = index
            exc.context.setdefault("index", index)
        return exc
    return OracleError(
        message=str(exc) or type(exc).__name__,
        context={"type": type(exc).__name__},
        index=index,
    )


__all__ = [
    "MiningErrorCode",
    "MinerError",
    "InvalidRequest",
    "OracleError",
    "normalize_exc",
]
