from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from eth_utils import is_address

from .errors import InvalidRequest, OracleError

UINT128_MAX = (1 << 128) - 1
DEFAULT_MAX_ATTEMPTS = 10_000
DEFAULT_TIMEOUT_MILLIS = 600_000


@dataclass(frozen=True)
class MiningRequest:
    """
    Parameters of a single ``SaltMiner.mine`` call.

    Attributes:
        factory_address: Strategy factory whose view function predicts addresses.
        token_address: Token being distributed.
        total_supply: Amount handed to the strategy (uint128).
        config_data: ABI-encoded strategy configuration, opaque to the miner.
        deployer_address: Launcher contract passed as ``sender`` to the prediction.
        user_address: Original deployer, folded into both base and inner salt.
        max_attempts: Upper bound on candidates tried.
        timeout_millis: Wall-clock budget for the whole search.
    """

    factory_address: str
    token_address: str
    total_supply: int
    config_data: bytes
    deployer_address: str
    user_address: str
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    timeout_millis: int = DEFAULT_TIMEOUT_MILLIS

    def validate(self) -> None:
        for name in ("max_attempts", "timeout_millis"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidRequest(
                    message=f"{name} must be a positive integer",
                    context={name: value},
                )
        for name in ("factory_address", "token_address", "deployer_address", "user_address"):
            value = getattr(self, name)
            if not is_address(value):
                raise InvalidRequest(
                    message=f"{name} must be a 20-byte address",
                    context={name: repr(value)},
                )
        if not isinstance(self.config_data, (bytes, bytearray)):
            raise InvalidRequest(
                message="config_data must be bytes",
                context={"config_data": type(self.config_data).__name__},
            )
        if isinstance(self.total_supply, bool) or not isinstance(self.total_supply, int) \
                or not 0 <= self.total_supply <= UINT128_MAX:
            raise InvalidRequest(
                message="total_supply must fit in uint128",
                context={"total_supply": str(self.total_supply)},
            )


@dataclass(frozen=True)
class Candidate:
    index: int
    outer_salt: bytes
    inner_salt: bytes


@dataclass(frozen=True)
class Found:
    outer_salt: bytes
    predicted_address: str
    attempts_used: int
    elapsed_millis: int
    inner_salt: bytes = b""

    ok = True

    @property
    def salt_hex(self) -> str:
        return "0x" + self.outer_salt.hex()


@dataclass(frozen=True)
class Exhausted:
    """
    Every candidate in the budget was tried without a match.

    ``oracle_errors`` counts attempts that never got a prediction back; when it
    equals ``attempts_used`` the search says nothing about the salt space and
    the oracle itself is the problem.
    """

    attempts_used: int
    elapsed_millis: int = 0
    oracle_errors: int = 0
    last_oracle_error: Optional[OracleError] = field(default=None, compare=False)

    ok = False

    @property
    def oracle_unavailable(self) -> bool:
        return self.attempts_used > 0 and self.oracle_errors >= self.attempts_used


@dataclass(frozen=True)
class TimedOut:
    elapsed_millis: int
    attempts_used: int
    oracle_errors: int = 0
    last_oracle_error: Optional[OracleError] = field(default=None, compare=False)

    ok = False


@dataclass(frozen=True)
class Cancelled:
    elapsed_millis: int
    attempts_used: int

    ok = False


MiningResult = Union[Found, Exhausted, TimedOut, Cancelled]
