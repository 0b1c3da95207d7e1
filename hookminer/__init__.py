"""
CREATE2 salt miner for hook-flagged strategy deployments.

The package exposes the asyncio-friendly `SaltMiner` and the value types it
consumes and returns; `FactoryOracle` is the JSON-RPC address predictor used
by the CLI entry point.
"""

from .errors import InvalidRequest, MinerError, OracleError
from .hooks import is_valid_hook_address
from .miner import SaltMiner, candidates, mine
from .models import (Cancelled, Candidate, Exhausted, Found, MiningRequest,
                     TimedOut)

__version__ = "0.1.0"

__all__ = [
    "SaltMiner",
    "mine",
    "candidates",
    "MiningRequest",
    "Candidate",
    "Found",
    "Exhausted",
    "TimedOut",
    "Cancelled",
    "MinerError",
    "InvalidRequest",
    "OracleError",
    "is_valid_hook_address",
]
