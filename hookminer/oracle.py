from __future__ import annotations

import logging
from typing import Any, Optional

from eth_utils import to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3

from .errors import OracleError
from .launcher import LBP_FACTORY_ABI
from .models import MiningRequest

log = logging.getLogger(__name__)


class FactoryOracle:
    """
    Address predictor backed by the strategy factory's ``getLBPAddress`` view.

    Usage:
        oracle = FactoryOracle.from_rpc_url("https://...", factory)
        address = await oracle(inner_salt, request)

    The oracle is stateless and read-only, so one instance can serve several
    concurrent searches.
    """

    def __init__(
        self,
        w3: Any,
        factory_address: str,
        *,
        block_identifier: Any = "latest",
    ) -> None:
        self.w3 = w3
        self.factory_address = to_checksum_address(factory_address)
        self.block_identifier = block_identifier
        self.factory = w3.eth.contract(address=self.factory_address, abi=LBP_FACTORY_ABI)

    @classmethod
    def from_rpc_url(
        cls, rpc_url: str, factory_address: str, *, request_timeout: Optional[float] = 30.0
    ) -> "FactoryOracle":
        kwargs = {"request_kwargs": {"timeout": request_timeout}} if request_timeout else {}
        w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url, **kwargs))
        return cls(w3, factory_address)

    async def predict_address(self, inner_salt: bytes, request: MiningRequest) -> str:
        if to_checksum_address(request.factory_address) != self.factory_address:
            raise OracleError(
                message="request targets a different factory",
                retryable=False,
                context={"factory": request.factory_address, "oracle": self.factory_address},
            )
        call = self.factory.functions.getLBPAddress(
            to_checksum_address(request.token_address),
            request.total_supply,
            request.config_data,
            inner_salt,
            to_checksum_address(request.deployer_address),
        )
        try:
            predicted = await call.call(block_identifier=self.block_identifier)
        except Exception as exc:
            raise OracleError(
                message=f"getLBPAddress call failed: {exc}",
                context={"type": type(exc).__name__, "salt": "0x" + inner_salt.hex()},
            ) from exc
        log.debug("Predicted %s for salt 0x%s", predicted, inner_salt.hex())
        return to_checksum_address(predicted)

    async def __call__(self, inner_salt: bytes, request: MiningRequest) -> str:
        return await self.predict_address(inner_salt, request)

    async def block_number(self) -> int:
        return await self.w3.eth.block_number
