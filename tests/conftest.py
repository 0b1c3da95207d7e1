import asyncio

import pytest

from hookminer.miner import candidates
from hookminer.models import MiningRequest

TOKEN = "0x2804625bb433506a105eb5e5c81055445cdf1d07"
USER = "0x595ef7b98f9fb1196e577b576941aa474c375353"
FACTORY = "0xc695ee292c39be6a10119c70ed783d067fcecfa4"
LAUNCHER = "0x00000008412db3394c91a5cbd01635c6d140637c"

MATCH = "0x" + "ab" * 18 + "2000"
MISS = "0x" + "ab" * 18 + "0000"


def make_request(**overrides) -> MiningRequest:
    params = dict(
        factory_address=FACTORY,
        token_address=TOKEN,
        total_supply=10 ** 27,
        config_data=b"\x01\x02",
        deployer_address=LAUNCHER,
        user_address=USER,
        max_attempts=20,
        timeout_millis=60_000,
    )
    params.update(overrides)
    return MiningRequest(**params)


class IndexedOracle:
    """
    Stub predictor that knows which candidate index each inner salt belongs to
    and answers through `answer(index)`. Records every index it was asked about.
    """

    def __init__(self, request, answer, base_num=None):
        self.by_salt = {c.inner_salt: c for c in candidates(request, base_num=base_num)}
        self.answer = answer
        self.seen = []

    async def __call__(self, inner_salt, request):
        cand = self.by_salt[inner_salt]
        self.seen.append(cand.index)
        result = self.answer(cand)
        if asyncio.iscoroutine(result):
            result = await result
        return result


@pytest.fixture
def request_factory():
    return make_request
