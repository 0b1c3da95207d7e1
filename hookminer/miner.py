"""
CREATE2 salt search against an address-predicting oracle.

Usage sketch
------------
    from hookminer.miner import SaltMiner

    miner = SaltMiner()
    result = await miner.mine(request, oracle, on_progress=print)
    if result.ok:
        print("salt", result.salt_hex, "->", result.predicted_address)

Determinism
-----------
Candidates are ``base + index`` for a base derived from (token, user), so a
rerun with the same inputs walks the same salts in the same order. With
``window > 1`` several predictions are in flight at once, but the winner is
always the lowest matching index, never the first call to return.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from itertools import islice
from typing import Any, Awaitable, Callable, Iterator, List, Optional, Union

from eth_utils import to_checksum_address

from . import encoding
from .errors import InvalidRequest, OracleError, normalize_exc
from .hooks import REQUIRED_HOOK_BITS, V4_ALL_HOOK_MASK, HookBits
from .models import (Cancelled, Candidate, Exhausted, Found, MiningRequest,
                     MiningResult, TimedOut)

log = logging.getLogger(__name__)

PROGRESS_EVERY = 50

PredictFn = Callable[[bytes, MiningRequest], Union[Awaitable[Any], Any]]
ProgressFn = Callable[[int, int], Any]


def candidates(request: MiningRequest, base_num: Optional[int] = None) -> Iterator[Candidate]:
    """Lazily yield the request's candidate salts in index order."""
    if base_num is None:
        base_num = encoding.base_num(request.token_address, request.user_address)
    for index in range(request.max_attempts):
        outer = encoding.outer_salt(base_num, index)
        yield Candidate(
            index=index,
            outer_salt=outer,
            inner_salt=encoding.inner_salt(request.user_address, outer),
        )


@dataclass
class _SearchState:
    started: float
    deadline: float
    attempts: int = 0
    oracle_errors: int = 0
    last_error: Optional[OracleError] = None


class SaltMiner:
    """
    Finds the lowest-index salt whose predicted address carries the required
    hook bits, within an attempt budget and a wall-clock deadline.

    The deadline and the optional ``cancel`` signal are checked before each
    prediction is launched, never mid-call.
    """

    def __init__(
        self,
        *,
        mask: int = V4_ALL_HOOK_MASK,
        required_bits: int = REQUIRED_HOOK_BITS,
        progress_every: int = PROGRESS_EVERY,
        window: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        try:
            self.bits = HookBits(mask, required_bits)
        except ValueError as exc:
            raise InvalidRequest(
                message=str(exc),
                context={"mask": hex(mask), "required_bits": hex(required_bits)},
            ) from exc
        if progress_every < 1:
            raise InvalidRequest(message="progress_every must be >= 1")
        if window < 1:
            raise InvalidRequest(message="window must be >= 1")
        self._progress_every = progress_every
        self._window = window
        self._clock = clock

    async def mine(
        self,
        request: MiningRequest,
        predict_address: PredictFn,
        on_progress: Optional[ProgressFn] = None,
        *,
        cancel: Any = None,
        base_num: Optional[int] = None,
    ) -> MiningResult:
        request.validate()
        now = self._clock()
        state = _SearchState(started=now, deadline=now + request.timeout_millis / 1000.0)
        log.info(
            "Mining salt token=%s user=%s factory=%s maxAttempts=%d timeout=%dms",
            request.token_address,
            request.user_address,
            request.factory_address,
            request.max_attempts,
            request.timeout_millis,
        )

        pending = candidates(request, base_num=base_num)
        while True:
            batch: List[Candidate] = []
            stop_reason: Optional[str] = None
            for cand in islice(pending, self._window):
                stop_reason = self._stop_reason(state, cancel)
                if stop_reason is not None:
                    break
                batch.append(cand)
            if not batch and stop_reason is None:
                break

            outcomes = await asyncio.gather(
                *(self._predict(predict_address, cand, request) for cand in batch)
            )
            for cand, outcome in zip(batch, outcomes):
                state.attempts = cand.index + 1
                if isinstance(outcome, OracleError):
                    self._record_oracle_error(state, outcome)
                elif self.bits.matches(outcome):
                    result = Found(
                        outer_salt=cand.outer_salt,
                        predicted_address=outcome,
                        attempts_used=cand.index + 1,
                        elapsed_millis=self._elapsed_millis(state),
                        inner_salt=cand.inner_salt,
                    )
                    log.info(
                        "Found salt=%s address=%s attempts=%d elapsed=%dms",
                        result.salt_hex,
                        outcome,
                        result.attempts_used,
                        result.elapsed_millis,
                    )
                    self._progress(on_progress, result.attempts_used, request.max_attempts)
                    return result
                if cand.index and cand.index % self._progress_every == 0:
                    self._progress(on_progress, cand.index, request.max_attempts)

            if stop_reason is not None:
                return self._finish(self._interrupted(stop_reason, state), on_progress, request)

        result = Exhausted(
            attempts_used=state.attempts,
            elapsed_millis=self._elapsed_millis(state),
            oracle_errors=state.oracle_errors,
            last_oracle_error=state.last_error,
        )
        if result.oracle_unavailable:
            log.error(
                "All %d predictions failed; oracle looks unavailable (last error: %s)",
                result.attempts_used,
                state.last_error,
            )
        else:
            log.warning("No valid salt after %d attempts", result.attempts_used)
        return self._finish(result, on_progress, request)

    # ------------------- internals -------------------

    def _stop_reason(self, state: _SearchState, cancel: Any) -> Optional[str]:
        if cancel is not None and cancel.is_set():
            return "cancelled"
        if self._clock() > state.deadline:
            return "timed_out"
        return None

    def _interrupted(self, reason: str, state: _SearchState) -> MiningResult:
        # built after the in-flight batch settles so its calls are counted
        if reason == "cancelled":
            return Cancelled(
                elapsed_millis=self._elapsed_millis(state),
                attempts_used=state.attempts,
            )
        return TimedOut(
            elapsed_millis=self._elapsed_millis(state),
            attempts_used=state.attempts,
            oracle_errors=state.oracle_errors,
            last_oracle_error=state.last_error,
        )

    async def _predict(
        self, predict_address: PredictFn, cand: Candidate, request: MiningRequest
    ) -> Union[str, OracleError]:
        try:
            predicted = predict_address(cand.inner_salt, request)
            if inspect.isawaitable(predicted):
                predicted = await predicted
            return to_checksum_address(predicted)
        except Exception as exc:
            return normalize_exc(exc, index=cand.index)

    def _record_oracle_error(self, state: _SearchState, err: OracleError) -> None:
        state.oracle_errors += 1
        state.last_error = err
        if state.oracle_errors == 1 or state.oracle_errors % self._progress_every == 0:
            log.warning(
                "Prediction failed at attempt %s (%d failures so far): %s",
                err.index,
                state.oracle_errors,
                err.message,
            )
        else:
            log.debug("Prediction failed at attempt %s: %s", err.index, err.message)

    def _progress(self, on_progress: Optional[ProgressFn], done: int, total: int) -> None:
        log.debug("Tried %d/%d salts", done, total)
        if on_progress is None:
            return
        try:
            on_progress(done, total)
        except Exception:
            log.warning("Progress callback raised; ignoring", exc_info=True)

    def _finish(
        self, result: MiningResult, on_progress: Optional[ProgressFn], request: MiningRequest
    ) -> MiningResult:
        if isinstance(result, TimedOut):
            log.warning(
                "Timed out after %dms and %d attempts", result.elapsed_millis, result.attempts_used
            )
        elif isinstance(result, Cancelled):
            log.info("Cancelled after %d attempts", result.attempts_used)
        self._progress(on_progress, result.attempts_used, request.max_attempts)
        return result

    def _elapsed_millis(self, state: _SearchState) -> int:
        return int((self._clock() - state.started) * 1000)


async def mine(
    request: MiningRequest,
    predict_address: PredictFn,
    on_progress: Optional[ProgressFn] = None,
    **kwargs: Any,
) -> MiningResult:
    """Run a search with a default-configured :class:`SaltMiner`."""
    return await SaltMiner().mine(request, predict_address, on_progress, **kwargs)
