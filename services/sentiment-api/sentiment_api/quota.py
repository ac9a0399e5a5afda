"""Per-API-key daily quota.

``QuotaGate.try_deduct`` authorises a request by atomically checking and
deducting from the key's remaining tokens.  The check, the daily reset and
the deduction run as one store-side operation:

- ``RedisQuotaStore`` runs a Lua script, so Redis executes the whole
  read-modify-write without interleaving other commands.
- ``InMemoryQuotaStore`` does the same under a mutex for single-node
  deployments and tests.

Records are two keys per API key, ``LU:[<key>`` (ISO date of the last
reset) and ``TC:[<key>`` (remaining tokens).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, TypeVar

from redis import exceptions as redis_errors
from redis.asyncio import Redis

log = logging.getLogger(__name__)

T = TypeVar("T")

PREFIX_LAST_RESET = "LU:["
PREFIX_TOKEN_COUNT = "TC:["

# Sentinels returned by the deduct operation.
KEY_NOT_FOUND = -2
INSUFFICIENT_TOKENS = -1

DEDUCT_SCRIPT = """
local last_reset = redis.call('GET', KEYS[1])
local balance_raw = redis.call('GET', KEYS[2])
local today = ARGV[1]
local allotment = tonumber(ARGV[2])
local amount = tonumber(ARGV[3])

if not last_reset or not balance_raw then
    return -2
end

local balance = tonumber(balance_raw)

if last_reset < today then
    balance = allotment
    redis.call('SET', KEYS[1], today)
    redis.call('SET', KEYS[2], balance)
end

if balance < amount then
    return -1
end

local remaining = balance - amount
redis.call('SET', KEYS[2], remaining)
return remaining
"""


class QuotaError(Exception):
    """Base class for failures reported by the quota gate."""


class Unauthorized(QuotaError):
    """The API key is missing or was never provisioned."""


class QuotaExceeded(QuotaError):
    """The key does not have enough tokens left today."""


class StoreUnavailable(QuotaError):
    """The quota store could not be reached.  Transient."""


class StoreTimeout(StoreUnavailable):
    """The quota store did not answer within the configured timeout."""


def last_reset_key(api_key: str) -> str:
    return PREFIX_LAST_RESET + api_key


def token_count_key(api_key: str) -> str:
    return PREFIX_TOKEN_COUNT + api_key


def mask_key(api_key: str) -> str:
    """Shorten an API key for log output."""
    return f"{api_key[:4]}***" if api_key else "<empty>"


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class QuotaStore(ABC):
    """Backend holding quota records.  ``deduct`` must be atomic."""

    @abstractmethod
    async def deduct(self, api_key: str, today: str, allotment: int, amount: int) -> int:
        """Run the reset-then-deduct transaction.

        Returns the remaining balance, ``KEY_NOT_FOUND`` or
        ``INSUFFICIENT_TOKENS``.
        """

    @abstractmethod
    async def get_last_reset(self, api_key: str) -> str | None:
        ...

    @abstractmethod
    async def get_balance(self, api_key: str) -> int | None:
        ...

    @abstractmethod
    async def get_record(self, api_key: str) -> tuple[str | None, int | None]:
        """Read ``(last_reset, balance)`` in one consistent snapshot."""

    @abstractmethod
    async def provision(self, api_key: str, last_reset: str, balance: int) -> None:
        """Create or overwrite the record for *api_key*."""

    async def close(self) -> None:
        return None


class InMemoryQuotaStore(QuotaStore):
    """Mutex-guarded dict with the same key layout as Redis."""

    def __init__(self):
        self._data: dict[str, str | int] = {}
        self._lock = threading.Lock()

    async def deduct(self, api_key: str, today: str, allotment: int, amount: int) -> int:
        lu_key, tc_key = last_reset_key(api_key), token_count_key(api_key)
        with self._lock:
            last_reset = self._data.get(lu_key)
            balance = self._data.get(tc_key)
            if last_reset is None or balance is None:
                return KEY_NOT_FOUND

            balance = int(balance)
            if last_reset < today:
                balance = allotment
                self._data[lu_key] = today
                self._data[tc_key] = balance

            if balance < amount:
                return INSUFFICIENT_TOKENS

            remaining = balance - amount
            self._data[tc_key] = remaining
            return remaining

    async def get_last_reset(self, api_key: str) -> str | None:
        with self._lock:
            value = self._data.get(last_reset_key(api_key))
        return None if value is None else str(value)

    async def get_balance(self, api_key: str) -> int | None:
        with self._lock:
            value = self._data.get(token_count_key(api_key))
        return None if value is None else int(value)

    async def get_record(self, api_key: str) -> tuple[str | None, int | None]:
        with self._lock:
            last_reset = self._data.get(last_reset_key(api_key))
            balance = self._data.get(token_count_key(api_key))
        return (
            None if last_reset is None else str(last_reset),
            None if balance is None else int(balance),
        )

    async def provision(self, api_key: str, last_reset: str, balance: int) -> None:
        with self._lock:
            self._data[last_reset_key(api_key)] = last_reset
            self._data[token_count_key(api_key)] = balance


class RedisQuotaStore(QuotaStore):
    """Quota records in Redis; deduction runs as a server-side Lua script."""

    def __init__(self, client: Redis):
        self._client = client
        self._deduct_script = client.register_script(DEDUCT_SCRIPT)

    @classmethod
    def from_url(cls, url: str, timeout: float) -> RedisQuotaStore:
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client)

    async def deduct(self, api_key: str, today: str, allotment: int, amount: int) -> int:
        result = await self._run(self._deduct_script(
            keys=[last_reset_key(api_key), token_count_key(api_key)],
            args=[today, allotment, amount],
        ))
        return int(result)

    async def get_last_reset(self, api_key: str) -> str | None:
        return await self._run(self._client.get(last_reset_key(api_key)))

    async def get_balance(self, api_key: str) -> int | None:
        value = await self._run(self._client.get(token_count_key(api_key)))
        return None if value is None else int(value)

    async def get_record(self, api_key: str) -> tuple[str | None, int | None]:
        last_reset, balance = await self._run(
            self._client.mget(last_reset_key(api_key), token_count_key(api_key))
        )
        return last_reset, None if balance is None else int(balance)

    async def provision(self, api_key: str, last_reset: str, balance: int) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(last_reset_key(api_key), last_reset)
            pipe.set(token_count_key(api_key), balance)
            await self._run(pipe.execute())

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    async def _run(call: Awaitable[T]) -> T:
        try:
            return await call
        except redis_errors.TimeoutError as e:
            raise StoreTimeout(f"Redis timed out: {e}") from e
        except redis_errors.ConnectionError as e:
            raise StoreUnavailable(f"Redis unreachable: {e}") from e


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------

class QuotaGate:
    """Check-and-deduct guard in front of the scoring pipeline."""

    def __init__(
        self,
        store: QuotaStore,
        daily_allotment: int,
        timeout: float = 5.0,
        clock: Callable[[], date] = utc_today,
    ):
        self.store = store
        self.daily_allotment = daily_allotment
        self.timeout = timeout
        self._clock = clock

    def today(self) -> str:
        return self._clock().isoformat()

    async def try_deduct(self, api_key: str, amount: int) -> int:
        """Deduct *amount* tokens and return the remaining balance.

        Raises ``Unauthorized`` for unknown keys and ``QuotaExceeded`` when
        the balance is too low; in both cases nothing is deducted.
        """
        if not api_key:
            raise Unauthorized("Missing API Key")
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")

        result = await self._call(
            self.store.deduct(api_key, self.today(), self.daily_allotment, amount)
        )
        if result == KEY_NOT_FOUND:
            log.warning("Quota check for unknown key %s", mask_key(api_key))
            raise Unauthorized("Invalid API Key")
        if result == INSUFFICIENT_TOKENS:
            log.warning("Quota exceeded for key %s (requested %d)", mask_key(api_key), amount)
            raise QuotaExceeded("Quota exceeded")

        log.info("Deducted %d tokens from %s, %d remaining", amount, mask_key(api_key), result)
        return result

    async def token_count(self, api_key: str) -> int:
        """Tokens available to *api_key* right now.

        A record not yet reset today reports the full allotment, matching
        what the next ``try_deduct`` will see.  Read-only.
        """
        if not api_key:
            raise Unauthorized("Missing API Key")
        last_reset, balance = await self._call(self.store.get_record(api_key))
        if last_reset is None or balance is None:
            raise Unauthorized("Invalid API Key")
        if last_reset < self.today():
            return self.daily_allotment
        return balance

    async def grant_free_tokens(self, api_key: str) -> None:
        """Provision *api_key* with today's full allotment."""
        if not api_key:
            raise Unauthorized("Missing API Key")
        await self._call(self.store.provision(api_key, self.today(), self.daily_allotment))
        log.info("Granted %d free tokens to %s", self.daily_allotment, mask_key(api_key))

    async def _call(self, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, self.timeout)
        except asyncio.TimeoutError as e:
            raise StoreTimeout(f"Quota store did not answer within {self.timeout}s") from e
