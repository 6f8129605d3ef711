"""Business ID generation.

Snowflake-style IDs for rows this service owns (orders, sub-orders, line
items, shipments, transactions), plus the human-readable order numbers
shown to buyers and sellers.
"""

import secrets
import string
import threading
import time

ORDER_NO_PREFIX = "Ord_"
SELLER_ORDER_NO_PREFIX = "Ords_"

_ALPHANUMERIC = string.ascii_letters + string.digits


class SnowflakeIdGenerator:
    """Simple snowflake ID generator.

    Layout (64 bits):
      - 41 bits: millisecond timestamp (since custom epoch)
      - 10 bits: machine_id (0-1023)
      - 12 bits: sequence (0-4095 per millisecond)
    """

    _EPOCH_MS = 1_700_000_000_000
    _MACHINE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, machine_id: int = 0) -> None:
        if not (0 <= machine_id < (1 << self._MACHINE_BITS)):
            raise ValueError(f"machine_id must be 0-{(1 << self._MACHINE_BITS) - 1}")
        self._machine_id = machine_id
        self._sequence = 0
        self._last_timestamp_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            ts = self._current_ms()
            if ts == self._last_timestamp_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    ts = self._wait_next_ms(ts)
            else:
                self._sequence = 0

            self._last_timestamp_ms = ts
            id_int = (
                ((ts - self._EPOCH_MS) << (self._MACHINE_BITS + self._SEQUENCE_BITS))
                | (self._machine_id << self._SEQUENCE_BITS)
                | self._sequence
            )
            return str(id_int)

    def _current_ms(self) -> int:
        return int(time.time() * 1000)

    def _wait_next_ms(self, last_ts: int) -> int:
        ts = self._current_ms()
        while ts <= last_ts:
            ts = self._current_ms()
        return ts


_default_generator = SnowflakeIdGenerator()


def generate_id() -> str:
    """Generate a unique snowflake-style string ID using the module-level default generator."""
    return _default_generator.next_id()


def generate_order_no(prefix: str, length: int = 12) -> str:
    """Prefix + `length` random alphanumerics, e.g. Ord_a8Kq2ZpL0xYw.

    Not unique by construction; the orders/sub_orders unique indexes are the
    real guard and callers retry on collision.
    """
    if length < 1:
        raise ValueError("length must be positive")
    return prefix + "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))
