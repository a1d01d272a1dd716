"""Human-readable sequence identifiers such as ``INS-ACM-2024-0001``."""

from __future__ import annotations

import logging
import re
from typing import Callable, TypeVar

from policy_ledger.core.errors import ConflictError, DuplicateKeyError
from policy_ledger.repositories.counters import CounterStore

logger = logging.getLogger(__name__)

POLICY_NUMBER_PREFIX = "INS"
TRANSACTION_PREFIX = "PAY"
CLAIM_PREFIX = "CLM"

T = TypeVar("T")


class IdentifierGenerator:
    """Formats ``{prefix}-{bucket}-{sequence}`` from a counter store.

    Nothing is reserved: the identifier only exists once the owning record is
    stored with it.
    """

    def __init__(self, counters: CounterStore, width: int = 4):
        self._counters = counters
        self._width = width

    def next_id(self, prefix: str, bucket_key: str, width: int | None = None, attempt: int = 0) -> str:
        """Return the next identifier; ``attempt`` skips slots already lost to a race."""
        key = f"{prefix}-{bucket_key}"
        sequence = self._counters.next_sequence(key) + attempt
        return f"{key}-{sequence:0{width or self._width}d}"


def acronym_code(name: str, max_len: int = 3) -> str:
    """Derive an uppercase code from a name, e.g. ``Acme Life Co`` -> ``ALC``."""
    words = re.findall(r"[A-Za-z0-9]+", (name or "").upper())
    if not words:
        return "GEN"
    if len(words) >= 2:
        return "".join(word[0] for word in words[:max_len])
    return words[0][:max_len]


def insert_with_generated_id(
    generate: Callable[[int], str],
    insert: Callable[[str], T],
    field: str,
    max_attempts: int = 5,
) -> tuple[T, str]:
    """Insert with a generated identifier, regenerating on duplicate-key races."""
    for attempt in range(max_attempts):
        identifier = generate(attempt)
        try:
            return insert(identifier), identifier
        except DuplicateKeyError as error:
            if error.field != field:
                raise
            logger.warning("Generated %s %s already taken (attempt %d)", field, identifier, attempt + 1)
    raise ConflictError(f"Could not allocate a unique {field} after {max_attempts} attempts")
