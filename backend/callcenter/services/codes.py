"""Short call code generation (one letter + two digits, e.g. R45)."""

import logging
import random
import string
from typing import Protocol

from callcenter.config import get_settings
from callcenter.errors import AllocationExhausted

logger = logging.getLogger(__name__)
settings = get_settings()

CODE_LETTERS = string.ascii_uppercase
CODE_DIGITS = string.digits
CODE_SPACE = len(CODE_LETTERS) * len(CODE_DIGITS) ** 2


class LiveCodeIndex(Protocol):
    async def code_in_use(self, code: str) -> bool: ...


class CodeAllocator:
    """
    Draws random codes until one is free in the live-code index.

    The check here only makes collisions rare; the store's unique index is
    what actually guarantees uniqueness at insert time.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        max_attempts: int = settings.code_allocation_max_attempts,
    ):
        self.rng = rng or random.SystemRandom()
        self.max_attempts = max_attempts

    def generate(self) -> str:
        """Draw a candidate code uniformly at random."""
        return (
            self.rng.choice(CODE_LETTERS)
            + self.rng.choice(CODE_DIGITS)
            + self.rng.choice(CODE_DIGITS)
        )

    async def allocate(self, index: LiveCodeIndex) -> str:
        """Return a code not held by any live call."""
        for attempt in range(1, self.max_attempts + 1):
            code = self.generate()
            if not await index.code_in_use(code):
                if attempt > 1:
                    logger.debug(f"Allocated code {code} after {attempt} attempts")
                return code

        logger.error(f"Code allocation exhausted after {self.max_attempts} attempts")
        raise AllocationExhausted(self.max_attempts)
