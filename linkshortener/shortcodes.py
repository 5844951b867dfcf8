"""Short code allocation

Hands out either a random 6-character code or a validated custom alias.
Uniqueness is only *checked* here, never reserved: the caller inserts the
link and relies on the unique constraint on `short_code` to reject a
concurrent winner, then asks for a new code.

Functions:
    generate_code(length=6) -> str
        Draw `length` characters uniformly from the Base62 alphabet.

    allocate(store, custom_alias=None, max_attempts=5) -> str
        Return a short code that `store` reports as free, or raise.
"""

import logging
import secrets
import string
from typing import Callable, Protocol

from linkshortener import validators
from linkshortener.errors import AliasTaken, AllocationExhausted, InvalidAliasFormat

logger = logging.getLogger(__name__)

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
CODE_LENGTH = 6
MAX_ATTEMPTS = 5

# Paths served by the app itself; a link with one of these codes could never be reached
RESERVED_CODES = frozenset({
    "api", "health", "docs", "redoc", "openapi.json", "static", "favicon.ico",
})


class CodeStore(Protocol):
    def code_exists(self, code: str) -> bool: ...

    def alias_taken(self, alias: str) -> bool: ...


def generate_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))

def allocate(
    store: CodeStore,
    custom_alias: str | None = None,
    max_attempts: int = MAX_ATTEMPTS,
    generator: Callable[[], str] = generate_code,
) -> str:
    """Pick a short code for a new link.

    Args:
        store: answers whether a code/alias is already in use.
        custom_alias: user-requested code; used verbatim when valid and free.
        max_attempts: random candidates tried before giving up.
        generator: candidate source, swapped out in tests.

    Raises:
        InvalidAliasFormat: alias fails the 3-20 `[A-Za-z0-9_-]` check.
        AliasTaken: alias already used as a short code or alias, or reserved.
        AllocationExhausted: every random candidate collided. At 62^6 codes
            this points at a broken store, not bad luck.
    """
    if custom_alias is not None:
        if not validators.validate_custom_alias(custom_alias):
            raise InvalidAliasFormat()
        if custom_alias.lower() in RESERVED_CODES or store.alias_taken(custom_alias):
            raise AliasTaken()
        return custom_alias

    for attempt in range(1, max_attempts + 1):
        code = generator()
        if code.lower() not in RESERVED_CODES and not store.code_exists(code):
            return code
        logger.warning("Collision detected for %s, attempt %d/%d", code, attempt, max_attempts)

    raise AllocationExhausted()
