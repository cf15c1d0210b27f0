import random
import secrets
import string
from typing import Optional

INVITATION_ALPHABET = string.ascii_uppercase + string.digits


class CodeGenerator:
    """
    Produces fixed-length numeric verification codes.

    The default source is ``secrets.SystemRandom``, which reads from the OS
    CSPRNG and keeps no shared state, so one generator can serve any number
    of concurrent callers. Pass a seeded ``random.Random`` for reproducible
    output in tests; that source is predictable and must not be used in
    production.
    """

    def __init__(self, length: int = 6, rng: Optional[random.Random] = None):
        if length < 1:
            raise ValueError("Code length must be at least 1")
        self.length = length
        self._rng = rng or secrets.SystemRandom()
        self._low = 10 ** (length - 1)
        self._high = 10 ** length - 1

    def generate(self) -> str:
        code = self._rng.randint(self._low, self._high)
        return str(code).zfill(self.length)


def generate_invitation_code(length: int = 6) -> str:
    """Mixed uppercase/digit code, e.g. "7X9K2P"."""
    return ''.join(secrets.choice(INVITATION_ALPHABET) for _ in range(length))
