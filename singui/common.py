"""Error type and random helpers shared across the panel."""

import random
import string

_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
_rng = random.Random()


class PanelError(Exception):
    """An error reported by the panel's services."""


def new_error(*args) -> PanelError:
    """Build a PanelError whose message is the arguments joined by spaces."""
    return PanelError(" ".join(str(arg) for arg in args))


def random_string(n: int) -> str:
    """Return ``n`` random ASCII letters and digits."""
    return "".join(_rng.choice(_ALPHABET) for _ in range(n))


def random_int(n: int) -> int:
    """Return a random integer in ``[0, n)``."""
    if n <= 0:
        raise ValueError("n must be positive")
    return _rng.randrange(n)