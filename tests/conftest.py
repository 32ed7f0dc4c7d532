import random
import sys
from pathlib import Path

import pytest

# ensure src package importable
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

# Disable external plugins for reproducibility in isolated test envs
PYTEST_DISABLE_PLUGIN_AUTOLOAD = True


class FixedRandom:
    """Deterministic stand-in for random.Random: fixed randint/uniform results."""

    def __init__(self, randint_value=0, uniform_value=0.0):
        self.randint_value = randint_value
        self.uniform_value = uniform_value
        self.calls = []

    def randint(self, a, b):
        self.calls.append(("randint", a, b))
        return max(a, min(b, self.randint_value))

    def uniform(self, a, b):
        self.calls.append(("uniform", a, b))
        return max(a, min(b, self.uniform_value))


@pytest.fixture
def fixed_rng():
    return FixedRandom()


@pytest.fixture
def seeded_rng():
    return random.Random(1234)
