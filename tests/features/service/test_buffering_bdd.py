"""BDD tests for service buffering and flushing."""

import pytest
from pytest_bdd import scenarios

scenarios("buffering.feature")

pytestmark = pytest.mark.tier(2)
