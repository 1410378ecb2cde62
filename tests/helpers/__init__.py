"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Signing accounts, plain addresses and amount scales
- factories: Token, pool and deadline factory functions
"""

from tests.helpers.constants import (
    ALICE,
    ALICE_KEY,
    BOB,
    BOB_KEY,
    CAROL,
    DEPLOYER,
    E6,
    E18,
    MANAGER,
)
from tests.helpers.factories import (
    create_stable_pool,
    create_volatile_pool,
    deadline,
    fund,
    fund_and_approve,
    make_token,
    push_and_deposit,
    push_and_swap,
    push_lp,
    seed_stable_pool,
    seed_volatile_pool,
    sort_by_address,
)

__all__ = [
    # Constants
    "ALICE",
    "ALICE_KEY",
    "BOB",
    "BOB_KEY",
    "CAROL",
    "DEPLOYER",
    "E18",
    "E6",
    "MANAGER",
    # Factories
    "create_stable_pool",
    "create_volatile_pool",
    "deadline",
    "fund",
    "fund_and_approve",
    "make_token",
    "push_and_deposit",
    "push_and_swap",
    "push_lp",
    "seed_stable_pool",
    "seed_volatile_pool",
    "sort_by_address",
]
