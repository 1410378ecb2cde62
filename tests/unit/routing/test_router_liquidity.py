"""Tests for Router deposits and withdrawals on both curves."""

import pytest

from dex.errors import (
    AmountsMismatch,
    ExceedsMaxBurn,
    Expired,
    InsufficientAAmount,
    InsufficientBAmount,
    InsufficientLiquidityMinted,
    InvalidPairType,
    InvalidToken,
    MintBelowMinimum,
    NotStablePair,
    NotVolatilePair,
    ValueMismatch,
)
from dex.pools import PoolType, StablePool, VolatilePool
from tests.helpers import (
    ALICE,
    BOB,
    CAROL,
    E6,
    E18,
    create_stable_pool,
    deadline,
    fund_and_approve,
    make_token,
    seed_stable_pool,
)


def add_volatile(router, token_a, amount_a, token_b, amount_b, provider, mins=(0, 0)):
    """Approve and deposit through the router, returning (amounts, liquidity)."""
    fund_and_approve(token_a, provider, amount_a, router.address)
    fund_and_approve(token_b, provider, amount_b, router.address)
    return router.add_liquidity(
        PoolType.VOLATILE,
        [token_a.address, token_b.address],
        [amount_a, amount_b],
        list(mins),
        0,
        provider,
        deadline(router.chain),
        sender=provider,
    )


@pytest.fixture
def dai_uni(router, dai, uni) -> VolatilePool:
    """1000 DAI / 10 UNI pair created by ALICE through the router."""
    add_volatile(router, dai, 1_000 * E18, uni, 10 * E18, ALICE)
    pool = router.registry.get_pool([dai.address, uni.address], PoolType.VOLATILE)
    assert isinstance(pool, VolatilePool)
    return pool


@pytest.fixture
def stables(registry, dai, usdc, usdt) -> StablePool:
    return seed_stable_pool(
        registry,
        [dai, usdc, usdt],
        [1_000_000 * E18, 1_000_000 * E6, 1_000_000 * E6],
        provider=ALICE,
    )


class TestVolatileDeposits:
    """Tests for volatile add_liquidity."""

    def test_first_deposit_creates_pair(self, router, registry, dai, uni):
        """Missing volatile pairs are created on first deposit."""
        assert registry.get_pool([dai.address, uni.address], PoolType.VOLATILE) is None

        amounts, liquidity = add_volatile(router, dai, 1_000 * E18, uni, 10 * E18, ALICE)

        pool = registry.get_pool([dai.address, uni.address], PoolType.VOLATILE)
        assert isinstance(pool, VolatilePool)
        assert amounts == [1_000 * E18, 10 * E18]
        assert liquidity == 100 * E18 - 1000
        assert pool.balance_of(ALICE) == liquidity

    def test_deposit_at_reserve_ratio(self, router, dai_uni, dai, uni):
        """Only the amounts matching the reserve ratio are pulled."""
        amounts, liquidity = add_volatile(router, dai, 100 * E18, uni, 100 * E18, BOB)
        assert amounts == [100 * E18, E18]
        assert liquidity == 10 * E18
        assert uni.balance_of(BOB) == 99 * E18
        assert uni.allowance(BOB, router.address) == 99 * E18

    def test_quote_matches_deposit(self, router, dai_uni, dai, uni):
        tokens = [uni.address, dai.address]
        quoted = router.quote_add_liquidity(PoolType.VOLATILE, tokens, [E18, 500 * E18])
        amounts, liquidity = add_volatile(router, uni, E18, dai, 500 * E18, BOB)
        assert quoted == (amounts, liquidity)

    def test_quote_for_new_pair(self, router, dai, usdc):
        amounts, liquidity = router.quote_add_liquidity(
            PoolType.VOLATILE, [dai.address, usdc.address], [4 * E18, E18]
        )
        assert amounts == [4 * E18, E18]
        assert liquidity == 2 * E18 - 1000

    def test_min_b_enforced(self, router, dai_uni, dai, uni):
        with pytest.raises(InsufficientBAmount):
            add_volatile(router, dai, 100 * E18, uni, 100 * E18, BOB, mins=(0, 2 * E18))

    def test_min_a_enforced(self, router, dai_uni, dai, uni):
        """When B is the limiting token, A is sized down and checked."""
        with pytest.raises(InsufficientAAmount):
            add_volatile(router, dai, 100 * E18, uni, E18 // 2, BOB, mins=(60 * E18, 0))

    def test_min_liquidity_enforced(self, router, dai_uni, dai, uni):
        fund_and_approve(dai, BOB, 100 * E18, router.address)
        fund_and_approve(uni, BOB, E18, router.address)
        with pytest.raises(MintBelowMinimum):
            router.add_liquidity(
                PoolType.VOLATILE,
                [dai.address, uni.address],
                [100 * E18, E18],
                [0, 0],
                10 * E18 + 1,
                BOB,
                deadline(router.chain),
                sender=BOB,
            )
        assert dai.balance_of(BOB) == 100 * E18

    def test_failed_first_deposit_creates_nothing(self, router, registry, dai, uni):
        """Pair creation rolls back with the deposit that triggered it."""
        with pytest.raises(Expired):
            router.add_liquidity(
                PoolType.VOLATILE,
                [dai.address, uni.address],
                [E18, E18],
                [0, 0],
                0,
                ALICE,
                router.chain.timestamp - 1,
                sender=ALICE,
            )
        assert len(registry) == 0
        with pytest.raises(InsufficientLiquidityMinted):
            add_volatile(router, dai, 1000, uni, 1000, ALICE)
        assert len(registry) == 0

    def test_unknown_pool_type(self, router, dai, uni):
        with pytest.raises(InvalidPairType):
            router.add_liquidity(
                7,
                [dai.address, uni.address],
                [1, 1],
                [0, 0],
                0,
                ALICE,
                deadline(router.chain),
                sender=ALICE,
            )


class TestVolatileWithdrawals:
    """Tests for volatile remove_liquidity."""

    def test_remove_liquidity(self, router, dai_uni, dai, uni):
        liquidity = dai_uni.balance_of(ALICE) // 10
        expected = router.quote_remove_liquidity(
            PoolType.VOLATILE, [uni.address, dai.address], liquidity
        )
        dai_uni.approve(router.address, liquidity, sender=ALICE)

        amounts = router.remove_liquidity(
            PoolType.VOLATILE,
            [uni.address, dai.address],
            liquidity,
            [0, 0],
            CAROL,
            deadline(router.chain),
            sender=ALICE,
        )

        assert amounts == expected
        assert uni.balance_of(CAROL) == amounts[0]
        assert dai.balance_of(CAROL) == amounts[1]
        assert dai_uni.balance_of(router.address) == 0

    def test_min_amounts_enforced(self, router, dai_uni, dai, uni):
        liquidity = dai_uni.balance_of(ALICE) // 10
        dai_uni.approve(router.address, liquidity, sender=ALICE)
        with pytest.raises(InsufficientAAmount):
            router.remove_liquidity(
                PoolType.VOLATILE,
                [dai.address, uni.address],
                liquidity,
                [1_000 * E18, 0],
                ALICE,
                deadline(router.chain),
                sender=ALICE,
            )
        assert dai_uni.balance_of(ALICE) == 100 * E18 - 1000

    def test_missing_pair(self, router, dai, usdc):
        with pytest.raises(NotVolatilePair):
            router.remove_liquidity(
                PoolType.VOLATILE,
                [dai.address, usdc.address],
                1,
                [0, 0],
                ALICE,
                deadline(router.chain),
                sender=ALICE,
            )

    def test_quote_for_missing_pair_is_zero(self, router, dai, usdc):
        quoted = router.quote_remove_liquidity(PoolType.VOLATILE, [dai.address, usdc.address], E18)
        assert quoted == [0, 0]


class TestStableLiquidity:
    """Tests for stable deposits and the three withdrawal kinds."""

    def test_deposit_in_caller_order(self, router, stables, dai, usdc, usdt):
        tokens = [usdt.address, dai.address, usdc.address]
        desired = [1_000 * E6, 0, 500 * E6]
        _, expected = router.quote_add_liquidity(PoolType.STABLE, tokens, desired)
        fund_and_approve(usdt, BOB, 1_000 * E6, router.address)
        fund_and_approve(usdc, BOB, 500 * E6, router.address)

        amounts, liquidity = router.add_liquidity(
            PoolType.STABLE, tokens, desired, [0, 0, 0], 0, BOB, deadline(router.chain), sender=BOB
        )

        assert amounts == desired
        assert liquidity == expected
        assert stables.lp_token.balance_of(BOB) == liquidity
        assert usdt.balance_of(router.address) == 0

    def test_stable_pools_are_never_created(self, router, registry, dai, uni):
        fund_and_approve(dai, BOB, E18, router.address)
        fund_and_approve(uni, BOB, E18, router.address)
        with pytest.raises(NotStablePair):
            router.add_liquidity(
                PoolType.STABLE,
                [dai.address, uni.address],
                [E18, E18],
                [0, 0],
                0,
                BOB,
                deadline(router.chain),
                sender=BOB,
            )
        assert len(registry) == 0

    def test_subset_of_tokens_is_not_a_pool(self, router, stables, dai, usdc):
        with pytest.raises(NotStablePair):
            router.quote_add_liquidity(PoolType.STABLE, [dai.address, usdc.address], [1, 1])

    def test_proportional_withdrawal(self, router, stables, dai, usdc, usdt):
        tokens = [usdc.address, usdt.address, dai.address]
        liquidity = 30_000 * E18
        stables.lp_token.approve(router.address, liquidity, sender=ALICE)

        amounts = router.remove_liquidity(
            PoolType.STABLE,
            tokens,
            liquidity,
            [0, 0, 0],
            BOB,
            deadline(router.chain),
            sender=ALICE,
        )

        assert amounts == [10_000 * E6, 10_000 * E6, 10_000 * E18]
        assert usdc.balance_of(BOB) == 10_000 * E6
        assert dai.balance_of(BOB) == 10_000 * E18

    def test_quote_remove_liquidity(self, router, stables, dai, usdc, usdt):
        quoted = router.quote_remove_liquidity(
            PoolType.STABLE, [dai.address, usdc.address, usdt.address], 3_000 * E18
        )
        assert quoted == [1_000 * E18, 1_000 * E6, 1_000 * E6]

    def test_single_token_withdrawal(self, router, stables, dai, usdc, usdt):
        tokens = [dai.address, usdc.address, usdt.address]
        liquidity = 10_000 * E18
        expected = router.quote_remove_liquidity_one_token(tokens, liquidity, usdc.address)
        stables.lp_token.approve(router.address, liquidity, sender=ALICE)

        amount = router.remove_liquidity_one_token(
            tokens, liquidity, usdc.address, expected, BOB, deadline(router.chain), sender=ALICE
        )

        assert amount == expected
        assert usdc.balance_of(BOB) == amount

    def test_imbalanced_withdrawal_pulls_only_burned_shares(
        self, router, stables, dai, usdc, usdt
    ):
        tokens = [dai.address, usdc.address, usdt.address]
        amounts = [5_000 * E18, 0, 2_000 * E6]
        burn = router.quote_remove_liquidity_imbalance(tokens, amounts)
        before = stables.lp_token.balance_of(ALICE)
        stables.lp_token.approve(router.address, burn * 2, sender=ALICE)

        burned = router.remove_liquidity_imbalance(
            tokens, amounts, burn * 2, BOB, deadline(router.chain), sender=ALICE
        )

        assert burned == burn
        assert stables.lp_token.balance_of(ALICE) == before - burn
        assert stables.lp_token.balance_of(stables.address) == 0
        assert dai.balance_of(BOB) == 5_000 * E18
        assert usdt.balance_of(BOB) == 2_000 * E6

    def test_imbalanced_withdrawal_max_burn(self, router, stables, dai, usdc, usdt):
        tokens = [dai.address, usdc.address, usdt.address]
        amounts = [5_000 * E18, 0, 0]
        burn = router.quote_remove_liquidity_imbalance(tokens, amounts)
        stables.lp_token.approve(router.address, burn, sender=ALICE)
        with pytest.raises(ExceedsMaxBurn):
            router.remove_liquidity_imbalance(
                tokens, amounts, burn - 1, BOB, deadline(router.chain), sender=ALICE
            )

    def test_withdrawal_from_missing_stable_pool(self, router, dai, uni):
        with pytest.raises(NotStablePair):
            router.remove_liquidity_one_token(
                [dai.address, uni.address],
                1,
                dai.address,
                0,
                BOB,
                deadline(router.chain),
                sender=ALICE,
            )


class TestNativeLiquidity:
    """Tests for the *_eth liquidity entry points."""

    @pytest.fixture
    def steth(self, chain):
        return make_token(chain, "STETH")

    @pytest.fixture
    def uni_weth(self, chain, router, weth, uni) -> VolatilePool:
        chain.mint_native(ALICE, E18)
        fund_and_approve(uni, ALICE, 10 * E18, router.address)
        router.add_liquidity_eth(
            PoolType.VOLATILE,
            [uni.address, weth.address],
            [10 * E18, E18],
            [0, 0],
            0,
            ALICE,
            deadline(chain),
            sender=ALICE,
            value=E18,
        )
        pool = router.registry.get_pool([uni.address, weth.address], PoolType.VOLATILE)
        assert isinstance(pool, VolatilePool)
        return pool

    @pytest.fixture
    def weth_steth(self, chain, router, registry, weth, steth) -> StablePool:
        pool = create_stable_pool(registry, [weth, steth])
        chain.mint_native(ALICE, 100 * E18)
        fund_and_approve(steth, ALICE, 100 * E18, router.address)
        router.add_liquidity_eth(
            PoolType.STABLE,
            [weth.address, steth.address],
            [100 * E18, 100 * E18],
            [0, 0],
            0,
            ALICE,
            deadline(chain),
            sender=ALICE,
            value=100 * E18,
        )
        return pool

    def test_native_deposit_creates_pair(self, chain, router, uni_weth, weth):
        assert uni_weth.get_reserves()[uni_weth.get_token_index(weth.address)] == E18
        assert chain.native_balance_of(ALICE) == 0
        assert chain.native_balance_of(router.address) == 0
        assert weth.balance_of(router.address) == 0

    def test_unused_native_value_refunded(self, chain, router, uni_weth, weth, uni):
        """value covers the desired amount; what the ratio does not use comes back."""
        chain.mint_native(BOB, E18)
        fund_and_approve(uni, BOB, E18, router.address)

        amounts, _ = router.add_liquidity_eth(
            PoolType.VOLATILE,
            [uni.address, weth.address],
            [E18, E18],
            [0, 0],
            0,
            BOB,
            deadline(chain),
            sender=BOB,
            value=E18,
        )

        assert amounts == [E18, E18 // 10]
        assert chain.native_balance_of(BOB) == E18 - E18 // 10
        assert chain.native_balance_of(router.address) == 0

    def test_value_must_match_desired(self, chain, router, uni_weth, weth, uni):
        chain.mint_native(BOB, E18)
        with pytest.raises(ValueMismatch):
            router.add_liquidity_eth(
                PoolType.VOLATILE,
                [uni.address, weth.address],
                [E18, E18],
                [0, 0],
                0,
                BOB,
                deadline(chain),
                sender=BOB,
                value=E18 // 2,
            )

    def test_short_amounts_rejected(self, chain, router, uni_weth, weth, uni):
        """Fewer desired amounts than tokens fails before WETH is located."""
        chain.mint_native(BOB, E18)
        with pytest.raises(AmountsMismatch):
            router.add_liquidity_eth(
                PoolType.VOLATILE,
                [uni.address, weth.address],
                [E18],
                [0, 0],
                0,
                BOB,
                deadline(chain),
                sender=BOB,
                value=E18,
            )
        assert chain.native_balance_of(BOB) == E18
        assert chain.native_balance_of(router.address) == 0

    def test_tokens_must_include_weth(self, chain, router, dai, uni):
        with pytest.raises(InvalidToken):
            router.add_liquidity_eth(
                PoolType.VOLATILE,
                [dai.address, uni.address],
                [E18, E18],
                [0, 0],
                0,
                BOB,
                deadline(chain),
                sender=BOB,
                value=E18,
            )

    def test_remove_liquidity_eth(self, chain, router, uni_weth, weth, uni):
        liquidity = uni_weth.balance_of(ALICE) // 2
        expected = router.quote_remove_liquidity(
            PoolType.VOLATILE, [uni.address, weth.address], liquidity
        )
        uni_weth.approve(router.address, liquidity, sender=ALICE)

        amounts = router.remove_liquidity_eth(
            PoolType.VOLATILE,
            [uni.address, weth.address],
            liquidity,
            [0, 0],
            CAROL,
            deadline(chain),
            sender=ALICE,
        )

        assert amounts == expected
        assert uni.balance_of(CAROL) == amounts[0]
        assert chain.native_balance_of(CAROL) == amounts[1]
        assert weth.balance_of(router.address) == 0
        assert uni.balance_of(router.address) == 0

    def test_stable_single_token_eth(self, chain, router, weth_steth, weth, steth):
        tokens = [weth.address, steth.address]
        liquidity = 10 * E18
        expected = router.quote_remove_liquidity_one_token(tokens, liquidity, weth.address)
        weth_steth.lp_token.approve(router.address, liquidity, sender=ALICE)

        amount = router.remove_liquidity_one_token_eth(
            tokens, liquidity, weth.address, 0, CAROL, deadline(chain), sender=ALICE
        )

        assert amount == expected
        assert chain.native_balance_of(CAROL) == amount
        assert weth.balance_of(router.address) == 0

    def test_single_token_eth_requires_weth(self, chain, router, weth_steth, weth, steth):
        with pytest.raises(InvalidToken):
            router.remove_liquidity_one_token_eth(
                [weth.address, steth.address],
                E18,
                steth.address,
                0,
                CAROL,
                deadline(chain),
                sender=ALICE,
            )

    def test_stable_imbalanced_eth(self, chain, router, weth_steth, weth, steth):
        tokens = [steth.address, weth.address]
        amounts = [0, 5 * E18]
        burn = router.quote_remove_liquidity_imbalance(tokens, amounts)
        weth_steth.lp_token.approve(router.address, burn, sender=ALICE)

        burned = router.remove_liquidity_imbalance_eth(
            tokens, amounts, burn, CAROL, deadline(chain), sender=ALICE
        )

        assert burned == burn
        assert chain.native_balance_of(CAROL) == 5 * E18
        assert steth.balance_of(CAROL) == 0
        assert chain.native_balance_of(router.address) == 0
