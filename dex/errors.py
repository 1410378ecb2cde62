"""Error classes for the DEX engine.

Every failure raised by pools, the registry and the router derives from
AMMError and falls into one category:

- InputValidationError: malformed calls (zero amounts, bad tokens, bad routes)
- LiquidityError: the pool cannot honour the request
- SlippageError: caller-supplied bounds or deadlines were not met
- AuthorizationError: caller is not allowed to perform the call
- NumericError: arithmetic bounds or solver convergence failures
- Locked: reentrant call into a pool

All errors are fatal to the call that raised them; the ledger transaction
restores the state from before the call.
"""


class AMMError(Exception):
    """Base error for DEX engine operations."""

    pass


class Locked(AMMError):
    """A pool entry point was re-entered while the pool was locked."""

    pass


# =============================================================================
# Input validation
# =============================================================================


class InputValidationError(AMMError):
    """Base error for malformed calls."""

    pass


class InsufficientInput(InputValidationError):
    """No input amount was provided or received."""

    pass


class InsufficientOutput(InputValidationError):
    """A swap requested or produced no output."""

    pass


class InvalidAmount(InputValidationError):
    """Amount is not a uint256."""

    pass


class InvalidTo(InputValidationError):
    """Swap recipient is one of the pooled tokens."""

    pass


class InvalidToken(InputValidationError):
    """Token is not part of the pool or not the expected token."""

    pass


class DuplicateTokens(InputValidationError):
    """The same token was supplied more than once."""

    pass


class TooManyTokens(InputValidationError):
    """More tokens than a pool supports."""

    pass


class TooFewTokens(InputValidationError):
    """Fewer tokens than a pool requires."""

    pass


class TokenDecimalsTooHigh(InputValidationError):
    """Token decimals exceed the pool precision."""

    pass


class InvalidAmplification(InputValidationError):
    """Amplification coefficient is outside (0, MAX_A)."""

    pass


class SwapFeeTooHigh(InputValidationError):
    """Swap fee rate exceeds MAX_SWAP_FEE."""

    pass


class AdminFeeTooHigh(InputValidationError):
    """Admin fee rate exceeds MAX_ADMIN_FEE."""

    pass


class AmountsMismatch(InputValidationError):
    """Amount list length does not match the pooled tokens."""

    pass


class MustSupplyAllTokens(InputValidationError):
    """Deposit does not cover every pooled token."""

    pass


class InvalidPairType(InputValidationError):
    """Unknown pool type, or the address is not a registered pool."""

    pass


class NotVolatilePair(InputValidationError):
    """Pool is not a volatile (constant-product) pool."""

    pass


class NotStablePair(InputValidationError):
    """Pool is not a stable (StableSwap) pool."""

    pass


class InvalidPath(InputValidationError):
    """Route is empty or adjacent hops do not share a token."""

    pass


class ValueMismatch(InputValidationError):
    """Attached native value does not match the expected amount."""

    pass


class PoolAlreadyExists(InputValidationError):
    """A pool with this token set and type is already registered."""

    pass


class SendToSelf(InputValidationError):
    """LP tokens cannot be sent to the LP token contract itself."""

    pass


# =============================================================================
# Liquidity
# =============================================================================


class LiquidityError(AMMError):
    """Base error for requests the pool state cannot honour."""

    pass


class InsufficientLiquidity(LiquidityError):
    """Output would drain a reserve, or a reserve is empty."""

    pass


class KInvariantViolated(LiquidityError):
    """Constant-product check failed after a swap."""

    pass


class InsufficientLiquidityMinted(LiquidityError):
    """Deposit would mint no LP shares."""

    pass


class CannotMintZero(InsufficientLiquidityMinted):
    """LP token mint amount is zero."""

    pass


class DMustIncrease(InsufficientLiquidityMinted):
    """Deposit did not increase the StableSwap invariant."""

    pass


class InsufficientLiquidityBurned(LiquidityError):
    """Burn would return nothing for at least one token."""

    pass


class WithdrawExceedsAvailable(LiquidityError):
    """Withdrawal exceeds what the pool holds or the LP supply."""

    pass


class BurntAmountZero(LiquidityError):
    """Imbalanced withdrawal would burn no LP shares."""

    pass


class InsufficientBalance(LiquidityError):
    """Token holder balance is too low for the transfer."""

    pass


class InsufficientAllowance(LiquidityError):
    """Spender allowance is too low for the transfer."""

    pass


# =============================================================================
# Slippage and deadlines
# =============================================================================


class SlippageError(AMMError):
    """Base error for unmet caller-supplied bounds."""

    pass


class InsufficientOutputAmount(SlippageError):
    """Final route output is below amount_out_min."""

    pass


class InsufficientAAmount(SlippageError):
    """Optimal amount of the first token is below its minimum."""

    pass


class InsufficientBAmount(SlippageError):
    """Optimal amount of the second token is below its minimum."""

    pass


class MintBelowMinimum(SlippageError):
    """Minted LP shares are below the requested minimum."""

    pass


class BelowMinAmount(SlippageError):
    """A withdrawn or swapped amount is below its minimum."""

    pass


class ExceedsMaxBurn(SlippageError):
    """Imbalanced withdrawal would burn more than max_burn."""

    pass


class Expired(SlippageError):
    """Router deadline has passed."""

    pass


class DeadlineNotMet(SlippageError):
    """Pool deadline has passed."""

    pass


# =============================================================================
# Authorization
# =============================================================================


class AuthorizationError(AMMError):
    """Base error for unauthorized calls."""

    pass


class NotManager(AuthorizationError):
    """Caller is not the registry manager."""

    pass


class NotMinter(AuthorizationError):
    """Caller is not allowed to mint or burn the LP token."""

    pass


class InvalidSignature(AuthorizationError):
    """Permit signature does not recover to the owner."""

    pass


class PermitExpired(AuthorizationError):
    """Permit deadline has passed."""

    pass


# =============================================================================
# Numeric
# =============================================================================


class NumericError(AMMError):
    """Base error for arithmetic bounds and convergence failures."""

    pass


class Overflow(NumericError):
    """A value does not fit in its unsigned storage width."""

    pass


class DidNotConverge(NumericError):
    """Newton iteration exceeded its iteration cap."""

    pass
