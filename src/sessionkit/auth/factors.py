"""Factor selection policy.

Pure functions choosing which sign-in factor to present when several qualify.
The ordering is a client-side preference only; the server decides which factors
are valid.
"""

from typing import List, Optional, Sequence

from ..models import Factor, FactorStrategy, PreferredSignInStrategy, SignIn, StrategyKind

PASSWORD_PRIORITY = (StrategyKind.PASSKEY, StrategyKind.PASSWORD, StrategyKind.EMAIL_CODE, StrategyKind.PHONE_CODE)
OTP_PRIORITY = (StrategyKind.EMAIL_CODE, StrategyKind.PHONE_CODE, StrategyKind.PASSKEY, StrategyKind.PASSWORD)

# Magic links need a browser round-trip and unrecognised strategies cannot be
# completed, so neither is ever offered natively
EXCLUDED_STRATEGIES = frozenset({StrategyKind.EMAIL_LINK, StrategyKind.UNKNOWN})


def _priority(preference: PreferredSignInStrategy) -> Sequence[StrategyKind]:
    return OTP_PRIORITY if preference is PreferredSignInStrategy.OTP else PASSWORD_PRIORITY


def sort_factors(factors: Sequence[Factor], preference: PreferredSignInStrategy) -> List[Factor]:
    """Order factors by the fixed priority for ``preference``.

    Strategies outside the priority list keep their relative order after the
    ranked ones. The sort is stable, so equal inputs always give equal outputs.
    """
    priority = _priority(preference)
    ranks = {kind: index for index, kind in enumerate(priority)}

    return sorted(
        (f for f in factors if f.strategy.kind not in EXCLUDED_STRATEGIES),
        key=lambda f: ranks.get(f.strategy.kind, len(priority)),
    )


def starting_first_factor(sign_in: SignIn, preference: PreferredSignInStrategy) -> Optional[Factor]:
    """Pick the first factor to present for ``sign_in``.

    Prefers the highest-ranked factor bound to the identifier the user already
    typed; otherwise the highest-ranked factor overall. Reset-password factors
    are never a starting factor.

    Args:
        sign_in: The current sign-in attempt
        preference: The instance's preferred sign-in strategy

    Returns:
        The factor to present, or None if no factor qualifies

    Example:
        >>> factor = starting_first_factor(sign_in, PreferredSignInStrategy.OTP)
        >>> factor.strategy.raw_value
        'email_code'
    """
    candidates = sort_factors(
        [f for f in sign_in.supported_first_factors if not f.strategy.is_reset_password],
        preference,
    )
    if not candidates:
        return None

    if sign_in.identifier:
        for factor in candidates:
            if factor.safe_identifier == sign_in.identifier:
                return factor

    return candidates[0]


def starting_second_factor(sign_in: SignIn) -> Optional[Factor]:
    """The default second factor, else TOTP, else the first supported one."""
    factors = sign_in.supported_second_factors
    if not factors:
        return None
    for factor in factors:
        if factor.default:
            return factor
    for factor in factors:
        if factor.strategy.kind is StrategyKind.TOTP:
            return factor
    return factors[0]


def alternative_first_factors(
    sign_in: SignIn, current: Optional[Factor], preference: PreferredSignInStrategy
) -> List[Factor]:
    """Every first factor the user could switch to instead of ``current``.

    External (OAuth/SSO) and reset-password factors are excluded; they are
    reached through their own entry points.
    """
    return [
        f
        for f in sort_factors(sign_in.supported_first_factors, preference)
        if f != current and not f.strategy.is_reset_password and not f.strategy.is_external
    ]


def reset_password_factor(sign_in: SignIn) -> Optional[Factor]:
    """The reset-password factor for ``sign_in``, preferring email over phone."""
    by_kind = {f.strategy.kind: f for f in sign_in.supported_first_factors if f.strategy.is_reset_password}
    return by_kind.get(StrategyKind.RESET_PASSWORD_EMAIL_CODE) or by_kind.get(StrategyKind.RESET_PASSWORD_PHONE_CODE)


def factor_for_strategy(sign_in: SignIn, strategy: FactorStrategy) -> Optional[Factor]:
    """The supported first factor for ``strategy``, preferring one bound to the identifier."""
    return sign_in.identifying_first_factor(strategy) or next(
        (f for f in sign_in.supported_first_factors if f.strategy == strategy), None
    )
