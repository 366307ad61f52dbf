"""Dependency providers for the token issuer and rotator."""

from functools import lru_cache

from fastapi import Depends

from auth_service.config.config import settings
from auth_service.core.rotation import TokenRotator
from auth_service.core.tokens import TokenIssuer


@lru_cache(maxsize=1)
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(settings)


def get_token_rotator(issuer: TokenIssuer = Depends(get_token_issuer)) -> TokenRotator:
    return TokenRotator(issuer)
