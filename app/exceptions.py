"""
Error taxonomy for installation, remote API and webhook paths.
"""
from typing import Any, Optional


class ShopMirrorError(Exception):
    """Base class for every error raised by the sync core."""


# Installation
class InvalidShop(ShopMirrorError):
    pass


class StateMismatch(ShopMirrorError):
    pass


class SignatureInvalid(ShopMirrorError):
    pass


class TokenExchangeFailed(ShopMirrorError):
    pass


# Remote API
class RemoteError(ShopMirrorError):
    """Transport failure or non-success HTTP status from the Admin API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RemoteDataError(ShopMirrorError):
    """Response decoded fine but carried a top-level ``errors`` list."""

    def __init__(self, errors: Any):
        super().__init__(f"GraphQL errors: {errors}")
        self.errors = errors


# Webhooks
class ShopUnknown(ShopMirrorError):
    pass
