"""Provider boundary: object protocol, handle ownership and the COM adapter."""

from winsched.provider.handles import HandleReleasedError, OwnedHandle, acquired
from winsched.provider.protocol import ProviderFactory, ProviderObject

__all__ = [
    "HandleReleasedError",
    "OwnedHandle",
    "ProviderFactory",
    "ProviderObject",
    "acquired",
]
