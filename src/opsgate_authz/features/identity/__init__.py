from .resolver import IdentityResolver
from .schemas import CallerIdentity

__all__ = ["CallerIdentity", "IdentityResolver"]
