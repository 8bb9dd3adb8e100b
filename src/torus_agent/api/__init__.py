"""HTTP routers mounted by the agent runtime."""

from .auth import create_auth_router
from .dispatch import create_dispatch_router
from .docs import create_docs_router

__all__ = ["create_auth_router", "create_dispatch_router", "create_docs_router"]
