from .lookup import router as lookup_router

__all__ = [
    "lookup_router",
]
