from .confessions import router as confessions_router

__all__ = [
    "confessions_router",
]
