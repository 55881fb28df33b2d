"""Routers module."""

from .chains import router as chains_router
from .evaluation_fields import router as evaluation_fields_router
from .evaluations import router as evaluations_router
from .products import router as products_router
from .stores import router as stores_router
from .visits import router as visits_router

__all__ = [
    "chains_router",
    "evaluation_fields_router",
    "evaluations_router",
    "products_router",
    "stores_router",
    "visits_router",
]
