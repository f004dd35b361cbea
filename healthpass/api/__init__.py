"""API module."""

from .auth import router as auth_router
from .users import router as users_router
from .records import medical_conditions_router, medications_router, allergies_router
from .lifestyle import router as lifestyle_router
from .documents import router as documents_router, files_router
from .health_passes import router as health_passes_router
from .autocomplete import router as autocomplete_router

api_routers = [
    auth_router,
    users_router,
    medical_conditions_router,
    medications_router,
    allergies_router,
    lifestyle_router,
    documents_router,
    files_router,
    health_passes_router,
    autocomplete_router,
]

__all__ = [
    'auth_router', 'users_router', 'medical_conditions_router', 'medications_router',
    'allergies_router', 'lifestyle_router', 'documents_router', 'files_router',
    'health_passes_router', 'autocomplete_router', 'api_routers'
]
