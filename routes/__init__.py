# Routes package __init__.py - re-exports routers for main.py convenience
from .tables import router as tables_router
from .relations import router as relations_router
from .study import router as study_router
from .flashcards import router as flashcards_router
from .rewards import router as rewards_router
from .stats import router as stats_router
from .sessions import router as sessions_router

__all__ = [
    'tables_router', 'relations_router', 'study_router', 'flashcards_router',
    'rewards_router', 'stats_router', 'sessions_router',
]
