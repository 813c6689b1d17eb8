"""Route modules for the SpendLens analytics API."""
from spendlens.api.routes.analytics import router

__all__ = ["router"]
