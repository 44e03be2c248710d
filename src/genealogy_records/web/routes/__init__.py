"""API routers mounted under ``/api``."""

from genealogy_records.web.routes.auth import router as auth_router
from genealogy_records.web.routes.genealogies import router as genealogies_router
from genealogy_records.web.routes.persons import router as persons_router

__all__ = ["auth_router", "genealogies_router", "persons_router"]
