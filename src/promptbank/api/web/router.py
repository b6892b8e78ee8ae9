"""Router for the prompt library pages and form actions."""

from fastapi import APIRouter

from promptbank.api.web.auth import router as auth_router
from promptbank.api.web.categories import router as categories_router
from promptbank.api.web.health import router as health_router
from promptbank.api.web.prompts import router as prompts_router
from promptbank.api.web.users import router as users_router

web_router = APIRouter()

web_router.include_router(health_router, prefix="/health", tags=["Health"])
web_router.include_router(auth_router, tags=["Auth"])
web_router.include_router(prompts_router, tags=["Prompts"])
web_router.include_router(categories_router, prefix="/categories", tags=["Categories"])
web_router.include_router(users_router, prefix="/users", tags=["Users"])
