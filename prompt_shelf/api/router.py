"""Main API router — aggregates all endpoint modules."""

from fastapi import APIRouter

from prompt_shelf.api.audit import router as audit_router
from prompt_shelf.api.auth import router as auth_router
from prompt_shelf.api.groups import router as groups_router
from prompt_shelf.api.invites import router as invites_router
from prompt_shelf.api.libraries import router as libraries_router
from prompt_shelf.api.prompts import router as prompts_router
from prompt_shelf.api.search import router as search_router
from prompt_shelf.api.shares import router as shares_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(libraries_router, prefix="/libraries", tags=["libraries"])
api_router.include_router(shares_router, prefix="/libraries", tags=["sharing"])
api_router.include_router(audit_router, prefix="/libraries", tags=["audit"])
api_router.include_router(invites_router, prefix="/invites", tags=["sharing"])
api_router.include_router(groups_router, prefix="/groups", tags=["groups"])
api_router.include_router(prompts_router, prefix="/prompts", tags=["prompts"])
api_router.include_router(search_router, prefix="/search", tags=["search"])
