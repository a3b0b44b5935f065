from fastapi import APIRouter

from rm_sync.api.v1.endpoints import connections, mappings, projects, sync

api_router = APIRouter()
api_router.include_router(connections.router, prefix="/connection", tags=["connection"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(mappings.router, prefix="/mappings", tags=["mappings"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
