from fastapi import APIRouter

from app.api.endpoints import imports, projects

api_router = APIRouter()

api_router.include_router(projects.router, prefix="/v1/projects", tags=["projects"])
api_router.include_router(imports.router, prefix="/v1/projects/{project_id}/import", tags=["import"])
