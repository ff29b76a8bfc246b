from fastapi import APIRouter
from app.api.v1.endpoints import api_keys, credentials, activity, projects, teams

api_router = APIRouter()

api_router.include_router(api_keys.router, prefix="/api-keys", tags=["api-keys"])
api_router.include_router(credentials.router, prefix="/credentials", tags=["credentials"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(teams.router, prefix="/teams", tags=["teams"])
