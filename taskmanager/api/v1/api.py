from fastapi import APIRouter
from taskmanager.api.v1.endpoints import health, roles, tasks, users

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(roles.router, prefix="/roles", tags=["roles"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
