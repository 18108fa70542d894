from fastapi import FastAPI
from .conversations import router as conversations_router
from .requests import router as requests_router
from .admin import router as admin_router

def setup_routes(app: FastAPI):
    @app.get("/")
    async def root():
        return {"message": "API is alive!"}

    app.include_router(
        conversations_router,
        prefix="/conversations",
        tags=["conversations"],
    )

    app.include_router(
        requests_router,
        prefix="/requests",
        tags=["requests"],
    )

    app.include_router(
        admin_router,
        prefix="/admin",
        tags=["admin"],
    )
