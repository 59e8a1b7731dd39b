from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from infra.database import connection as db_connection
from api.routers import (
    analytics,
    engagement,
    feature_flags,
    feedback,
    folders,
    notifications,
    profiles,
    prompts,
    support,
    transfer,
)

from config import settings

# Lifespan event to handle startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    db_connection.init_db()  # DuckDBの初期化 (Raw SQLによるSequence/Table作成 + Alembic)
    yield
    db_connection.close_db()

app = FastAPI(title="MyPrompt Backend API", lifespan=lifespan)

# CORS Configuration
origins = [
    f"http://localhost:{settings.FRONTEND_PORT}",
    f"http://127.0.0.1:{settings.FRONTEND_PORT}",
    f"http://localhost:{settings.MYPROMPT_PORT}",
    f"http://127.0.0.1:{settings.MYPROMPT_PORT}",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Root endpoint for health check
@app.get("/")
async def root():
    return {"message": "MyPrompt Backend API is running"}

# Include Routers
app.include_router(analytics.router)
app.include_router(engagement.router)
app.include_router(feature_flags.router)
app.include_router(feedback.router)
app.include_router(folders.router)
app.include_router(notifications.router)
app.include_router(profiles.router)
app.include_router(prompts.router)
app.include_router(support.router)
app.include_router(transfer.router)
