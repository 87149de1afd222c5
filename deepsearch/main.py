from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deepsearch import __version__
from deepsearch.api.deps import get_registry
from deepsearch.api.routes import chat, research, search
from deepsearch.config import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    get_registry().clear()


app = FastAPI(
    title="DeepSearch",
    description="Search-grounded streaming reports",
    version=__version__,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(search.router)
app.include_router(chat.router)
app.include_router(research.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "deepsearch"}
