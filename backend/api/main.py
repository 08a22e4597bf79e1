from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
import sys

# Add parent directory to path to allow importing core
sys.path.append(str(Path(__file__).resolve().parents[2]))

from backend.core.config import settings
from backend.core.sessions import registry
from backend.api.routers import reconcile_router

app = FastAPI(title="Storeroom Reconciliation", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reconcile_router)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "version": "1.0.0", "sessions": len(registry.list())}
