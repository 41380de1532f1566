import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flyball.database import init_db
from flyball.routes import race_assignments, realtime, tournaments

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Flyball Ring Assignments API")

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(race_assignments.router, prefix="/api", tags=["race-assignments"])

# Viewer WebSocket (no /api prefix)
app.include_router(realtime.router, tags=["realtime"])


@app.on_event("startup")
def on_startup():
    init_db()
    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info(f"Flyball Ring Assignments API started with {route_count} routes")


@app.get("/")
def root():
    return {"message": "Flyball Ring Assignments API"}
