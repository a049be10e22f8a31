import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tournament_engine import __version__
from tournament_engine.config import CORS_ORIGINS, LOG_LEVEL
from tournament_engine.routes import brackets, draws, schedules

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Tournament Engine API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(draws.router, prefix="/api", tags=["draws"])
app.include_router(brackets.router, prefix="/api", tags=["brackets"])
app.include_router(schedules.router, prefix="/api", tags=["schedules"])


@app.get("/api/health")
def health_check():
    """Liveness probe"""
    return {"app_name": "Tournament Engine API", "version": __version__, "status": "healthy"}


@app.get("/")
def root():
    return {"message": "Tournament Engine API"}
