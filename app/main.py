# app/main.py

import logging

from fastapi import FastAPI

from core.db import engine, init_db

# Route modules
from app.routes import face as face_routes
from app.routes import persons as persons_routes
from app.routes import quiz as quiz_routes

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------------------------------------------------------------------
# DB: create tables (dev mode). In production, use migrations instead.
# ---------------------------------------------------------------------------
init_db(engine)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(title="FaceRecall API", version="0.1.0")


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

# face.py defines router = APIRouter(prefix="/face", tags=["face"])
app.include_router(face_routes.router)

# persons.py uses router = APIRouter(), so the prefix is added here
app.include_router(persons_routes.router, prefix="/persons", tags=["persons"])

# quiz.py defines router = APIRouter(prefix="/quiz", tags=["quiz"])
app.include_router(quiz_routes.router)


# ---------------------------------------------------------------------------
# Simple health + root endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"ok": True}


@app.get("/")
def read_root():
    return {"message": "Welcome to the FaceRecall API!"}
