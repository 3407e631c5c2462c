import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Routers
from routers.exercise import router as exercise_router
from routers.generation import router as generation_router
from routers.marking import router as marking_router
from routers.questions import router as questions_router
from routers.transfer import router as transfer_router

logger = logging.getLogger("educbt-bank")
logging.basicConfig(level=logging.INFO)

app = FastAPI(title="EduCBT – Question Bank API")

# Allow calls from the local editor UI; extra origins come from CORS_ORIGINS
_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
] + [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def health_root():
    return {"ok": True}


app.include_router(questions_router)  # /questions/...
app.include_router(generation_router)  # /generate, /questions/{id}/repair
app.include_router(transfer_router)  # /import, /export
app.include_router(marking_router)  # /mark, /mark-batch
app.include_router(exercise_router)  # /exercise/...
