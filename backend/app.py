"""
Main entry point for the FastAPI backend application.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from google import genai

from solveai.config import (
    CATALOG_PATH,
    CORS_ORIGINS,
    GEMINI_API_KEY,
    GEMINI_API_MODEL,
    SOLVER_TEMPERATURE,
    setup_logging,
)
from solveai.database import close_catalog, open_catalog
from solveai.endpoints import register_routes
from solveai.solver import Solver

setup_logging()
logger = logging.getLogger("solveai.app")

# Initialize Gemini client
gemini_client = None
if GEMINI_API_KEY:
    gemini_client = genai.Client(api_key=GEMINI_API_KEY)
else:
    logger.warning("GEMINI_API_KEY not set. AI features will not work.")

solver = Solver(gemini_client, GEMINI_API_MODEL, SOLVER_TEMPERATURE)


async def get_catalog():
    return await open_catalog(CATALOG_PATH)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the local catalog at startup and release it on shutdown."""
    await get_catalog()
    yield
    close_catalog()


# Initialize FastAPI app
app = FastAPI(title="SolveAI Educacional", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routes
register_routes(app, solver, get_catalog)

if __name__ == "__main__":
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
