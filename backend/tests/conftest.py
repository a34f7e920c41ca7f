"""
Pytest configuration and shared fixtures for SolveAI tests.
"""

import json
from io import BytesIO
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import chromadb
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image

from solveai.database import CatalogStore
from solveai.endpoints import register_routes
from solveai.solver import Solver


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def catalog(tmp_path: Path) -> CatalogStore:
    """A catalog backed by a fresh on-disk ChromaDB directory."""
    client = chromadb.PersistentClient(path=str(tmp_path / "catalog"))
    return CatalogStore(client)


@pytest.fixture
def sample_solution() -> dict:
    """A complete payload as returned by Gemini."""
    return {
        "originalQuestion": "Calcule a força para m=2kg, a=3m/s²",
        "extractedData": ["m = 2 kg", "a = 3 m/s²"],
        "questionItems": [],
        "steps": [
            {"title": "Interpretação", "content": "Dados: massa e aceleração."},
            {"title": "Resposta Final", "content": "F = 6 N"},
        ],
        "finalAnswer": "$$F = 6 \\, \\text{N}$$",
        "usedMaterials": ["slide3.png"],
        "shortVersion": "F = 6 N",
        "confidence": "alta",
        "confidenceReason": "Todos os dados disponíveis e back-check passou.",
        "warnings": [],
        "missingData": [],
        "sourceCitations": [{"formula": "F = ma", "source": "Slide 3"}],
    }


def gemini_response(text):
    """Minimal stand-in for a google-genai GenerateContentResponse."""
    return SimpleNamespace(text=text, candidates=None)


@pytest.fixture
def gemini_client(sample_solution: dict) -> MagicMock:
    """Mock Gemini client answering every call with the sample solution."""
    client = MagicMock()
    client.models.generate_content.return_value = gemini_response(json.dumps(sample_solution))
    return client


@pytest.fixture
def solver(gemini_client: MagicMock) -> Solver:
    return Solver(gemini_client, "gemini-test", 0.1)


@pytest.fixture
def unconfigured_solver() -> Solver:
    return Solver(None, "gemini-test", 0.1)


def build_client(solver: Solver, catalog: CatalogStore) -> TestClient:
    app = FastAPI()

    async def get_catalog():
        return catalog

    register_routes(app, solver, get_catalog)
    return TestClient(app)


@pytest.fixture
def api(solver: Solver, catalog: CatalogStore) -> TestClient:
    return build_client(solver, catalog)


@pytest.fixture
def unconfigured_api(unconfigured_solver: Solver, catalog: CatalogStore) -> TestClient:
    return build_client(unconfigured_solver, catalog)


@pytest.fixture
def png_bytes() -> bytes:
    """A small white PNG image."""
    buf = BytesIO()
    Image.new("RGB", (600, 400), color="white").save(buf, format="PNG")
    return buf.getvalue()
