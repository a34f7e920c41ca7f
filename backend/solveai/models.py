"""
Pydantic models for API request/response validation and catalog records.

Fields are snake_case in Python and camelCase on the wire.
"""
import json
import unicodedata
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

Confidence = Literal["alta", "media", "baixa"]

CONFIDENCE_LEVELS = ("alta", "media", "baixa")
CONFIDENCE_ALIASES = {"high": "alta", "medium": "media", "low": "baixa"}
DEFAULT_CONFIDENCE = "media"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class FolderInfo(CamelModel):
    """Folder metadata sent along with a question."""
    name: str
    book_reference: Optional[str] = None
    notes: Optional[str] = None


class SolveRequest(CamelModel):
    """Request model for solving a question."""
    question_text: str
    context_materials: list[str] = Field(default_factory=list)
    folder_info: Optional[FolderInfo] = None

    @field_validator("question_text")
    @classmethod
    def _require_question(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("required_text", "O texto da questão é obrigatório")
        return value


class ExtractTextRequest(CamelModel):
    """Request model for transcribing an image or PDF."""
    image_base64: str
    mime_type: str = "image/jpeg"

    @field_validator("image_base64")
    @classmethod
    def _require_image(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("required_text", "A imagem em base64 é obrigatória")
        return value


class ExtractTextResponse(CamelModel):
    text: str


class FolderCreateRequest(CamelModel):
    name: str


class FolderPatch(CamelModel):
    """Partial update of a folder; only explicitly set fields are merged."""
    book_reference: Optional[str] = None
    notes: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class HealthResponse(CamelModel):
    status: str = "ok"
    gemini_configured: bool


# ---------------------------------------------------------------------------
# Catalog records
# ---------------------------------------------------------------------------

class Folder(CamelModel):
    id: str
    name: str
    book_reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class FolderSummary(Folder):
    file_count: int = 0


class ContextFile(CamelModel):
    id: str
    folder_id: str
    name: str
    type: str
    size: int
    data: str
    extracted_text: Optional[str] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Solver response contract
# ---------------------------------------------------------------------------

def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, bool)):
        return str(value)
    return json.dumps(value, ensure_ascii=False, default=str)


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [item for item in value if item is not None]
    return [value]


def _as_text_list(value) -> list[str]:
    return [_as_text(item) for item in _as_list(value)]


def _as_record_list(value, text_key: str) -> list:
    """Wrap bare strings in a dict so they validate as records."""
    records = []
    for item in _as_list(value):
        if isinstance(item, dict):
            records.append(item)
        else:
            records.append({text_key: _as_text(item)})
    return records


def normalize_confidence(value) -> str:
    """Map any upstream confidence label onto alta/media/baixa."""
    if not isinstance(value, str):
        return DEFAULT_CONFIDENCE
    label = unicodedata.normalize("NFKD", value.strip().lower())
    label = "".join(c for c in label if not unicodedata.combining(c))
    label = CONFIDENCE_ALIASES.get(label, label)
    return label if label in CONFIDENCE_LEVELS else DEFAULT_CONFIDENCE


class SolutionStep(CamelModel):
    title: str = ""
    content: str = ""

    @field_validator("title", "content", mode="before")
    @classmethod
    def _text(cls, value):
        return _as_text(value)


class SourceCitation(CamelModel):
    formula: str = ""
    source: str = ""

    @field_validator("formula", "source", mode="before")
    @classmethod
    def _text(cls, value):
        return _as_text(value)


class QuestionItem(CamelModel):
    """One lettered item (A, B, C...) of the question."""
    letter: str = ""
    description: str = ""
    formulas: list[str] = Field(default_factory=list)
    concepts: list[str] = Field(default_factory=list)
    detailed_calculation: str = ""
    final_result: str = ""
    solution_steps: list[SolutionStep] = Field(default_factory=list)
    solution: str = ""

    @field_validator(
        "letter", "description", "detailed_calculation", "final_result", "solution",
        mode="before",
    )
    @classmethod
    def _text(cls, value):
        return _as_text(value)

    @field_validator("formulas", "concepts", mode="before")
    @classmethod
    def _text_list(cls, value):
        return _as_text_list(value)

    @field_validator("solution_steps", mode="before")
    @classmethod
    def _steps(cls, value):
        return _as_record_list(value, "content")


class SolveResponse(CamelModel):
    """
    Normalized solver output. Every field is always present: absent values
    become [], "" or "media".
    """
    original_question: str = ""
    extracted_data: list[str] = Field(default_factory=list)
    question_items: list[QuestionItem] = Field(default_factory=list)
    steps: list[SolutionStep] = Field(default_factory=list)
    final_answer: str = ""
    used_materials: list[str] = Field(default_factory=list)
    short_version: str = ""
    confidence: Confidence = DEFAULT_CONFIDENCE
    confidence_reason: str = ""
    warnings: list[str] = Field(default_factory=list)
    missing_data: list[str] = Field(default_factory=list)
    source_citations: list[SourceCitation] = Field(default_factory=list)

    @field_validator(
        "original_question", "final_answer", "short_version", "confidence_reason",
        mode="before",
    )
    @classmethod
    def _text(cls, value):
        return _as_text(value)

    @field_validator(
        "extracted_data", "used_materials", "warnings", "missing_data",
        mode="before",
    )
    @classmethod
    def _text_list(cls, value):
        return _as_text_list(value)

    @field_validator("question_items", mode="before")
    @classmethod
    def _items(cls, value):
        return _as_record_list(value, "solution")

    @field_validator("steps", mode="before")
    @classmethod
    def _steps(cls, value):
        return _as_record_list(value, "content")

    @field_validator("source_citations", mode="before")
    @classmethod
    def _citations(cls, value):
        return _as_record_list(value, "formula")

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value):
        return normalize_confidence(value)
