"""
Gemini-backed solver: question solving and image/PDF transcription.
"""
import json
import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from .config import GEMINI_API_MODEL, SOLVER_TEMPERATURE
from .errors import (
    ConfigurationError,
    UpstreamEmptyError,
    UpstreamError,
    UpstreamMalformedError,
)
from .models import FolderInfo, SolveResponse
from .prompts import EXTRACTION_INSTRUCTION, build_prompt
from .utils import decode_inline_payload, detect_question_items, response_text, strip_code_fences

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = (
    "GEMINI_API_KEY não está configurada. Configure a chave da API nas variáveis de ambiente."
)
SOLVE_FAILED_MESSAGE = "Falha ao resolver questão: o serviço de IA não respondeu"
EXTRACT_FAILED_MESSAGE = "Falha ao extrair texto da imagem: o serviço de IA não respondeu"
MALFORMED_MESSAGE = "Falha ao resolver questão: a resposta do modelo não é um JSON válido"
RAW_LOG_LIMIT = 2000


def parse_solver_payload(raw_text: str) -> dict:
    """
    Parse the model's text as a JSON object.

    A markdown fence around the whole payload is only stripped when the
    text does not parse as-is.

    Raises:
        UpstreamMalformedError: if the text is not a JSON object
    """
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = json.loads(strip_code_fences(raw_text))
        except json.JSONDecodeError:
            logger.error("Solver returned invalid JSON: %s", raw_text[:RAW_LOG_LIMIT])
            raise UpstreamMalformedError(MALFORMED_MESSAGE)

    if not isinstance(data, dict):
        logger.error("Solver returned JSON that is not an object: %s", raw_text[:RAW_LOG_LIMIT])
        raise UpstreamMalformedError(MALFORMED_MESSAGE)
    return data


def normalize_solve_response(data: dict, question_text: str = "") -> SolveResponse:
    """
    Fill every contract field of a parsed solver payload.

    Absent fields become [], "" or "media". When the question visibly has
    lettered items but none came back, a warning names them.
    """
    try:
        response = SolveResponse.model_validate(data)
    except PydanticValidationError as e:
        logger.error("Solver payload does not match the response contract: %s", e)
        raise UpstreamMalformedError(MALFORMED_MESSAGE)

    if not response.question_items:
        letters = detect_question_items(question_text)
        if letters:
            response.warnings.append(
                "A questão parece conter os itens "
                f"{', '.join(letters)}, mas a resposta não os separou individualmente."
            )
    return response


class Solver:
    """Wrapper around the Gemini client."""

    def __init__(self, gemini_client=None, gemini_model: str = GEMINI_API_MODEL, temperature: float = SOLVER_TEMPERATURE):
        self.gemini_client = gemini_client
        self.gemini_model = gemini_model
        self.temperature = temperature

    @property
    def is_configured(self) -> bool:
        return self.gemini_client is not None

    def _ensure_configured(self):
        if not self.is_configured:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

    async def solve_question(
        self,
        question_text: str,
        context_materials: list[str],
        folder_info: Optional[FolderInfo] = None,
    ) -> SolveResponse:
        """
        Solve a question with the structured verification protocol.

        Args:
            question_text: The question to solve
            context_materials: Ordered context strings
            folder_info: Subject metadata of the selected folder

        Returns:
            Normalized solver response
        """
        self._ensure_configured()

        prompt = build_prompt(question_text, context_materials, folder_info)

        try:
            response = await run_in_threadpool(
                self.gemini_client.models.generate_content,
                model=self.gemini_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    temperature=self.temperature,
                ),
            )
        except Exception as e:
            logger.exception("Gemini solve call failed")
            raise UpstreamError(SOLVE_FAILED_MESSAGE) from e

        raw_text = response_text(response)
        if not raw_text:
            raise UpstreamEmptyError("Falha ao resolver questão: resposta vazia do modelo")

        data = parse_solver_payload(raw_text)
        return normalize_solve_response(data, question_text)

    async def extract_text_from_image(self, image_data, mime_type: str) -> str:
        """
        Transcribe all visible text of an image or PDF.

        Args:
            image_data: Raw bytes, bare base64, or a data URL
            mime_type: MIME type of the content

        Returns:
            The transcribed text, or "" when the model returned none
        """
        self._ensure_configured()

        content, declared_type = decode_inline_payload(image_data)

        try:
            response = await run_in_threadpool(
                self.gemini_client.models.generate_content,
                model=self.gemini_model,
                contents=[
                    types.Part.from_bytes(data=content, mime_type=mime_type or declared_type or "image/jpeg"),
                    EXTRACTION_INSTRUCTION,
                ],
            )
        except Exception as e:
            logger.exception("Gemini extraction call failed")
            raise UpstreamError(EXTRACT_FAILED_MESSAGE) from e

        return response_text(response)
