"""
Tests for the ad-hoc upload collector.
"""

import pytest

from solveai.intake import UploadCollector

from conftest import gemini_response


@pytest.fixture
def collector(solver, gemini_client):
    gemini_client.models.generate_content.return_value = gemini_response("a) Calcule a força")
    return UploadCollector(solver)


@pytest.mark.anyio
class TestAdd:
    async def test_add_image_extracts_and_previews(self, collector, png_bytes):
        item = await collector.add("questao.png", "image/png", png_bytes)

        assert item.extracted_text == "a) Calcule a força"
        assert item.size == len(png_bytes)
        assert item.preview.startswith("data:image/png;base64,")
        assert collector.items == [item]

    async def test_add_pdf_has_no_preview(self, collector):
        item = await collector.add("prova.pdf", "application/pdf", b"%PDF-1.4")

        assert item.preview is None
        assert item.extracted_text == "a) Calcule a força"

    async def test_unsupported_type_is_skipped(self, collector, gemini_client):
        item = await collector.add("notas.txt", "text/plain", b"texto")

        assert item is None
        assert collector.items == []
        gemini_client.models.generate_content.assert_not_called()


@pytest.mark.anyio
class TestSession:
    async def test_compose_question_appends_transcriptions(self, collector):
        await collector.add("prova.pdf", "application/pdf", b"%PDF-1.4")

        question = collector.compose_question("Resolva com atenção:")

        assert question == "Resolva com atenção:\n\na) Calcule a força"

    async def test_compose_question_without_typed_text(self, collector):
        await collector.add("prova.pdf", "application/pdf", b"%PDF-1.4")

        assert collector.compose_question("") == "a) Calcule a força"
        assert collector.compose_question(None) == "a) Calcule a força"

    async def test_remove_and_clear(self, collector):
        first = await collector.add("1.pdf", "application/pdf", b"%PDF-1.4")
        second = await collector.add("2.pdf", "application/pdf", b"%PDF-1.4")

        assert collector.remove(first.id) is True
        assert collector.remove(first.id) is False
        assert collector.items == [second]

        collector.clear()

        assert collector.items == []
        assert collector.compose_question("  ") == ""
