"""
Tests for assembling solver context from a catalog folder.
"""

import base64

import pytest

from solveai.context import ContextAssembler
from solveai.errors import UpstreamError
from solveai.models import FolderPatch
from solveai.utils import encode_data_url

pytestmark = pytest.mark.anyio


class FakeSolver:
    """Transcribes payloads by decoding them, failing for the ones listed."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    async def extract_text_from_image(self, image_data, mime_type):
        self.calls.append(mime_type)
        content = base64.b64decode(image_data.split(",", 1)[1]).decode()
        if content in self.failing:
            raise UpstreamError("Falha ao extrair texto da imagem")
        return f"transcrição de {content}"


async def add_file(catalog, folder_id, name, mime_type, content, extracted_text=None):
    raw = content.encode()
    return await catalog.add_file(
        folder_id=folder_id,
        name=name,
        mime_type=mime_type,
        size=len(raw),
        data=encode_data_url(raw, mime_type),
        extracted_text=extracted_text,
    )


async def test_cached_text_scenario(catalog):
    folder = await catalog.create_folder("Física I")
    await add_file(catalog, folder.id, "slide3.png", "image/png", "png", extracted_text="F=ma")
    solver = FakeSolver()

    context = await ContextAssembler(catalog, solver).assemble(folder.id)

    assert "[slide3.png]\nF=ma" in context.context_materials
    assert context.folder_info.name == "Física I"
    assert context.folder_info.book_reference is None
    assert context.folder_info.notes is None
    assert solver.calls == []


async def test_folder_info_includes_metadata(catalog):
    folder = await catalog.create_folder("Física I")
    await catalog.update_folder(folder.id, FolderPatch(book_reference="Halliday", notes="Usar SI"))

    context = await ContextAssembler(catalog, FakeSolver()).assemble(folder.id)

    assert context.folder_info.book_reference == "Halliday"
    assert context.folder_info.notes == "Usar SI"
    assert context.context_materials == []


async def test_images_and_pdfs_are_extracted_and_cached(catalog):
    folder = await catalog.create_folder("Física I")
    image = await add_file(catalog, folder.id, "lista.png", "image/png", "lista")
    pdf = await add_file(catalog, folder.id, "apostila.pdf", "application/pdf", "apostila")
    solver = FakeSolver()

    context = await ContextAssembler(catalog, solver).assemble(folder.id)

    assert context.context_materials == [
        "[lista.png]\ntranscrição de lista",
        "[apostila.pdf]\ntranscrição de apostila",
    ]
    assert solver.calls == ["image/png", "application/pdf"]
    assert (await catalog.get_file_by_id(image.id)).extracted_text == "transcrição de lista"
    assert (await catalog.get_file_by_id(pdf.id)).extracted_text == "transcrição de apostila"


async def test_cached_text_skips_second_extraction(catalog):
    folder = await catalog.create_folder("Física I")
    await add_file(catalog, folder.id, "lista.png", "image/png", "lista")
    solver = FakeSolver()
    assembler = ContextAssembler(catalog, solver)

    first = await assembler.assemble(folder.id)
    second = await assembler.assemble(folder.id)

    assert first == second
    assert len(solver.calls) == 1


async def test_failed_extraction_uses_placeholder(catalog):
    folder = await catalog.create_folder("Física I")
    await add_file(catalog, folder.id, "borrado.png", "image/png", "borrado")
    await add_file(catalog, folder.id, "ok.png", "image/png", "ok")

    context = await ContextAssembler(catalog, FakeSolver(failing=["borrado"])).assemble(folder.id)

    assert context.context_materials == [
        "[borrado.png] - Arquivo de contexto",
        "[ok.png]\ntranscrição de ok",
    ]


async def test_file_deleted_during_extraction_keeps_its_text(catalog):
    folder = await catalog.create_folder("Física I")
    image = await add_file(catalog, folder.id, "a.png", "image/png", "F=ma")
    await add_file(catalog, folder.id, "b.txt", "text/plain", "ok")

    class DeletingSolver(FakeSolver):
        async def extract_text_from_image(self, image_data, mime_type):
            await catalog.delete_file(image.id)
            return "F=ma"

    context = await ContextAssembler(catalog, DeletingSolver()).assemble(folder.id)

    assert context.context_materials == ["[a.png]\nF=ma", "[b.txt]\nok"]


async def test_cache_write_failure_does_not_abort_assembly(catalog, monkeypatch):
    folder = await catalog.create_folder("Física I")
    await add_file(catalog, folder.id, "lista.png", "image/png", "lista")
    await add_file(catalog, folder.id, "resumo.txt", "text/plain", "ok")

    async def failing_write(file_id, text):
        raise RuntimeError("disk full")

    monkeypatch.setattr(catalog, "set_extracted_text", failing_write)

    context = await ContextAssembler(catalog, FakeSolver()).assemble(folder.id)

    assert context.context_materials == ["[lista.png]\ntranscrição de lista", "[resumo.txt]\nok"]


async def test_text_files_are_read_directly(catalog):
    folder = await catalog.create_folder("Física I")
    await add_file(catalog, folder.id, "resumo.md", "text/markdown", "# Leis de Newton\nF = ma")
    solver = FakeSolver()

    context = await ContextAssembler(catalog, solver).assemble(folder.id)

    assert context.context_materials == ["[resumo.md]\n# Leis de Newton\nF = ma"]
    assert solver.calls == []


async def test_other_files_get_placeholder(catalog):
    folder = await catalog.create_folder("Física I")
    await add_file(catalog, folder.id, "planilha.xlsx", "application/vnd.ms-excel", "xx")

    context = await ContextAssembler(catalog, FakeSolver()).assemble(folder.id)

    assert context.context_materials == ["[planilha.xlsx] - Arquivo de contexto"]


@pytest.mark.parametrize("folder_id", [None, "", "missing"])
async def test_no_folder_gives_empty_context(catalog, folder_id):
    context = await ContextAssembler(catalog, FakeSolver()).assemble(folder_id)

    assert context.context_materials == []
    assert context.folder_info is None
