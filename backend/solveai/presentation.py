"""
Markdown rendering of a solver response.
"""
from .models import SolveResponse

CONFIDENCE_LABELS = {"alta": "Alta", "media": "Média", "baixa": "Baixa"}


def _bullets(values: list[str]) -> str:
    return "\n".join(f"- {value}" for value in values)


def render_markdown(response: SolveResponse) -> str:
    """Render a response as markdown, skipping empty sections."""
    sections = []

    if response.original_question:
        sections.append(f"## Questão Completa\n\n{response.original_question}")

    if response.extracted_data:
        sections.append(f"## Dados Extraídos\n\n{_bullets(response.extracted_data)}")

    if response.question_items:
        parts = ["## Itens da Questão"]
        for item in response.question_items:
            parts.append(f"### {item.letter}) {item.description}".rstrip())
            if item.detailed_calculation:
                parts.append(item.detailed_calculation)
            for step in item.solution_steps:
                parts.append(f"**{step.title}**\n\n{step.content}")
            if not item.detailed_calculation and not item.solution_steps and item.solution:
                parts.append(item.solution)
            if item.final_result:
                parts.append(f"**Resultado:** {item.final_result}")
        sections.append("\n\n".join(parts))

    if response.steps:
        parts = ["## Passo a Passo"]
        for i, step in enumerate(response.steps, start=1):
            parts.append(f"### {i}. {step.title}\n\n{step.content}")
        sections.append("\n\n".join(parts))

    if response.final_answer:
        sections.append(f"## Resposta Final\n\n{response.final_answer}")

    if response.short_version:
        sections.append(f"## Versão para Prova\n\n{response.short_version}")

    confidence = f"## Confiança: {CONFIDENCE_LABELS[response.confidence]}"
    if response.confidence_reason:
        confidence += f"\n\n{response.confidence_reason}"
    sections.append(confidence)

    if response.warnings:
        sections.append(f"## Avisos\n\n{_bullets(response.warnings)}")

    if response.missing_data:
        sections.append(f"## Dados Faltantes\n\n{_bullets(response.missing_data)}")

    if response.source_citations:
        citations = [f"{c.formula} ({c.source})" if c.source else c.formula for c in response.source_citations]
        sections.append(f"## Fontes das Fórmulas\n\n{_bullets(citations)}")

    if response.used_materials:
        sections.append(f"## Materiais Utilizados\n\n{_bullets(response.used_materials)}")

    return "\n\n".join(sections) + "\n"
