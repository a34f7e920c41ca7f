"""
Tests for payload decoding, item detection and other helpers.
"""

import base64
from types import SimpleNamespace

import pytest

from solveai.errors import InvalidPayloadError
from solveai.utils import (
    decode_inline_payload,
    detect_question_items,
    encode_data_url,
    format_file_size,
    is_extractable_type,
    is_text_type,
    make_preview,
    response_text,
    strip_code_fences,
)


class TestDecodeInlinePayload:
    def test_bytes_pass_through(self):
        assert decode_inline_payload(b"abc") == (b"abc", None)

    def test_bare_base64(self):
        assert decode_inline_payload(base64.b64encode(b"abc").decode()) == (b"abc", None)

    def test_data_url(self):
        data_url = encode_data_url(b"%PDF-1.4", "application/pdf")

        assert decode_inline_payload(data_url) == (b"%PDF-1.4", "application/pdf")

    def test_percent_encoded_data_url(self):
        assert decode_inline_payload("data:text/plain,F%20%3D%20ma") == (b"F = ma", "text/plain")

    @pytest.mark.parametrize("payload", ["", "não é base64!", None, 42])
    def test_invalid_payloads(self, payload):
        with pytest.raises(InvalidPayloadError):
            decode_inline_payload(payload)


class TestMimeTypes:
    @pytest.mark.parametrize("mime_type", ["image/png", "image/jpeg", "application/pdf"])
    def test_extractable(self, mime_type):
        assert is_extractable_type(mime_type)

    @pytest.mark.parametrize("mime_type", ["text/plain", "application/zip", "", None])
    def test_not_extractable(self, mime_type):
        assert not is_extractable_type(mime_type)

    def test_text_types(self):
        assert is_text_type("text/markdown")
        assert is_text_type("application/json")
        assert not is_text_type("image/png")
        assert not is_text_type(None)


class TestDetectQuestionItems:
    def test_lettered_items(self):
        assert detect_question_items("a) Calcule F. b) Calcule W. c) Compare.") == ["A", "B", "C"]

    def test_item_keyword_and_case(self):
        assert detect_question_items("Responda o item B e depois o Item a. B) de novo") == ["B", "A"]

    def test_no_items(self):
        assert detect_question_items("Calcule a força para m=2kg") == []
        assert detect_question_items("") == []


def test_response_text_prefers_text():
    assert response_text(SimpleNamespace(text="olá", candidates=None)) == "olá"


def test_response_text_falls_back_to_candidates():
    parts = [SimpleNamespace(text="F = "), SimpleNamespace(text="6 N")]
    response = SimpleNamespace(
        text=None,
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
    )

    assert response_text(response) == "F = 6 N"


def test_response_text_empty():
    assert response_text(None) == ""
    assert response_text(SimpleNamespace(text="", candidates=[])) == ""


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


@pytest.mark.parametrize(
    "size, expected",
    [(512, "512 B"), (2048, "2.0 KB"), (3 * 1024 * 1024, "3.0 MB")],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_make_preview(png_bytes):
    preview = make_preview(png_bytes)

    assert preview.startswith("data:image/png;base64,")
    thumbnail, _ = decode_inline_payload(preview)
    assert len(thumbnail) > 0


def test_make_preview_rejects_non_images():
    assert make_preview(b"%PDF-1.4") is None


def test_strip_code_fences_only_at_the_edges():
    text = '```json\n{"finalAnswer": "```python\\nprint(1)\\n```"}\n```'

    assert strip_code_fences(text) == '{"finalAnswer": "```python\\nprint(1)\\n```"}'
