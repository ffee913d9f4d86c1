import json
import math

import pytest
from helpers import body, line, payload, rect

from lensocr.decoder import SCALE_CANVAS, decode, decode_tree, parse_body
from lensocr.errors import ProtocolErrorKind, ServiceRejection, UnrecognizedShape


def _para(*lines, language=None):
    return [list(lines), language]


def test_decodes_paragraphs_in_service_order() -> None:
    tree = decode(body(payload([
        _para(line("World", rect(120, 10, 180, 30), 0.9)),
        _para(line("Hello", rect(10, 10, 60, 30), 0.8)),
    ])))

    assert tree.revision == 2
    assert [ln.text for ln in tree.lines] == ["World", "Hello"]
    assert [ln.order for ln in tree.lines] == [0, 1]
    assert [ln.paragraph for ln in tree.lines] == [0, 1]
    assert tree.lines[0].confidence == 0.9
    assert tree.language == "en"
    assert not tree.is_empty
    assert tree.dropped == 0


def test_missing_confidence_is_absent_not_a_failure() -> None:
    tree = decode(body(payload([_para(["Hi", rect(0, 0, 10, 10)])])))
    assert tree.lines[0].confidence is None
    assert tree.coerced == 0


def test_null_text_root_is_empty_but_valid() -> None:
    tree = decode(body(payload(None)))
    assert tree.is_empty
    assert tree.dropped == 0


def test_payload_without_text_root_is_empty_but_valid() -> None:
    tree = decode_tree([[2, "req"]])
    assert tree.is_empty


def test_text_root_of_wrong_kind_is_empty_but_valid() -> None:
    tree = decode(body(payload("no text here")))
    assert tree.is_empty
    assert tree.revision == 2
    assert "text root is not an array" in tree.notes[0]


def test_unknown_revision_is_unrecognized_with_snapshot() -> None:
    with pytest.raises(UnrecognizedShape) as ei:
        decode(body(payload([], revision=99)))
    assert "99" in ei.value.snapshot


def test_non_array_payloads_are_unrecognized() -> None:
    with pytest.raises(UnrecognizedShape):
        decode(b'{"error": "nope"}')
    with pytest.raises(UnrecognizedShape):
        decode(b")]}'\n[[1, 2")
    with pytest.raises(UnrecognizedShape):
        decode(body("just a string"))


def test_sorry_page_is_a_rate_limit_signal() -> None:
    html = b"<html><body>Our systems have detected unusual traffic from your computer network.</body></html>"
    with pytest.raises(ServiceRejection) as ei:
        decode(html)
    assert ei.value.kind is ProtocolErrorKind.RATE_LIMITED


def test_other_markup_is_unrecognized() -> None:
    with pytest.raises(UnrecognizedShape):
        decode(b"<html>maintenance</html>")


def test_parse_body_skips_xssi_guard_and_chunk_length() -> None:
    assert parse_body(b")]}'\n\n57\n[1,[2]]\n12\n[\"di\"]") == [1, [2]]


def test_wrapped_rpc_envelope_is_unpacked() -> None:
    tree = decode(body(payload([_para(line("Hi", rect(0, 0, 10, 10)))]), wrapped=True))
    assert [ln.text for ln in tree.lines] == ["Hi"]


def test_chunked_envelope_list_is_unpacked() -> None:
    inner = json.dumps(payload([_para(line("Hi", rect(0, 0, 10, 10)))]))
    tree = decode_tree([[["wrb.fr", "LensUpload", inner], ["di", 3]]])
    assert tree.lines[0].text == "Hi"


@pytest.mark.parametrize(
    "code,kind",
    [(429, ProtocolErrorKind.RATE_LIMITED), (401, ProtocolErrorKind.SESSION_EXPIRED)],
)
def test_error_envelope_maps_to_rejection(code, kind) -> None:
    with pytest.raises(ServiceRejection) as ei:
        decode_tree([["er", None, None, None, None, code, "generic"]])
    assert ei.value.kind is kind


def test_unknown_error_envelope_is_unrecognized() -> None:
    with pytest.raises(UnrecognizedShape):
        decode_tree([["er", None, None, None, None, 500, "generic"]])


def test_type_mismatched_leaves_are_coerced() -> None:
    tree = decode(body(payload([_para(
        line(2024, rect(0, 0, 10, 10), "high", 7),
    )])))
    ln = tree.lines[0]
    assert ln.text == "2024"
    assert ln.confidence is None
    assert ln.language is None
    assert tree.coerced == 3


def test_out_of_range_confidence_is_dropped() -> None:
    tree = decode(body(payload([_para(line("x", rect(0, 0, 10, 10), 87))])))
    assert tree.lines[0].confidence is None
    assert tree.coerced == 1


def test_malformed_lines_are_dropped_and_counted() -> None:
    tree = decode(body(payload([_para(
        line("ok", rect(0, 0, 10, 10)),
        line(None, rect(0, 0, 10, 10)),
        line("no geometry", None),
        line("bad points", [["a", "b"], [1]]),
    )])))
    assert [ln.text for ln in tree.lines] == ["ok"]
    assert tree.dropped == 3
    assert len(tree.notes) == 3


def test_losing_every_line_is_unrecognized() -> None:
    with pytest.raises(UnrecognizedShape):
        decode(body(payload([_para(line("orphan", None))])))


def test_interleaved_metadata_is_skipped() -> None:
    tree = decode(body(payload([
        "md",
        7,
        _para(line("A", rect(0, 0, 10, 10))),
        ["ts", 1712000000],
        _para(line("B", rect(0, 20, 10, 30))),
    ])))
    assert [(ln.text, ln.paragraph) for ln in tree.lines] == [("A", 0), ("B", 1)]
    assert tree.dropped == 0


def test_revision_one_has_flat_line_list() -> None:
    tree = decode(body(payload([line("A", rect(0, 0, 10, 10)), "sep", line("B", rect(0, 20, 10, 30))], revision=1)))
    assert [ln.text for ln in tree.lines] == ["A", "B"]
    assert {ln.paragraph for ln in tree.lines} == {0}


def test_paragraph_language_fills_missing_line_language() -> None:
    tree = decode(body(payload([_para(line("Bonjour", rect(0, 0, 10, 10)), language="fr")])))
    assert tree.lines[0].language == "fr"


def test_rotated_box_geometry_expands_to_corners() -> None:
    tree = decode(body(payload([_para(line("tilted", [0.5, 0.5, 0.2, 0.1, math.pi / 2]))])))
    ln = tree.lines[0]
    assert len(ln.points) == 4
    assert ln.angle_deg == pytest.approx(90.0)
    xs = [p[0] for p in ln.points]
    assert max(xs) - min(xs) == pytest.approx(0.1)


def test_two_corner_geometry_becomes_rectangle() -> None:
    tree = decode(body(payload([_para(line("r", [[30, 40], [10, 20]]))])))
    assert tree.lines[0].points == [(10, 20), (30, 20), (30, 40), (10, 40)]


def test_scale_and_translation_are_read() -> None:
    tree = decode(body(payload(
        [_para(line("Hola", rect(0, 0, 10, 10)))],
        scale=[SCALE_CANVAS, 1000, 1000],
        translations=[[1, "Hello"], [2, "ignored"], [1, "there"]],
    )))
    assert tree.scale.kind == SCALE_CANVAS
    assert tree.scale.width == 1000
    assert tree.translation == "Hello\nthere"


def test_unknown_scale_kind_is_ignored() -> None:
    tree = decode(body(payload([_para(line("x", rect(0, 0, 10, 10)))], scale=[9])))
    assert tree.scale is None
    assert tree.notes


def _word(text, separator=None, geometry=None):
    return [text, separator, geometry]


def test_line_text_is_rebuilt_from_words_and_separators() -> None:
    words = [
        _word("Hello", " ", rect(10, 10, 50, 30)),
        _word("world", "", [[55, 10], [95, 30]]),
    ]
    tree = decode(body(payload([_para(line("stale", rect(10, 10, 95, 30)) + [words])])))

    [ln] = tree.lines
    assert ln.text == "Hello world"
    assert [(w.text, w.separator) for w in ln.words] == [("Hello", " "), ("world", "")]
    assert ln.words[0].points == [(10, 10), (50, 10), (50, 30), (10, 30)]
    assert ln.words[1].points == [(55, 10), (95, 10), (95, 30), (55, 30)]


def test_words_without_geometry_or_text() -> None:
    words = [_word("a", " "), "meta", _word(None, " "), _word(7)]
    tree = decode(body(payload([_para(line(None, rect(0, 0, 10, 10)) + [words])])))

    [ln] = tree.lines
    assert ln.text == "a 7"
    assert ln.words[0].points is None
    assert tree.dropped == 1
    assert tree.coerced == 1


def test_line_without_words_has_empty_word_list() -> None:
    tree = decode(body(payload([_para(line("plain", rect(0, 0, 10, 10)))])))
    assert tree.lines[0].words == []
