#!/usr/bin/env python3
"""
Tests for the ASCII emitter: brace placement, property text encoding,
document header/version handling and comments.
"""

import io
import random

import numpy as np
import pytest

from core.errors import (
    ContractViolationError,
    FbxIOError,
    TextEncodingError,
    UnsupportedVersionError,
)
from core.properties import Property
from emitters.ascii_emitter import AsciiEmitter, escape_string, format_float

HEADER = "; FBX 7.4.0 project file\n"


def make_emitter(**options):
    sink = io.BytesIO()
    emitter = AsciiEmitter(sink, **options)
    emitter.start_document(7400)
    return emitter, sink


def body(sink):
    text = sink.getvalue().decode('utf-8')
    assert text.startswith(HEADER)
    return text[len(HEADER):]


def leaf(emitter, name, *properties):
    emitter.start_node(name, properties)
    emitter.end_node()


# === DOCUMENT ===

@pytest.mark.parametrize("version, header", [
    (7000, "; FBX 7.0.0 project file\n"),
    (7400, "; FBX 7.4.0 project file\n"),
    (7500, "; FBX 7.5.0 project file\n"),
    (7510, "; FBX 7.5.10 project file\n"),
    (7999, "; FBX 7.9.99 project file\n"),
])
def test_header_line(version, header):
    sink = io.BytesIO()
    emitter = AsciiEmitter(sink)
    emitter.start_document(version)
    emitter.end_document()
    assert sink.getvalue().decode('utf-8') == header


@pytest.mark.parametrize("version", [0, 6100, 6999, 8000, 8100, "7400", None])
def test_unsupported_version_writes_nothing(version):
    sink = io.BytesIO()
    messages = []
    emitter = AsciiEmitter(sink, progress_callback=messages.append)
    with pytest.raises(UnsupportedVersionError) as excinfo:
        emitter.start_document(version)
    assert excinfo.value.version == version
    assert sink.getvalue() == b""
    assert not emitter.in_document
    assert any("Unsupported version" in m for m in messages)


def test_end_document_writes_nothing():
    emitter, sink = make_emitter()
    emitter.end_document()
    assert body(sink) == ""
    assert not emitter.in_document


# === STRUCTURE ===

def test_empty_node_gets_braces():
    emitter, sink = make_emitter()
    leaf(emitter, "References")
    emitter.end_document()
    assert body(sink) == "References:  {\n}\n"


def test_node_with_properties_only_is_one_line():
    emitter, sink = make_emitter()
    leaf(emitter, "Version", Property.i32(232))
    emitter.end_document()
    assert body(sink) == "Version: 232\n"


def test_parent_brace_opens_at_first_child():
    emitter, sink = make_emitter()
    emitter.start_node("Objects")
    assert body(sink) == "Objects: "
    emitter.start_node("Model", [Property.i64(1)])
    assert body(sink) == "Objects:  {\n\tModel: 1"
    emitter.end_node()
    leaf(emitter, "Empty")
    emitter.end_node()
    emitter.end_document()
    assert body(sink) == "Objects:  {\n\tModel: 1\n\tEmpty:  {\n\t}\n}\n"


def test_parent_with_properties_and_children():
    emitter, sink = make_emitter()
    emitter.start_node("Model", [Property.i64(100), Property.string("Model::Cube"), Property.string("Mesh")])
    leaf(emitter, "Version", Property.i32(232))
    emitter.start_node("Properties70")
    leaf(emitter, "P", Property.string("Lcl Translation"), Property.f64(1.0))
    emitter.end_node()
    emitter.end_node()
    emitter.end_document()
    assert body(sink) == (
        'Model: 100, "Model::Cube", "Mesh" {\n'
        '\tVersion: 232\n'
        '\tProperties70:  {\n'
        '\t\tP: "Lcl Translation", 1\n'
        '\t}\n'
        '}\n'
    )


def test_opening_brace_written_once_per_parent():
    emitter, sink = make_emitter()
    emitter.start_node("Takes")
    for i in range(3):
        leaf(emitter, "Take", Property.i32(i))
    emitter.end_node()
    emitter.end_document()
    assert body(sink) == "Takes:  {\n\tTake: 0\n\tTake: 1\n\tTake: 2\n}\n"
    assert body(sink).count("{") == 1


def test_custom_indent():
    emitter, sink = make_emitter(indent="    ")
    emitter.start_node("A")
    leaf(emitter, "B", Property.i32(1))
    emitter.end_node()
    emitter.end_document()
    assert body(sink) == "A:  {\n    B: 1\n}\n"


def test_random_balanced_sequences_close_cleanly():
    rng = random.Random(1234)
    for _ in range(50):
        emitter, sink = make_emitter()
        opened = 0
        for _ in range(rng.randint(1, 60)):
            if opened and rng.random() < 0.45:
                emitter.end_node()
                opened -= 1
            else:
                props = [Property.i32(rng.randint(-9, 9))] if rng.random() < 0.5 else []
                emitter.start_node("N", props)
                opened += 1
            assert emitter.depth == opened
        while opened:
            emitter.end_node()
            opened -= 1
        assert emitter.depth == 0
        emitter.end_document()
        text = body(sink)
        assert text.count("{") == text.count("}")
        assert text.endswith("\n")


# === PROTOCOL VIOLATIONS ===

def test_end_node_without_open_node_fails():
    emitter, sink = make_emitter()
    before = sink.getvalue()
    with pytest.raises(ContractViolationError):
        emitter.end_node()
    assert sink.getvalue() == before
    assert emitter.depth == 0


def test_unbalanced_end_node_after_close_fails():
    emitter, _ = make_emitter()
    leaf(emitter, "A")
    with pytest.raises(ContractViolationError):
        emitter.end_node()


def test_end_document_with_open_nodes_fails():
    emitter, _ = make_emitter()
    emitter.start_node("A")
    with pytest.raises(ContractViolationError):
        emitter.end_document()


@pytest.mark.parametrize("name", ["", None, 5])
def test_invalid_node_name_fails(name):
    emitter, _ = make_emitter()
    with pytest.raises(ContractViolationError):
        emitter.start_node(name)
    assert emitter.depth == 0


def test_events_outside_document_fail():
    emitter = AsciiEmitter(io.BytesIO())
    with pytest.raises(ContractViolationError):
        emitter.start_node("A")
    with pytest.raises(ContractViolationError):
        emitter.comment("; x")
    with pytest.raises(ContractViolationError):
        emitter.end_document()


def test_start_document_abandons_previous_document():
    emitter, sink = make_emitter()
    emitter.start_node("A")
    emitter.start_node("B")
    emitter.start_document(7400)
    assert emitter.depth == 0
    leaf(emitter, "C")
    emitter.end_document()


def test_sink_failure_is_wrapped():
    class FailingSink:
        def write(self, data):
            raise OSError("disk full")

    emitter = AsciiEmitter(FailingSink())
    with pytest.raises(FbxIOError) as excinfo:
        emitter.start_document(7400)
    assert isinstance(excinfo.value.cause, OSError)
    assert excinfo.value.pos == 0


# === PROPERTIES ===

def test_bool_tokens():
    emitter, sink = make_emitter()
    leaf(emitter, "Flags", Property.bool(True), Property.bool(False))
    emitter.end_document()
    assert body(sink) == "Flags: Y, T\n"


def test_bool_array():
    messages = []
    emitter, sink = make_emitter(progress_callback=messages.append)
    leaf(emitter, "B", Property.vec_bool([True, False, True]))
    emitter.end_document()
    assert body(sink) == "B: *3 {\n\ta: Y,T,Y\n}\n"
    assert any(m.startswith("WARNING") for m in messages)


def test_nested_array_indentation():
    emitter, sink = make_emitter()
    emitter.start_node("Geometry")
    leaf(emitter, "Vertices", Property.vec_f64([0.0, 1.5, -2.25]))
    leaf(emitter, "PolygonVertexIndex", Property.vec_i32([0, 1, -3]))
    emitter.end_node()
    emitter.end_document()
    assert body(sink) == (
        "Geometry:  {\n"
        "\tVertices: *3 {\n"
        "\t\ta: 0,1.5,-2.25\n"
        "\t}\n"
        "\tPolygonVertexIndex: *3 {\n"
        "\t\ta: 0,1,-3\n"
        "\t}\n"
        "}\n"
    )


def test_empty_array():
    emitter, sink = make_emitter()
    leaf(emitter, "Edges", Property.vec_i64([]))
    emitter.end_document()
    assert body(sink) == "Edges: *0 {\n\ta: \n}\n"


def test_property_order_preserved():
    emitter, sink = make_emitter()
    leaf(emitter, "P", Property.string("UpAxis"), Property.string("int"), Property.string("Integer"),
         Property.string(""), Property.i32(1))
    emitter.end_document()
    assert body(sink) == 'P: "UpAxis", "int", "Integer", "", 1\n'


def test_integer_scalars():
    emitter, sink = make_emitter()
    leaf(emitter, "N", Property.i16(-5), Property.i32(70000), Property.i64(-(2 ** 63)))
    emitter.end_document()
    assert body(sink) == f"N: -5, 70000, {-(2 ** 63)}\n"


def test_string_escaping():
    assert escape_string('say "hi"\nnew\rline & <ok>') == 'say &quot;hi&quot;&lf;new&cr;line & <ok>'
    assert escape_string("tab\tstays\x01") == "tab\tstays\x01"
    emitter, sink = make_emitter()
    leaf(emitter, "S", Property.string('a"b\r\nc'))
    emitter.end_document()
    assert body(sink) == 'S: "a&quot;b&cr;&lf;c"\n'


def test_non_ascii_string_is_utf8():
    emitter, sink = make_emitter()
    leaf(emitter, "Name", Property.string("Würfel"))
    emitter.end_document()
    assert sink.getvalue().endswith('Name: "Würfel"\n'.encode('utf-8'))


def test_unencodable_string_fails():
    emitter, _ = make_emitter()
    with pytest.raises(TextEncodingError):
        emitter.start_node("S", [Property.string("\ud800")])


def test_binary_is_base64():
    emitter, sink = make_emitter()
    leaf(emitter, "Content", Property.binary(b"\x00\x01\x02"))
    emitter.end_document()
    assert body(sink) == 'Content: "AAEC"\n'


@pytest.mark.parametrize("value, text", [
    (1.0, "1"),
    (0.1, "0.1"),
    (-2.5, "-2.5"),
    (0.0, "0"),
    (1e-07, "0.0000001"),
])
def test_float64_text(value, text):
    assert format_float(value) == text


def test_float32_uses_its_own_precision():
    assert format_float(np.float32(0.1)) == "0.1"
    emitter, sink = make_emitter()
    leaf(emitter, "F", Property.f32(0.1), Property.f64(np.float32(0.1)))
    emitter.end_document()
    f32_text, f64_text = body(sink)[len("F: "):-1].split(", ")
    assert f32_text == "0.1"
    assert f64_text != "0.1"


@pytest.mark.parametrize("value", [0.1, 1 / 3, 2 / 3, 1e-7, 123456.789, -2.5e-3, 1e16, 6.02214076e23])
def test_float_text_round_trips(value):
    assert float(format_float(value)) == value
    single = np.float32(value)
    assert np.float32(float(format_float(single))) == single


# === COMMENTS ===

def test_top_level_comment_lines():
    emitter, sink = make_emitter()
    emitter.comment("; first\r\n; second\n")
    emitter.end_document()
    assert body(sink) == "; first\n; second\n"


def test_comment_inside_open_node_line_is_deferred():
    emitter, sink = make_emitter()
    emitter.start_node("A")
    emitter.comment("; note")
    leaf(emitter, "B", Property.i32(1))
    emitter.end_node()
    emitter.end_document()
    assert body(sink) == "A:  {\n\t; note\n\tB: 1\n}\n"


def test_comment_in_empty_node():
    emitter, sink = make_emitter()
    emitter.start_node("A")
    emitter.comment("; inside")
    emitter.end_node()
    emitter.end_document()
    assert body(sink) == "A:  {\n\t; inside\n}\n"


def test_comment_after_property_line():
    emitter, sink = make_emitter()
    emitter.start_node("V", [Property.i32(1)])
    emitter.comment("; after")
    emitter.end_node()
    emitter.end_document()
    assert body(sink) == "V: 1\n\t; after\n"


def test_comments_never_change_structure():
    def run(with_comments):
        emitter, sink = make_emitter()
        note = emitter.comment if with_comments else (lambda text: None)
        note("; top")
        emitter.start_node("Objects")
        note("; a")
        emitter.start_node("Model", [Property.i64(1)])
        note("; b")
        leaf(emitter, "Version", Property.i32(232))
        note("; c")
        emitter.end_node()
        emitter.start_node("Empty")
        note("; d")
        emitter.end_node()
        emitter.end_node()
        emitter.end_document()
        return body(sink)

    plain = run(False)
    commented = run(True)
    stripped = "".join(line for line in commented.splitlines(keepends=True)
                       if not line.lstrip("\t").startswith(";"))
    assert stripped == plain
    assert commented.count(";") == 5
