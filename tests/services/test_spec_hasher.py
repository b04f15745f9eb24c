# tests/services/test_spec_hasher.py

from livespec.services.spec_hasher import (
    EMPTY_HASH,
    canonical_json,
    hash_content,
    hash_spec,
    short_hash,
    strip_fields,
)


def test_hash_spec_is_independent_of_key_order():
    a = {"openapi": "3.0.0", "paths": {"/a": {"get": {}}, "/b": {"post": {}}}}
    b = {"paths": {"/b": {"post": {}}, "/a": {"get": {}}}, "openapi": "3.0.0"}

    assert hash_spec(a) == hash_spec(b)


def test_hash_spec_changes_with_content():
    assert hash_spec({"paths": {"/a": {}}}) != hash_spec({"paths": {"/b": {}}})


def test_empty_inputs_hash_to_sentinel():
    assert hash_spec(None) == EMPTY_HASH == "0"
    assert hash_spec({}) == "0"
    assert hash_content("") == "0"


def test_hash_content_is_sha256_hex():
    digest = hash_content("openapi")
    assert len(digest) == 64
    int(digest, 16)


def test_canonical_json_is_compact_and_sorted():
    assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'


def test_short_hash_length():
    assert len(short_hash({"x": 1})) == 6
    assert short_hash({"x": 1}) == short_hash({"x": 1})


def test_strip_fields_removes_descriptions_and_examples():
    doc = {
        "info": {"description": "hello"},
        "paths": {"/a": {"get": {"description": "op", "example": {"a": 1}}}},
    }

    stripped = strip_fields(doc, descriptions=True, examples=True)

    assert stripped == {"info": {}, "paths": {"/a": {"get": {}}}}
    # input untouched
    assert doc["info"]["description"] == "hello"


def test_strip_fields_keeps_property_named_description():
    doc = {"properties": {"description": {"type": "string", "description": "text"}}}

    stripped = strip_fields(doc, descriptions=True, examples=False)

    assert stripped == {"properties": {"description": {"type": "string"}}}


def test_strip_fields_noop_when_disabled():
    doc = {"description": "x"}
    assert strip_fields(doc, descriptions=False, examples=False) is doc
