# tests/services/test_operation_ids.py

import re

from livespec.services.operation_ids import (
    ensure_operation_ids,
    generate_operation_id,
    iter_operations,
    summary_to_operation_id,
)


def _ids(document):
    return {
        (method, path): op["operationId"]
        for path, method, op in iter_operations(document)
    }


def test_summary_becomes_camel_case():
    assert generate_operation_id("get", "/users/{id}", {"summary": "Get User Details"}) == "getUserDetails"


def test_summary_punctuation_is_stripped():
    assert summary_to_operation_id("Create P2P Transfer (Beta)") == "createP2pTransferBeta"


def test_summary_with_mixed_case_and_symbols():
    assert summary_to_operation_id("La Isla Bonita: an account by ID!") == "laIslaBonitaAnAccountById"


def test_method_and_path_without_summary():
    op_id = generate_operation_id("post", "/accounts/{id}/transactions", {})
    assert op_id == "postAccountsTransactions"


def test_root_path_uses_summary():
    assert generate_operation_id("get", "/", {"summary": "Root Endpoint"}) == "rootEndpoint"


def test_root_path_without_summary_is_bare_method():
    assert generate_operation_id("get", "/", {}) == "get"


def test_unusable_path_falls_back_to_hash():
    op_id = generate_operation_id("get", "/!@#$%", {})
    assert re.fullmatch(r"get[a-f0-9]{6}", op_id)


def test_blank_summary_is_ignored():
    assert generate_operation_id("delete", "/items/{id}", {"summary": "  ?? "}) == "deleteItems"


def test_existing_operation_ids_are_preserved():
    doc = {
        "paths": {
            "/users": {"get": {"operationId": "listAllUsers", "summary": "List Users"}},
        }
    }

    normalized = ensure_operation_ids(doc)

    assert _ids(normalized) == {("get", "/users"): "listAllUsers"}


def test_input_document_is_not_mutated():
    doc = {"paths": {"/users": {"get": {"summary": "List Users"}}}}

    ensure_operation_ids(doc)

    assert "operationId" not in doc["paths"]["/users"]["get"]


def test_resolver_is_idempotent():
    doc = {
        "paths": {
            "/users": {"get": {"summary": "List Users"}, "post": {}},
            "/": {"get": {}},
            "/!!": {"put": {}},
        }
    }

    once = ensure_operation_ids(doc)
    twice = ensure_operation_ids(once)

    assert once == twice


def test_generated_ids_are_unique():
    doc = {
        "paths": {
            "/a": {"get": {"summary": "List Users"}},
            "/b": {"get": {"summary": "List Users"}},
            "/c": {"get": {"operationId": "listUsers2"}},
        }
    }

    ids = _ids(ensure_operation_ids(doc))

    assert ids[("get", "/c")] == "listUsers2"
    assert ids[("get", "/a")] == "listUsers"
    assert ids[("get", "/b")] == "listUsers3"


def test_generated_id_never_takes_an_explicit_one():
    doc = {
        "paths": {
            "/users": {"get": {}},
            "/other": {"get": {"operationId": "getUsers"}},
        }
    }

    ids = _ids(ensure_operation_ids(doc))

    assert ids[("get", "/other")] == "getUsers"
    assert ids[("get", "/users")] == "getUsers2"


def test_non_method_keys_are_skipped():
    doc = {
        "paths": {
            "/users": {
                "parameters": [{"name": "tenant", "in": "header"}],
                "get": {"summary": "List Users"},
            }
        }
    }

    assert list(iter_operations(doc)) == [
        ("/users", "get", {"summary": "List Users"})
    ]


def test_malformed_documents_are_tolerated():
    assert ensure_operation_ids(None) == {}
    assert ensure_operation_ids({"paths": "nope"}) == {"paths": "nope"}
    assert list(iter_operations({"paths": {"/x": None}})) == []
