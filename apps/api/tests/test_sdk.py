"""Tests for the Python SDK against the API."""

from unittest.mock import MagicMock

import pytest

from casevault_sdk import CaseVaultClient, HashComputationError, hash_file, verify_exported_chain
from casevault_sdk.hashing import hash_bytes as sdk_hash_bytes
from casevault_api.ledger.hasher import hash_bytes


def test_sdk_hash_matches_server(tmp_path):
    path = tmp_path / "evidence.bin"
    data = b"\x00\x01 evidence" * 10000
    path.write_bytes(data)
    assert hash_file(path, chunk_size=1000) == hash_bytes(data)
    assert sdk_hash_bytes(data) == hash_bytes(data)


def test_sdk_hash_missing_file(tmp_path):
    with pytest.raises(HashComputationError):
        hash_file(tmp_path / "missing.bin")


def test_exported_chain_verifies_offline(client, headers, case, evidence):
    entries = client.get(f"/v1/cases/{case.id}/audit-log", headers=headers("client")).json()["entries"]
    verdict = verify_exported_chain(entries)
    assert verdict.valid
    assert verdict.entries_checked == len(entries)


def test_exported_chain_detects_tampering(client, headers, case, evidence):
    entries = client.get(f"/v1/cases/{case.id}/audit-log", headers=headers("client")).json()["entries"]

    edited = [dict(e) for e in entries]
    edited[1]["details"] = "rewritten"
    verdict = verify_exported_chain(edited)
    assert not verdict.valid
    assert verdict.broken_at == 1
    assert verdict.reason == "HASH_MISMATCH"

    dropped = entries[:1] + entries[2:]
    verdict = verify_exported_chain(dropped)
    assert verdict.broken_at == 1
    assert verdict.reason == "LINK_MISMATCH"


@pytest.mark.parametrize(
    "field, value",
    [
        ("entry_hash", "é" * 64),
        ("details", None),
        ("action", None),
        ("timestamp", 1700000000),
        ("previous_hash", None),
        ("format_version", ["1"]),
    ],
)
def test_exported_chain_reports_malformed_rows(client, headers, case, evidence, field, value):
    entries = client.get(f"/v1/cases/{case.id}/audit-log", headers=headers("client")).json()["entries"]

    edited = [dict(e) for e in entries]
    edited[0][field] = value
    verdict = verify_exported_chain(edited)
    assert not verdict.valid
    assert verdict.broken_at == 0
    assert verdict.entries_checked == 0
    assert verdict.reason == "HASH_MISMATCH"


def test_upload_sends_local_hash(tmp_path):
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"jpeg bytes")

    sdk = CaseVaultClient(api_key="cv_test", base_url="http://casevault.test/")
    sdk.session = MagicMock()
    sdk.session.post.return_value.json.return_value = {"id": 1}

    assert sdk.upload_evidence(3, str(path), summary="Scene photo", metadata={"Make": "Canon"}) == {"id": 1}

    url = sdk.session.post.call_args[0][0]
    kwargs = sdk.session.post.call_args[1]
    assert url == "http://casevault.test/v1/cases/3/evidence"
    assert kwargs["data"]["file_hash"] == hash_bytes(b"jpeg bytes")
    assert kwargs["data"]["metadata"] == '{"Make": "Canon"}'
    assert kwargs["files"]["file"][0] == "photo.jpg"
    assert kwargs["files"]["file"][2] == "image/jpeg"


def test_client_sets_api_key_header():
    sdk = CaseVaultClient(api_key="cv_test")
    assert sdk.session.headers["x-api-key"] == "cv_test"
