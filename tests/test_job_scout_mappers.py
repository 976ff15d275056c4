# tests/test_job_scout_mappers.py
import json

import pytest

from modules.job_scout.lib.crm.mappers import VocabularyError, build_request, load_vocabulary
from modules.job_scout.lib.models import CrmFieldKeyMap, JobSource

KEYS = CrmFieldKeyMap(job_title="1001", source="1002", location="1003", website="1004")


def test_empty_field_key_map_emits_no_fields(make_posting):
    req = build_request(make_posting(), "pipe-1", CrmFieldKeyMap(), None)
    assert req.fields == {}
    assert "fields" not in req.payload()


def test_full_mapping(make_posting):
    p = make_posting(title="Developer Advocate", company="Acme", location="Remote", description="Build things")
    req = build_request(p, "pipe-1", KEYS, "stage-5")
    assert req.name == "Acme"
    assert req.pipeline_key == "pipe-1"
    assert req.payload() == {
        "name": "Acme",
        "stageKey": "stage-5",
        "notes": "Build things",
        "fields": {
            "1001": "Developer Advocate",
            "1002": "9011",
            "1003": "9007",
            "1004": "https://acme.example/jobs/1",
        },
    }


def test_partial_keys_only_emit_configured_fields(make_posting):
    req = build_request(make_posting(), "pipe-1", CrmFieldKeyMap(website="1004"))
    assert req.fields == {"1004": "https://acme.example/jobs/1"}
    assert "stageKey" not in req.payload()
    assert "notes" not in req.payload()


def test_unrecognized_values_resolve_to_fallback(make_posting):
    p = make_posting(location="Atlantis", source=JobSource.UNKNOWN)
    req = build_request(p, "pipe-1", KEYS)
    assert req.fields["1003"] == "9014"
    assert req.fields["1002"] == "9036"


def test_vocabulary_lookup_is_case_insensitive(make_posting):
    req = build_request(make_posting(location="  SAN Francisco "), "pipe-1", KEYS)
    assert req.fields["1003"] == "9008"


def test_vocabulary_override_file(tmp_path, make_posting):
    path = tmp_path / "vocab.json"
    path.write_text(
        json.dumps({
            "location": {"fallback": "L0", "entries": {"Remote": "L1"}},
            "source": {"fallback": "S0", "entries": {"hiringcafe": "S1"}},
        }),
        encoding="utf-8",
    )
    vocab = load_vocabulary(str(path))
    req = build_request(make_posting(), "pipe-1", KEYS, vocabulary=vocab)
    assert req.fields["1002"] == "S1"
    assert req.fields["1003"] == "L1"
    assert vocab.location.resolve("Mars") == "L0"


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps([]),
        json.dumps({"location": {"fallback": "x"}}),
        json.dumps({"location": {"entries": {}}, "source": {"fallback": "s"}}),
    ],
)
def test_bad_vocabulary_files_raise(tmp_path, content):
    path = tmp_path / "vocab.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(VocabularyError):
        load_vocabulary(str(path))


def test_missing_vocabulary_file_raises(tmp_path):
    with pytest.raises(VocabularyError):
        load_vocabulary(str(tmp_path / "nope.json"))
