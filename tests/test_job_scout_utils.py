# tests/test_job_scout_utils.py
import pytest

from modules.job_scout.lib.utils import (
    STABLE_ID_LENGTH,
    generate_run_id,
    generate_session_alias,
    mask_key,
    now_iso,
    parse_csv,
    parse_number,
    stable_id,
    truthy,
)


def test_stable_id_is_deterministic_and_fixed_length():
    a = stable_id("hiringcafe:https://hiring.cafe/job/1")
    assert a == stable_id("hiringcafe:https://hiring.cafe/job/1")
    assert len(a) == STABLE_ID_LENGTH
    assert all(c in "0123456789abcdef" for c in a)


def test_stable_id_distinct_for_distinct_inputs():
    corpus = [f"{src}:https://example.com/jobs/{i}" for src in ("hiringcafe", "ycjobs") for i in range(200)]
    ids = {stable_id(s) for s in corpus}
    assert len(ids) == len(corpus)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, None),
        ("", None),
        ("abc", None),
        ("nan", None),
        ("inf", None),
        (True, None),
        (120000, 120000.0),
        ("120,000", 120000.0),
        (" 99.5 ", 99.5),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_truthy_and_csv():
    assert truthy("yes") and truthy("1") and truthy(True) and truthy(2)
    assert not truthy("no") and not truthy(None) and not truthy(0)
    assert parse_csv(" a, b ,,c ") == ["a", "b", "c"]
    assert parse_csv(None) == []


def test_mask_key_keeps_only_tail():
    assert mask_key("sk-abcdef1234") == "*********1234"
    assert mask_key("abc") == "***"
    assert mask_key(None) == ""


def test_ids_and_alias_shapes():
    rid = generate_run_id()
    assert len(rid) == 16 and rid != generate_run_id()
    adj, noun, num = generate_session_alias().split("-")
    assert adj and noun and 0 <= int(num) <= 999


def test_now_iso_is_utc_z(frozen_utc):
    assert now_iso() == "2025-01-01T00:00:00Z"
