from datetime import date, datetime, timedelta, timezone

import pytest

from audit_pack.errors import (
    LineageBrokenError,
    RequestNotFoundError,
    ScopeInvalidError,
    derive_error_code,
    derive_error_message,
)
from audit_pack.utils.hashing import sha256_bytes
from audit_pack.utils.http import normalize_base_url
from audit_pack.utils.time import (
    canonical_timestamp,
    day_end_utc,
    day_start_utc,
    format_utc,
    parse_timestamp,
    to_utc_iso,
)


def test_format_utc_converts_offsets_and_truncates_to_milliseconds():
    value = datetime(2024, 3, 1, 10, 0, 0, 123456, tzinfo=timezone(timedelta(hours=2)))

    assert format_utc(value) == "2024-03-01T08:00:00.123+00:00"
    assert format_utc(datetime(2024, 3, 1, 8, 0)) == "2024-03-01T08:00:00.000+00:00"


def test_parse_timestamp_reads_naive_values_as_utc():
    assert parse_timestamp("2024-03-01T08:00:00").tzinfo == timezone.utc
    assert to_utc_iso("2024-03-01T08:00:00Z") == "2024-03-01T08:00:00.000+00:00"


def test_parse_timestamp_rejects_empty_and_garbage():
    with pytest.raises(ValueError):
        parse_timestamp("  ")
    with pytest.raises(ValueError):
        parse_timestamp("yesterday")


def test_canonical_timestamp_passes_unparseable_values_through():
    assert canonical_timestamp("yesterday") == "yesterday"
    assert canonical_timestamp("0001-01-01T00:00:00+05:00") == "0001-01-01T00:00:00+05:00"
    assert canonical_timestamp("2024-03-01T09:00:00+01:00") == "2024-03-01T08:00:00.000+00:00"


def test_day_bounds_cover_the_whole_utc_day():
    assert day_start_utc("2024-02-29") == "2024-02-29T00:00:00.000+00:00"
    assert day_end_utc(date(2024, 2, 29)) == "2024-02-29T23:59:59.999+00:00"
    assert day_start_utc("2024-02-29T18:30:00Z") == "2024-02-29T00:00:00.000+00:00"
    assert day_start_utc("2024-02-29T21:00:00-05:00") == "2024-03-01T00:00:00.000+00:00"
    with pytest.raises(ValueError):
        day_end_utc("2024-02-29junk")


def test_sha256_bytes_is_prefixed():
    digest = sha256_bytes(b"")

    assert digest == "sha256:e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_normalize_base_url():
    assert normalize_base_url(" HTTP://svc.internal:8080/ ") == "http://svc.internal:8080"
    with pytest.raises(ValueError, match="http or https"):
        normalize_base_url("ftp://svc.internal")
    with pytest.raises(ValueError, match="userinfo"):
        normalize_base_url("https://user:pw@svc.internal")
    with pytest.raises(ValueError, match="host"):
        normalize_base_url("https:///path")


def test_error_codes_derive_from_exception_attribute():
    assert derive_error_code(RequestNotFoundError()) == "request_not_found"
    assert derive_error_code(ScopeInvalidError()) == "scope_invalid"
    assert derive_error_code(LineageBrokenError("x")) == "lineage_broken"
    assert derive_error_code(KeyError("x")) == "audit_pack_generation_failed"


def test_error_message_falls_back_to_class_name():
    assert derive_error_message(RuntimeError()) == "RuntimeError"
    assert derive_error_message(LineageBrokenError("missing e9")) == "missing e9"
