"""Tests for tier1_runtime modules."""
from __future__ import annotations

import io
import json
import threading
from collections import OrderedDict
from datetime import datetime

import pytest
from pydantic import BaseModel

from bosbase_sdk.tier0_core.attachments import FileAttachment
from bosbase_sdk.tier1_runtime.auth_store import AuthStore, decode_token_payload
from bosbase_sdk.tier1_runtime.clock import Clock
from bosbase_sdk.tier1_runtime.request import (
    JsonContent,
    MultipartContent,
    RequestContent,
    StreamPart,
    build_content,
    build_relative_url,
    encode_path_segment,
    encode_query,
    normalize_query,
)
from bosbase_sdk.tier1_runtime.serialize import denormalize, from_json, normalize, to_json


# ── serialize ──────────────────────────────────────────────────────────────

class TestNormalize:
    def test_none(self):
        assert normalize(None) is None

    def test_scalars_pass_through(self):
        for value in ("text", 1, 2.5, True, False):
            assert normalize(value) == value

    def test_mapping_drops_none_entries(self):
        assert normalize({"a": 1, "b": None, "c": {"d": None}}) == {"a": 1, "c": {}}

    def test_mapping_keys_become_strings(self):
        assert normalize({1: "x"}) == {"1": "x"}

    def test_sequences_become_lists(self):
        assert normalize((1, [2, (3,)])) == [1, [2, [3]]]

    def test_none_kept_inside_lists(self):
        assert normalize([1, None]) == [1, None]

    def test_generators_are_sequences(self):
        assert normalize(x * 2 for x in range(3)) == [0, 2, 4]

    def test_strings_are_not_sequences(self):
        assert normalize({"s": "abc"}) == {"s": "abc"}

    def test_unknown_objects_pass_through(self):
        marker = object()
        assert normalize(marker) is marker

    def test_pydantic_model(self):
        class Post(BaseModel):
            title: str
            draft: bool | None = None

        assert normalize({"post": Post(title="hi")}) == {"post": {"title": "hi"}}

    def test_datetime(self):
        assert normalize(datetime(2024, 5, 1, 12, 30)) == "2024-05-01 12:30:00"

    def test_order_preserved(self):
        value = OrderedDict([("z", 1), ("a", 2), ("m", 3)])
        assert list(normalize(value)) == ["z", "a", "m"]


class TestDenormalize:
    def test_integral_numbers_become_int(self):
        assert denormalize(3.0) == 3
        assert isinstance(denormalize(3.0), int)

    def test_fractional_numbers_stay_float(self):
        assert denormalize(2.5) == 2.5

    def test_out_of_int64_range_becomes_float(self):
        big = 2**64
        assert denormalize(big) == float(big)
        assert isinstance(denormalize(big), float)

    def test_int64_bounds_stay_int(self):
        assert denormalize(2**63 - 1) == 2**63 - 1
        assert denormalize(-(2**63)) == -(2**63)

    def test_bool_is_not_a_number(self):
        assert denormalize(True) is True

    def test_containers(self):
        assert denormalize({"a": [1.0, None, "x"]}) == {"a": [1, None, "x"]}


class TestJson:
    def test_to_json_is_compact_and_normalized(self):
        assert to_json({"a": 1, "b": None, "c": [True]}) == '{"a":1,"c":[true]}'

    def test_to_json_keeps_unicode(self):
        assert to_json({"name": "Zoë"}) == '{"name":"Zoë"}'

    def test_from_json_narrows_numbers(self):
        data = from_json('{"i": 10, "f": 1.5, "e": 1e3, "big": 123456789012345678901234567890}')
        assert data["i"] == 10 and isinstance(data["i"], int)
        assert data["f"] == 1.5
        assert data["e"] == 1000 and isinstance(data["e"], int)
        assert isinstance(data["big"], float)

    def test_from_json_keeps_raw_text_for_float_overflow(self):
        assert from_json('{"huge": 1e400}') == {"huge": "1e400"}

    def test_from_json_null_kept(self):
        assert from_json('{"a": null}') == {"a": None}

    def test_round_trip(self):
        value = {"title": "x", "tags": ["a", "b"], "count": 3, "ok": True, "meta": {"n": -7}}
        assert from_json(to_json(value)) == value

    def test_round_trip_drops_none_entries(self):
        assert from_json(to_json({"a": 1, "b": None})) == {"a": 1}


# ── request ────────────────────────────────────────────────────────────────

class TestEncodeQuery:
    def test_empty(self):
        assert encode_query({}) == ""
        assert encode_query(None) == ""

    def test_multi_value_preservation(self):
        result = encode_query({"tag": ["a", "b"], "x": None, "y": "z"})
        pairs = result.split("&")
        assert pairs == ["tag=a", "tag=b", "y=z"]

    def test_keys_and_values_are_percent_encoded(self):
        assert encode_query({"a b": "c&d=e/f"}) == "a%20b=c%26d%3De%2Ff"

    def test_booleans_and_numbers(self):
        assert encode_query({"skipTotal": True, "page": 2}) == "skipTotal=true&page=2"

    def test_none_items_dropped(self):
        assert encode_query({"k": ["a", None, "b"]}) == "k=a&k=b"

    def test_idempotent_on_normalized_map(self):
        normalized = normalize_query({"tag": ["a", "b"], "page": 1})
        assert normalized == {"tag": ["a", "b"], "page": ["1"]}
        assert encode_query(normalized) == encode_query(normalized)
        assert encode_query(normalized) == encode_query({"tag": ["a", "b"], "page": 1})

    def test_bytes_are_utf8_text(self):
        assert encode_query({"q": "caf\u00e9".encode("utf-8")}) == "q=caf%C3%A9"
        assert encode_query({"q": [b"a", b"b"]}) == "q=a&q=b"

    def test_mapping_value_rejected(self):
        with pytest.raises(TypeError):
            encode_query({"filter": {"a": 1}})
        with pytest.raises(TypeError):
            normalize_query({"filter": [{"a": 1}]})


class TestBuildRelativeUrl:
    def test_end_to_end_scenario(self):
        assert build_relative_url("backups/my file.zip", {"token": "abc"}) == "/backups/my%20file.zip?token=abc"

    def test_single_leading_separator(self):
        assert build_relative_url("/api/health") == "/api/health"
        assert build_relative_url("//api/health") == "/api/health"

    def test_no_question_mark_for_empty_query(self):
        assert build_relative_url("api/x", {"a": None}) == "/api/x"

    def test_existing_query_is_extended(self):
        assert build_relative_url("/api/x?a=1", {"b": 2}) == "/api/x?a=1&b=2"

    def test_escaped_segments_not_double_encoded(self):
        assert build_relative_url(f"/api/backups/{encode_path_segment('a b')}") == "/api/backups/a%20b"

    def test_encode_path_segment_escapes_slash(self):
        assert encode_path_segment("a/b") == "a%2Fb"


class TestBuildContent:
    def test_content_base_is_abstract(self):
        with pytest.raises(TypeError):
            RequestContent()

        class Incomplete(RequestContent):
            pass

        with pytest.raises(TypeError):
            Incomplete()

    def test_no_body_no_files(self):
        assert build_content(None) is None
        assert build_content(None, []) is None

    def test_prebuilt_content_passes_through(self):
        content = JsonContent('{"raw":true}')
        assert build_content(content) is content

    def test_json_content(self):
        body = {"title": "x", "draft": None, "tags": ("a",)}
        content = build_content(body)
        assert isinstance(content, JsonContent)
        assert content.content_type == "application/json"
        assert from_json(content.text) == normalize(body)

    def test_json_content_httpx_kwargs(self):
        kwargs = build_content({"a": 1}).to_httpx()
        assert kwargs["content"] == b'{"a":1}'
        assert kwargs["headers"] == {"Content-Type": "application/json"}

    def test_multipart_shape(self):
        files = [
            FileAttachment.from_bytes("avatar", b"img", "a.png", "image/png"),
            FileAttachment.from_bytes("docs", b"pdf", "b.pdf"),
        ]
        content = build_content({"title": "x"}, files)
        assert isinstance(content, MultipartContent)
        assert [p.name for p in content.json_parts] == ["@jsonPayload"]
        assert json.loads(content.json_parts[0].text) == {"title": "x"}
        streams = content.stream_parts
        assert [p.name for p in streams] == ["avatar", "docs"]
        assert streams[0].file_name == "a.png"
        assert streams[0].content_type == "image/png"
        assert streams[1].content_type == "application/octet-stream"
        assert len(content.parts) == len(files) + 1

    def test_multipart_streams_are_not_read(self):
        stream = io.BytesIO(b"payload")
        content = build_content(None, [FileAttachment("f", stream, "f.bin")])
        part = content.stream_parts[0]
        assert isinstance(part, StreamPart)
        assert part.stream is stream
        assert stream.tell() == 0

    def test_multipart_without_body_sends_empty_object(self):
        content = build_content(None, [FileAttachment.from_bytes("f", b"x")])
        assert content.json_parts[0].text == "{}"

    def test_multipart_httpx_kwargs(self):
        stream = io.BytesIO(b"x")
        content = build_content({"a": 1}, [FileAttachment("f", stream, "f.txt", "text/plain")])
        files = content.to_httpx()["files"]
        assert files[0] == ("@jsonPayload", (None, b'{"a":1}', "application/json"))
        assert files[1] == ("f", ("f.txt", stream, "text/plain"))


# ── clock ──────────────────────────────────────────────────────────────────

class TestClock:
    def test_frozen_clock(self):
        clock = Clock.frozen(1234.9)
        assert clock.timestamp() == 1234.9
        assert clock.epoch_seconds() == 1234

    def test_system_clock_moves(self):
        assert Clock().epoch_seconds() > 1_600_000_000


# ── auth_store ─────────────────────────────────────────────────────────────

class TestAuthStore:
    def test_starts_empty(self, auth_store):
        assert auth_store.token == ""
        assert auth_store.record is None
        assert auth_store.snapshot.is_empty

    def test_save_and_clear(self, auth_store):
        auth_store.save("tok", {"id": "u1"})
        assert auth_store.token == "tok"
        assert auth_store.record == {"id": "u1"}
        auth_store.clear()
        assert auth_store.token == ""
        assert auth_store.record is None

    def test_record_is_copied(self, auth_store):
        record = {"id": "u1"}
        auth_store.save("tok", record)
        record["id"] = "changed"
        assert auth_store.record["id"] == "u1"

    def test_listeners_called_in_order(self, auth_store):
        calls = []
        auth_store.add_listener(lambda t, r: calls.append(("first", t, r)))
        auth_store.add_listener(lambda t, r: calls.append(("second", t, r)))
        auth_store.save("tok", {"id": "u1"})
        auth_store.clear()
        assert calls == [
            ("first", "tok", {"id": "u1"}),
            ("second", "tok", {"id": "u1"}),
            ("first", "", None),
            ("second", "", None),
        ]

    def test_failing_listener_is_isolated(self, auth_store):
        calls = []

        def broken(token, record):
            raise RuntimeError("boom")

        auth_store.add_listener(broken)
        auth_store.add_listener(lambda t, r: calls.append(t))
        auth_store.save("tok")
        assert calls == ["tok"]
        assert auth_store.token == "tok"

    def test_remove_listener(self, auth_store):
        calls = []
        listener = lambda t, r: calls.append(t)  # noqa: E731
        auth_store.add_listener(listener)
        auth_store.remove_listener(listener)
        auth_store.remove_listener(listener)
        auth_store.save("tok")
        assert calls == []

    def test_on_change_unsubscribe(self, auth_store):
        calls = []
        unsubscribe = auth_store.on_change(lambda t, r: calls.append(t))
        auth_store.save("a")
        unsubscribe()
        auth_store.save("b")
        assert calls == ["a"]

    def test_listener_may_save_again(self, auth_store):
        def reentrant(token, record):
            if token == "first":
                auth_store.save("second", {"id": "2"})

        auth_store.add_listener(reentrant)
        auth_store.save("first", {"id": "1"})
        assert auth_store.token == "second"
        assert auth_store.record == {"id": "2"}

    def test_concurrent_saves_never_mix_pairs(self):
        store = AuthStore()
        pairs = {f"token-{i}": {"id": f"record-{i}"} for i in range(16)}
        mismatches = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                snap = store.snapshot
                if snap.token and snap.record["id"] != pairs[snap.token]["id"]:
                    mismatches.append(snap)

        def writer(token):
            for _ in range(200):
                store.save(token, pairs[token])

        readers = [threading.Thread(target=reader) for _ in range(4)]
        writers = [threading.Thread(target=writer, args=(t,)) for t in pairs]
        for t in readers + writers:
            t.start()
        for t in writers:
            t.join()
        stop.set()
        for t in readers:
            t.join()

        assert mismatches == []
        assert store.token in pairs
        assert store.record["id"] == pairs[store.token]["id"]


class TestIsValid:
    def test_future_exp_is_valid(self, auth_store, make_token, now):
        auth_store.save(make_token({"exp": now + 60}))
        assert auth_store.is_valid() is True

    def test_exp_equal_to_now_is_expired(self, auth_store, make_token, now):
        auth_store.save(make_token({"exp": now}))
        assert auth_store.is_valid() is False

    def test_past_exp_is_expired(self, auth_store, make_token, now):
        auth_store.save(make_token({"exp": now - 1}))
        assert auth_store.is_valid() is False

    @pytest.mark.parametrize("token", ["", "   ", "abc", "a.b", "a.b.c.d"])
    def test_malformed_structure(self, auth_store, token):
        auth_store.save(token)
        assert auth_store.is_valid() is False

    def test_invalid_base64(self, auth_store, make_token):
        auth_store.save(make_token(raw_payload="!!!not-base64!!!"))
        assert auth_store.is_valid() is False

    def test_payload_not_json_object(self, auth_store, make_token):
        auth_store.save(make_token([1, 2, 3]))
        assert auth_store.is_valid() is False

    def test_payload_not_json(self, auth_store, make_token):
        auth_store.save(make_token(raw_payload="bm90IGpzb24"))  # "not json"
        assert auth_store.is_valid() is False

    @pytest.mark.parametrize("claims", [{}, {"exp": "9999999999"}, {"exp": None}, {"exp": True}])
    def test_missing_or_non_numeric_exp(self, auth_store, make_token, claims):
        auth_store.save(make_token(claims))
        assert auth_store.is_valid() is False

    def test_url_safe_alphabet_and_missing_padding(self, auth_store, make_token, now):
        # this payload encodes with "_" and needs two padding characters
        token = make_token({"exp": now + 10, "n": "~~~???"})
        assert "=" not in token
        auth_store.save(token)
        assert auth_store.is_valid() is True

    def test_decode_token_payload(self, make_token):
        assert decode_token_payload(make_token({"exp": 5, "sub": "u"})) == {"exp": 5, "sub": "u"}
        assert decode_token_payload("x.y") is None
