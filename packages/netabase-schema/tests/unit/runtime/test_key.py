"""Unit tests for generated key types."""

from __future__ import annotations

import threading

import pytest

from netabase_schema import Compiler, DecodeError, KeyUtf8Error, SchemaDefinition, SchemaKey
from netabase_schema.runtime.key import UniqueKeyGenerator, generate_unique


@pytest.fixture
def UserKey(compiler: Compiler, user_definition: SchemaDefinition) -> type[SchemaKey]:  # noqa: N802
    return compiler.compile(user_definition).key_type


@pytest.fixture
def SessionKey(compiler: Compiler, session_definition: SchemaDefinition) -> type[SchemaKey]:  # noqa: N802
    return compiler.compile(session_definition).key_type


class TestKeyConstruction:
    """Construction and string views."""

    def test_from_str(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        key = UserKey("user::42")
        assert key.as_str() == "user::42"
        assert key.into_string() == "user::42"
        assert str(key) == "user::42"
        assert repr(key) == "UserKey('user::42')"

    def test_rejects_non_str(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        with pytest.raises(TypeError):
            UserKey(42)  # type: ignore[arg-type]

    def test_class_attributes(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        assert UserKey.schema_name == "User"
        assert UserKey.prefix == "user"
        assert UserKey.separator == "::"


class TestKeyEquality:
    """Equality, hash and ordering follow the string."""

    def test_equal_content_equal_keys(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        a, b = UserKey("user::1"), UserKey("user::1")
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_equal_to_its_string(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        key = UserKey("user::1")
        assert key == "user::1"
        assert hash(key) == hash("user::1")
        assert key != "user::2"
        assert key != 1

    def test_ordering(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        keys = [UserKey("user::b"), UserKey("user::a"), UserKey("user::c")]
        assert [str(k) for k in sorted(keys)] == ["user::a", "user::b", "user::c"]
        assert UserKey("user::a") < UserKey("user::b")
        assert UserKey("user::b") >= "user::a"


class TestKeyBytes:
    """Byte conversions."""

    def test_to_bytes_is_utf8(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        assert UserKey("user::żółw").to_bytes() == "user::żółw".encode()

    @pytest.mark.parametrize("value", ["user::42", "", "user::żółw", "a::b::c"])
    def test_bytes_round_trip(self, UserKey: type[SchemaKey], value: str) -> None:  # noqa: N803
        key = UserKey(value)
        assert UserKey.from_bytes(key.to_bytes()) == key
        assert UserKey.from_record_key(key.to_record_key()) == key

    def test_invalid_utf8_is_decode_error(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        with pytest.raises(KeyUtf8Error) as exc_info:
            UserKey.from_bytes(b"user::\xff\xfe")
        assert isinstance(exc_info.value, DecodeError)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)


class TestKeyCodec:
    """Encode/decode through the serialization plan."""

    def test_round_trip(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        key = UserKey("user::42")
        data = key.encode()
        assert data == b'"user::42"'
        assert UserKey.decode(data) == key

    def test_decode_failure_reports_both_codecs(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        with pytest.raises(DecodeError) as exc_info:
            UserKey.decode(b"[1, 2]")
        assert exc_info.value.primary is not None
        assert exc_info.value.fallback is not None


class TestGenerate:
    """Unique key generation."""

    def test_prefixed_when_schema_has_prefix(self, UserKey: type[SchemaKey]) -> None:  # noqa: N803
        key = UserKey.generate()
        assert isinstance(key, UserKey)
        assert key.as_str().startswith("user::")
        assert len(key.as_str()) == len("user::") + 26

    def test_unprefixed_otherwise(self, SessionKey: type[SchemaKey]) -> None:  # noqa: N803
        assert len(SessionKey.generate().as_str()) == 26

    def test_consecutive_values_increase(self, SessionKey: type[SchemaKey]) -> None:  # noqa: N803
        keys = [SessionKey.generate() for _ in range(1000)]
        assert len(set(keys)) == len(keys)
        assert all(a < b for a, b in zip(keys, keys[1:]))

    def test_time_prefix_non_decreasing(self) -> None:
        values = [generate_unique() for _ in range(200)]
        stamps = [UniqueKeyGenerator.timestamp_ms(v) for v in values]
        assert stamps == sorted(stamps)

    def test_thread_safe(self) -> None:
        generator = UniqueKeyGenerator()
        results: list[list[str]] = [[] for _ in range(8)]

        def worker(bucket: list[str]) -> None:
            for _ in range(500):
                bucket.append(generator.next())

        threads = [threading.Thread(target=worker, args=(bucket,)) for bucket in results]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        flat = [v for bucket in results for v in bucket]
        assert len(set(flat)) == len(flat)
        for bucket in results:
            assert bucket == sorted(bucket)
