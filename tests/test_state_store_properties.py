"""
Property-based tests for State Store module.

Uses Hypothesis for property-based testing to verify HMAC protection and
lossless round trips of services and integration settings.
"""

import json
import tempfile
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from hirepass.enums import SubmissionStatus
from hirepass.exceptions import PersistenceError, TamperingError
from hirepass.models import (
    FieldMappings,
    GoogleFormConfig,
    HistoryEntry,
    IntegrationSettings,
    Service,
    SubmissionLogEntry,
)
from hirepass.state_store import (
    StateStore,
    decode_integrations,
    decode_services,
    encode_integrations,
    encode_services,
)


# Strategies for generating valid test data

@st.composite
def timestamp_strategy(draw) -> str:
    """Generate valid ISO format timestamps, with and without microseconds."""
    year = draw(st.integers(min_value=2020, max_value=2030))
    month = draw(st.integers(min_value=1, max_value=12))
    day = draw(st.integers(min_value=1, max_value=28))
    hour = draw(st.integers(min_value=0, max_value=23))
    minute = draw(st.integers(min_value=0, max_value=59))
    second = draw(st.integers(min_value=0, max_value=59))
    micro = draw(st.sampled_from(["", ".123456", ".000001"]))
    return f"{year:04d}-{month:02d}-{day:02d}T{hour:02d}:{minute:02d}:{second:02d}{micro}+00:00"


@st.composite
def service_strategy(draw) -> Service:
    """Generate services with arbitrary (even out-of-range) values."""
    return Service(
        id=draw(st.uuids()).hex,
        name=draw(st.text(max_size=30)),
        current_index=draw(st.integers(min_value=0, max_value=10**6)),
        current_password=draw(st.integers(min_value=-10**6, max_value=10**6)),
        multiplier=draw(st.integers(min_value=-10**4, max_value=10**4)),
        addend=draw(st.integers(min_value=-10**4, max_value=10**4)),
        modulus=draw(st.integers(min_value=-10, max_value=10**6)),
        history=tuple(draw(st.lists(
            st.builds(
                HistoryEntry,
                index=st.integers(min_value=0, max_value=10**6),
                password=st.integers(min_value=0, max_value=10**6),
                timestamp=timestamp_strategy(),
            ),
            max_size=50,
        ))),
    )


@st.composite
def integration_settings_strategy(draw) -> IntegrationSettings:
    """Generate IntegrationSettings objects."""
    entry_id = st.one_of(
        st.just(""),
        st.integers(min_value=1, max_value=10**9).map(lambda n: f"entry.{n}"),
    )
    google_form = draw(st.one_of(
        st.none(),
        st.builds(
            GoogleFormConfig,
            form_url=st.text(max_size=60),
            field_mappings=st.builds(
                FieldMappings,
                hire_type=entry_id,
                price=entry_id,
                description=entry_id,
                date_of_hire=entry_id,
                time_of_hire=entry_id,
                number_of_days=entry_id,
                phone=entry_id,
            ),
        ),
    ))
    return IntegrationSettings(
        google_form=google_form,
        info_sheet_url=draw(st.one_of(st.none(), st.text(max_size=60))),
        submissions=tuple(draw(st.lists(
            st.builds(
                SubmissionLogEntry,
                timestamp=timestamp_strategy(),
                status=st.sampled_from(list(SubmissionStatus)),
                service_name=st.text(max_size=20),
            ),
            max_size=20,
        ))),
    )


@st.composite
def hmac_secret_strategy(draw) -> str:
    """Generate valid HMAC secrets."""
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"),
        min_size=16,
        max_size=64,
    ))


class TestServicesRoundTripProperty:
    """
    *For any* ordered collection of services, saving and loading SHALL
    produce an identical collection, including history order and timestamps.
    """

    @given(
        services=st.lists(service_strategy(), min_size=1, max_size=5),
        secret=hmac_secret_strategy(),
    )
    @settings(max_examples=100, deadline=None)
    def test_services_round_trip(self, services, secret: str) -> None:
        services = tuple(services)
        with tempfile.TemporaryDirectory() as tmpdir:
            store = StateStore(Path(tmpdir) / "services.json", secret)
            store.save(encode_services(services))

            loaded = StateStore(Path(tmpdir) / "services.json", secret).load()

            assert loaded is not None
            assert decode_services(loaded.data) == services

    @given(settings_value=integration_settings_strategy(), secret=hmac_secret_strategy())
    @settings(max_examples=100, deadline=None)
    def test_integrations_round_trip(self, settings_value: IntegrationSettings, secret: str) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = StateStore(Path(tmpdir) / "integrations.json", secret)
            store.save(encode_integrations(settings_value))

            loaded = StateStore(Path(tmpdir) / "integrations.json", secret).load()

            assert decode_integrations(loaded.data) == settings_value


class TestHMACProtectionProperty:
    """
    *For any* stored document, modifying its data SHALL cause loading to
    fail with TamperingError.
    """

    @given(services=st.lists(service_strategy(), min_size=1, max_size=3), secret=hmac_secret_strategy())
    @settings(max_examples=50, deadline=None)
    def test_modified_data_fails_hmac_validation(self, services, secret: str) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            file_path = Path(tmpdir) / "services.json"
            StateStore(file_path, secret).save(encode_services(tuple(services)))

            with open(file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
            raw_data["data"]["services"][0]["current_password"] += 1
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(raw_data, f)

            with pytest.raises(TamperingError):
                StateStore(file_path, secret).load()

    def test_wrong_secret_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            file_path = Path(tmpdir) / "services.json"
            StateStore(file_path, "first-secret-value").save({"services": []})

            with pytest.raises(TamperingError) as excinfo:
                StateStore(file_path, "other-secret-value").load()
            assert excinfo.value.code == "hmac_mismatch"


class TestStoreErrors:
    """Missing and unreadable files."""

    def test_missing_file_loads_none(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            assert StateStore(Path(tmpdir) / "absent.json", "secret").load() is None

    def test_malformed_json_raises(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            file_path = Path(tmpdir) / "services.json"
            file_path.write_text("{not json", encoding="utf-8")

            with pytest.raises(PersistenceError) as excinfo:
                StateStore(file_path, "secret").load()
            assert excinfo.value.code == "parse_error"

    def test_malformed_services_raise(self) -> None:
        with pytest.raises(PersistenceError) as excinfo:
            decode_services({"services": [{"id": "x"}]})
        assert excinfo.value.code == "schema_error"

    def test_unknown_submission_status_raises(self) -> None:
        data = {"submissions": [{"timestamp": "t", "status": "maybe", "service_name": "s"}]}
        with pytest.raises(PersistenceError):
            decode_integrations(data)

    def test_save_creates_parent_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            file_path = Path(tmpdir) / "nested" / "dir" / "services.json"
            document = StateStore(file_path, "secret").save({"services": []})

            assert file_path.exists()
            assert document.version == StateStore.VERSION
            assert not file_path.with_name("services.json.tmp").exists()

    def test_failed_save_keeps_previous_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            file_path = Path(tmpdir) / "services.json"
            store = StateStore(file_path, "secret")
            store.save({"services": []})
            file_path.with_name("services.json.tmp").mkdir()

            with pytest.raises(PersistenceError) as excinfo:
                store.save({"services": [{"id": "lost"}]})

            assert excinfo.value.code == "io_error"
            assert StateStore(file_path, "secret").load().data == {"services": []}

    def test_save_onto_directory_leaves_no_temp_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            file_path = Path(tmpdir) / "services.json"
            file_path.mkdir()

            with pytest.raises(PersistenceError):
                StateStore(file_path, "secret").save({"services": []})

            assert not file_path.with_name("services.json.tmp").exists()
