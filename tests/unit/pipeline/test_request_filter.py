from unittest.mock import Mock

import pytest

from lims_pipeline.core.records import RequestRecord
from lims_pipeline.core.types import (
    Failure,
    FetchedRequest,
    RequestCommand,
    SampleSelection,
    Success,
)
from lims_pipeline.exceptions import RequestSkipped
from lims_pipeline.pipeline.request_filter import (
    MISSING_SAMPLES,
    NON_CMO_REQUEST,
    RequestFilter,
    extract_samples,
    parse_sample_id_filter,
    should_process,
)


def _fetched(record: dict, make_config, **overrides) -> FetchedRequest:
    command = RequestCommand(request_id="12345_T", config=make_config(**overrides))
    return FetchedRequest(command=command, record=RequestRecord(record))


@pytest.mark.unit
class TestShouldProcess:
    def test_cmo_filter_off_never_reads_record(self):
        record = Mock(spec=RequestRecord)
        assert should_process(record, cmo_only=False) is True
        record.get_bool.assert_not_called()

    @pytest.mark.parametrize(
        ("record", "expected"),
        [
            ({}, False),
            ({"isCmoRequest": False}, False),
            ({"isCmoRequest": None}, False),
            ({"isCmoRequest": True}, True),
            ({"isCmoRequest": "true"}, True),
        ],
    )
    def test_cmo_filter_on_reads_flag_with_false_default(self, record, expected):
        assert should_process(RequestRecord(record), cmo_only=True) is expected


@pytest.mark.unit
class TestExtractSamples:
    def test_lims_list_shape(self):
        record = RequestRecord(
            samples=[
                {"igoSampleId": "s1", "igoComplete": True},
                {"igoSampleId": "s2", "igoComplete": False},
                {"igoSampleId": "s3"},
            ]
        )
        assert extract_samples(record) == {"s1": True, "s2": False, "s3": False}

    def test_mapping_shape(self):
        record = RequestRecord(samples={"s1": True, "s2": False})
        assert extract_samples(record) == {"s1": True, "s2": False}

    def test_entries_without_id_are_ignored(self):
        record = RequestRecord(
            samples=[{"igoComplete": True}, "junk", {"igoSampleId": "s1"}]
        )
        assert extract_samples(record) == {"s1": False}

    @pytest.mark.parametrize(
        "record",
        [
            {},
            {"samples": None},
            {"samples": []},
            {"samples": {}},
            {"samples": "s1,s2"},
            {"samples": [{"igoComplete": True}]},
        ],
    )
    def test_missing_or_empty_samples_yield_none(self, record):
        assert extract_samples(RequestRecord(record)) is None


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, None),
        ("", None),
        ("   ", None),
        (",,", None),
        ("s1", frozenset({"s1"})),
        ("s1,s2", frozenset({"s1", "s2"})),
        (" s1 , s2 ,", frozenset({"s1", "s2"})),
    ],
)
def test_parse_sample_id_filter(raw, expected):
    assert parse_sample_id_filter(raw) == expected


@pytest.mark.unit
class TestRequestFilterHandler:
    @pytest.mark.asyncio
    async def test_non_cmo_request_is_skipped_when_filtering(self, make_config):
        fetched = _fetched({"samples": {"s1": True}}, make_config, cmo_only=True)

        result = await RequestFilter().handle(fetched)

        assert isinstance(result, Failure)
        assert isinstance(result.error, RequestSkipped)
        assert result.error.reason == NON_CMO_REQUEST

    @pytest.mark.asyncio
    async def test_missing_cmo_flag_does_not_skip_without_filter(self, make_config):
        fetched = _fetched({"samples": {"s1": True}}, make_config, cmo_only=False)

        result = await RequestFilter().handle(fetched)

        assert isinstance(result, Success)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("record", [{}, {"samples": None}, {"samples": []}])
    async def test_missing_samples_are_skipped(self, make_config, record):
        result = await RequestFilter().handle(_fetched(record, make_config))

        assert isinstance(result, Failure)
        assert result.error.reason == MISSING_SAMPLES

    @pytest.mark.asyncio
    async def test_cmo_check_runs_before_samples_check(self, make_config):
        result = await RequestFilter().handle(_fetched({}, make_config, cmo_only=True))

        assert isinstance(result, Failure)
        assert result.error.reason == NON_CMO_REQUEST

    @pytest.mark.asyncio
    async def test_selection_carries_samples_and_filter(self, make_config):
        fetched = _fetched(
            {"isCmoRequest": True, "samples": [{"igoSampleId": "s1", "igoComplete": True}]},
            make_config,
            cmo_only=True,
            sample_id_filter="s1, s9",
        )

        result = await RequestFilter().handle(fetched)

        assert isinstance(result, Success)
        selection = result.value
        assert isinstance(selection, SampleSelection)
        assert selection.samples == {"s1": True}
        assert selection.restrict_to == frozenset({"s1", "s9"})
        assert selection.fetched is fetched
