"""Tests de HttpRecordSource y la decodificación NDJSON.

Usa httpx.MockTransport: no hay red.

Ejecutar:
    pytest tests/test_record_source.py -v
"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from telemetry_api.core.domain import MetricRecord, parse_timestamp
from telemetry_api.errors import DecodeError, TransportError
from telemetry_api.sources import HttpRecordSource, MetricQuery, decode_line, decode_records, group_rollup


def ndjson(*objs) -> str:
    return "\n".join(o if isinstance(o, str) else json.dumps(o) for o in objs) + "\n"


UPTIME = {
    "timestamp": "2024-03-01T11:59:59.123456789Z",
    "name": "sys.uptime",
    "value": 86400,
    "meta": {"node": "000048b02d15bc7c", "host": "000048b02d15bc7c.ws-nxcore", "vsn": "W08D"},
}

INVENTORY = {
    "data": [
        {"id": "000048B02D15BC7C", "vsn": "W08D", "project": "SAGE", "city": "Chicago",
         "sensors": [{"hw_model": "BME680", "capabilities": ["temp"]}]},
        {"id": "000048B02D15BC65", "vsn": "X001", "project": "SAGE"},
        {"id": "00004CBA8F000001", "vsn": "V010", "project": "Urban"},
        {"id": "00004CBA8F000002", "vsn": "", "project": "SAGE"},
    ]
}


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def calls():
    return []


@pytest.fixture
def make_source(settings, calls):
    def factory(handler):
        def recording(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording))
        return HttpRecordSource(settings, client=client)

    return factory


# =============================================================================
# TEST 1: NDJSON
# =============================================================================

class TestNdjsonDecoding:

    def test_decodes_valid_lines(self):
        result = decode_records(ndjson(UPTIME, UPTIME))

        assert result.dropped == 0
        assert len(result.records) == 2
        assert result.records[0].vsn == "W08D"

    def test_malformed_line_does_not_fail_batch(self):
        body = ndjson(UPTIME, "{not json", {"name": "x"}, {"timestamp": "bad", "name": "x", "value": 1}, UPTIME)

        result = decode_records(body)

        assert len(result.records) == 2
        assert result.dropped == 3

    def test_empty_body(self):
        result = decode_records("")

        assert result.records == []
        assert result.dropped == 0

    def test_decode_line_raises_decode_error(self):
        with pytest.raises(DecodeError):
            decode_line("[1, 2]")

    def test_nanosecond_timestamps(self):
        ts = parse_timestamp("2024-03-01T11:59:59.123456789Z")

        assert ts == datetime(2024, 3, 1, 11, 59, 59, 123456, tzinfo=timezone.utc)

    def test_string_values_kept(self):
        record = MetricRecord.from_dict({**UPTIME, "value": "12.5"})

        assert record.numeric_value() == 12.5


# =============================================================================
# TEST 2: INVENTARIO
# =============================================================================

class TestFetchInventory:

    @pytest.mark.asyncio
    async def test_skips_ignored_and_invalid_rows(self, make_source, calls):
        source = make_source(lambda request: httpx.Response(200, json=INVENTORY))

        nodes = await source.fetch_inventory()

        assert [n.vsn for n in nodes] == ["W08D", "V010"]
        assert nodes[0].node_id == "000048b02d15bc7c"
        assert nodes[0].sensors[0].hw_model == "BME680"
        assert calls[0].method == "GET"
        assert str(calls[0].url) == "http://beekeeper.test/state"

    @pytest.mark.asyncio
    async def test_project_filter(self, make_source):
        source = make_source(lambda request: httpx.Response(200, json=INVENTORY))

        nodes = await source.fetch_inventory("urban")

        assert [n.vsn for n in nodes] == ["V010"]

    @pytest.mark.asyncio
    async def test_http_error_becomes_transport_error(self, make_source):
        source = make_source(lambda request: httpx.Response(500, json={"error": "boom"}))

        with pytest.raises(TransportError) as exc:
            await source.fetch_inventory()

        assert exc.value.status_code == 500
        assert exc.value.source == "beekeeper"
        assert "boom" in str(exc.value)
        assert source.stats["errors"] == 1

    @pytest.mark.asyncio
    async def test_network_error_becomes_transport_error(self, make_source):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        source = make_source(handler)

        with pytest.raises(TransportError) as exc:
            await source.fetch_inventory()

        assert exc.value.status_code is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[1, 2], "state", {"data": {"vsn": "W08D"}}])
    async def test_unexpected_json_shape_becomes_transport_error(self, make_source, body):
        source = make_source(lambda request: httpx.Response(200, json=body))

        with pytest.raises(TransportError) as exc:
            await source.fetch_inventory()

        assert exc.value.source == "beekeeper"
        assert exc.value.status_code is None

    @pytest.mark.asyncio
    async def test_non_object_rows_are_skipped(self, make_source):
        rows = {"data": ["W08D", None, {"id": "000048b02d15bc7c", "vsn": "W08D"}]}
        source = make_source(lambda request: httpx.Response(200, json=rows))

        nodes = await source.fetch_inventory()

        assert [n.vsn for n in nodes] == ["W08D"]


# =============================================================================
# TEST 3: MÉTRICAS Y ROLLUPS
# =============================================================================

class TestFetchMetrics:

    @pytest.mark.asyncio
    async def test_posts_query_and_counts_dropped(self, make_source, calls):
        source = make_source(lambda request: httpx.Response(200, text=ndjson(UPTIME, "garbage")))

        records = await source.fetch_uptime("-4d")

        assert len(records) == 1
        assert source.stats["dropped_lines"] == 1
        assert calls[0].method == "POST"
        assert str(calls[0].url) == "http://beehive.test/api/v1/query"
        assert json.loads(calls[0].content) == {
            "start": "-4d",
            "tail": 1,
            "filter": {"name": "sys.uptime", "vsn": ".*"},
        }

    @pytest.mark.asyncio
    async def test_sanity_query_filter(self, make_source, calls):
        source = make_source(lambda request: httpx.Response(200, text=""))

        assert await source.fetch_sanity("-12h") == []
        assert json.loads(calls[0].content)["filter"] == {"name": "sys.sanity_status.*"}

    @pytest.mark.asyncio
    async def test_rollup_grouped_by_vsn_and_plugin(self, make_source, calls):
        rows = [
            {"timestamp": "2024-03-01T10:00:00Z", "name": "sys.plugin.records", "value": 3,
             "meta": {"vsn": "W08D", "plugin": "registry.example.org/ns/app-a:1.0"}},
            {"timestamp": "2024-03-01T11:00:00Z", "name": "sys.plugin.records", "value": 4,
             "meta": {"vsn": "W08D", "plugin": "registry.example.org/ns/app-a:1.0"}},
            {"timestamp": "2024-03-01T10:00:00Z", "name": "sys.plugin.records", "value": 1,
             "meta": {"vsn": "V010"}},
        ]
        source = make_source(lambda request: httpx.Response(200, text=ndjson(*rows)))

        rollup = await source.fetch_rollup("-7d", "daily")

        assert list(rollup) == ["W08D"]
        assert len(rollup["W08D"]["registry.example.org/ns/app-a:1.0"]) == 2
        assert json.loads(calls[0].content)["bucket"] == "daily"

    def test_metric_query_omits_unset_params(self):
        assert MetricQuery(start="-1h").to_params() == {"start": "-1h"}

    def test_group_rollup_empty(self):
        assert group_rollup([]) == {}
