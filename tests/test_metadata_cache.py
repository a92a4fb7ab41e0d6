"""
Tests for MetadataCache and the metadata list helpers.

Test plan:
- Scenario: wise push with one hidden and one visible entry, expiry 60s
  ahead -> one visible entry, not expired, expired once the clock passes
- Records: missing platform counts as expired, expires_at 0 never
  expires, ingest replaces, clear drops, received_at stamped
- Channel push: metadata_messages_response lands in the cache
- Subscribers: notified in subscription order, unsubscribe stops delivery
- Version poll: disabled at 0, starts inside a loop, pings repeatedly,
  stops on dispose
- dispose: clears records and subscribers, detaches from the channel
- Helpers: filter_visible, sort_by_date_desc (ISO, numeric, epoch
  milliseconds mixed with seconds and ISO, unparseable last, stable),
  select_by_original_index
"""

import asyncio

import pytest

from peerproof.agent.channel import LoopbackChannel
from peerproof.agent.messages import PaymentMetadata
from peerproof.agent.metadata import (
    MetadataCache,
    MetadataRecord,
    filter_visible,
    select_by_original_index,
    sort_by_date_desc,
)

START_MS = 1_700_000_000_000


class FakeClock:
    def __init__(self, now_ms: int = START_MS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


def _make_cache(**kwargs: object) -> tuple[MetadataCache, LoopbackChannel, FakeClock]:
    channel = LoopbackChannel()
    clock = FakeClock()
    cache = MetadataCache(channel, version_poll_s=0, now_ms=clock, **kwargs)  # type: ignore[arg-type]
    return cache, channel, clock


def _entry(index: int, *, hidden: bool = False, date: str | None = None) -> PaymentMetadata:
    return PaymentMetadata(original_index=index, hidden=hidden, amount="1.00", date=date)


# ---------------------------------------------------------------------------
# Scenario
# ---------------------------------------------------------------------------


class TestWiseScenario:
    def test_visible_entry_and_expiry(self) -> None:
        cache, _, clock = _make_cache()
        cache.ingest(
            "wise",
            [_entry(0, hidden=True, date="2024-05-02"), _entry(1, date="2024-05-01")],
            START_MS + 60_000,
        )

        record = cache.get("wise")
        assert record is not None
        visible = sort_by_date_desc(filter_visible(record.entries))
        assert [e.original_index for e in visible] == [1]

        assert cache.is_expired("wise") is False
        clock.now_ms = START_MS + 59_999
        assert cache.is_expired("wise") is False
        clock.now_ms = START_MS + 60_000
        assert cache.is_expired("wise") is True


class TestRecords:
    def test_missing_platform_expired(self) -> None:
        cache, _, _ = _make_cache()
        assert cache.get("venmo") is None
        assert cache.is_expired("venmo") is True

    def test_zero_expiry_never_expires(self) -> None:
        cache, _, clock = _make_cache()
        cache.ingest("wise", [_entry(0)], 0)
        clock.now_ms += 10**9
        assert cache.is_expired("wise") is False

    def test_ingest_replaces(self) -> None:
        cache, _, _ = _make_cache()
        cache.ingest("wise", [_entry(0)], 0)
        cache.ingest("wise", [_entry(5), _entry(6)], 0)
        record = cache.get("wise")
        assert record is not None
        assert [e.original_index for e in record.entries] == [5, 6]

    def test_received_at_stamped(self) -> None:
        cache, _, _ = _make_cache()
        record = cache.ingest("wise", [], 0)
        assert record.received_at == START_MS

    def test_clear(self) -> None:
        cache, _, _ = _make_cache()
        cache.ingest("wise", [_entry(0)], 0)
        cache.clear("wise")
        cache.clear("never-seen")
        assert cache.get("wise") is None

    def test_record_expiry_rule(self) -> None:
        record = MetadataRecord(expires_at=100)
        assert record.is_expired(99) is False
        assert record.is_expired(100) is True


class TestChannelPush:
    def test_push_lands_in_cache(self) -> None:
        cache, channel, _ = _make_cache()
        channel.deliver(
            {
                "type": "metadata_messages_response",
                "data": {
                    "platform": "revolut",
                    "metadata": [{"originalIndex": 3, "date": "2024-01-01"}],
                    "expiresAt": START_MS + 1,
                },
            }
        )
        record = cache.get("revolut")
        assert record is not None
        assert record.entries[0].original_index == 3
        assert record.expires_at == START_MS + 1

    def test_request_metadata_opens_surface(self) -> None:
        cache, channel, _ = _make_cache()
        cache.request_metadata("transfer_wise", "wise")
        assert channel.sent == [{"type": "open_new_tab", "actionType": "transfer_wise", "platform": "wise"}]


class TestSubscribers:
    def test_notified_in_order(self) -> None:
        cache, _, _ = _make_cache()
        seen: list[tuple[str, str]] = []
        cache.subscribe(lambda p, r: seen.append(("first", p)))
        cache.subscribe(lambda p, r: seen.append(("second", p)))
        cache.ingest("wise", [], 0)
        assert seen == [("first", "wise"), ("second", "wise")]

    def test_unsubscribe(self) -> None:
        cache, _, _ = _make_cache()
        seen: list[MetadataRecord] = []
        unsubscribe = cache.subscribe(lambda p, r: seen.append(r))
        cache.ingest("wise", [], 0)
        unsubscribe()
        unsubscribe()
        cache.ingest("wise", [], 0)
        assert len(seen) == 1


class TestVersionPoll:
    def test_disabled_at_zero(self) -> None:
        cache, channel, _ = _make_cache()
        cache.ensure_version_poll()
        assert channel.sent == []

    def test_no_loop_defers_poll(self) -> None:
        channel = LoopbackChannel()
        MetadataCache(channel, version_poll_s=5.0)
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_pings_until_disposed(self) -> None:
        channel = LoopbackChannel()
        cache = MetadataCache(channel, version_poll_s=0.01)
        await asyncio.sleep(0.035)
        cache.dispose()
        pings = len([m for m in channel.sent if m["type"] == "fetch_extension_version"])
        assert pings >= 2
        await asyncio.sleep(0.03)
        assert len([m for m in channel.sent if m["type"] == "fetch_extension_version"]) == pings

    @pytest.mark.asyncio
    async def test_poll_survives_closed_channel(self) -> None:
        channel = LoopbackChannel()
        cache = MetadataCache(channel, version_poll_s=0.01)
        channel.close()
        await asyncio.sleep(0.03)
        cache.dispose()
        assert len(channel.sent) == 1


class TestDispose:
    def test_clears_everything(self) -> None:
        cache, channel, _ = _make_cache()
        seen: list[str] = []
        cache.subscribe(lambda p, r: seen.append(p))
        cache.ingest("wise", [_entry(0)], 0)
        cache.dispose()

        assert cache.get("wise") is None
        assert channel.listener_count == 0
        channel.deliver({"type": "metadata_messages_response", "data": {"platform": "wise", "metadata": []}})
        assert seen == ["wise"]
        assert cache.get("wise") is None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_filter_visible(self) -> None:
        entries = [_entry(0, hidden=True), _entry(1), _entry(2, hidden=True)]
        assert [e.original_index for e in filter_visible(entries)] == [1]

    def test_sort_iso_dates_desc(self) -> None:
        entries = [
            _entry(0, date="2024-01-01T00:00:00Z"),
            _entry(1, date="2024-03-01T00:00:00Z"),
            _entry(2, date="2024-02-01"),
        ]
        assert [e.original_index for e in sort_by_date_desc(entries)] == [1, 2, 0]

    def test_sort_mixes_iso_seconds_and_milliseconds(self) -> None:
        entries = [
            _entry(0, date="2024-05-02T00:00:00Z"),
            _entry(1, date="1714521600000"),
            _entry(2, date="1714694400"),
        ]
        assert [e.original_index for e in sort_by_date_desc(entries)] == [2, 0, 1]

    def test_sort_numeric_dates(self) -> None:
        entries = [_entry(0, date="100"), _entry(1, date="300"), _entry(2, date="200")]
        assert [e.original_index for e in sort_by_date_desc(entries)] == [1, 2, 0]

    def test_unparseable_dates_sort_last(self) -> None:
        entries = [_entry(0, date="yesterday"), _entry(1, date="2024-01-01"), _entry(2, date=None)]
        ordered = [e.original_index for e in sort_by_date_desc(entries)]
        assert ordered[0] == 1
        assert set(ordered[1:]) == {0, 2}

    def test_sort_stable_for_equal_dates(self) -> None:
        entries = [_entry(0, date="2024-01-01"), _entry(1, date="2024-01-01")]
        assert [e.original_index for e in sort_by_date_desc(entries)] == [0, 1]

    def test_sort_does_not_mutate(self) -> None:
        entries = [_entry(0, date="1"), _entry(1, date="2")]
        sort_by_date_desc(entries)
        assert [e.original_index for e in entries] == [0, 1]

    def test_select_by_original_index(self) -> None:
        entries = [_entry(4), _entry(9)]
        selected = select_by_original_index(entries, 9)
        assert selected is not None and selected.original_index == 9
        assert select_by_original_index(entries, 1) is None
