import unittest

from offer.channel import LivePatch, PatchChannel
from offer.models import MatchHeader, OddsQuote, Outcome, decode_header_patch
from offer.state import LiveStateStore


def _store() -> LiveStateStore:
    store = LiveStateStore()
    store.load(
        [MatchHeader(id=1, home_team="Partizan", away_team="Zvezda", live_status="RUNNING", sport_code="S")],
        [OddsQuote(id=100, match_id=1, bet_code=1, outcomes={"1": Outcome(1.85, 11)})],
        watermark=500,
    )
    return store


class LiveStateStoreTests(unittest.TestCase):
    def test_partial_update_keeps_other_fields(self) -> None:
        store = _store()
        store.apply_header_patch([{"id": 1, "ls": "HT"}])
        h = store.snapshot().header(1)
        self.assertEqual(h.live_status, "HT")
        self.assertEqual(h.home_team, "Partizan")
        self.assertEqual(h.sport_code, "S")

    def test_merge_is_idempotent(self) -> None:
        store = _store()
        patch = [{"id": 1, "ls": "FT", "ba": False}, {"id": 2, "h": "New", "s": "S"}]
        first = store.apply_header_patch(patch)
        second = store.apply_header_patch(patch)
        self.assertEqual(dict(first.headers), dict(second.headers))

    def test_ids_stay_unique(self) -> None:
        store = _store()
        store.apply_odds_patch([{"id": 100, "st": "BLOCKED"}, {"id": 100, "d": True}, {"id": 101, "mId": 1}])
        snap = store.snapshot()
        self.assertEqual(sorted(snap.odds), [100, 101])
        q = snap.odds[100]
        self.assertEqual(q.status, "BLOCKED")
        self.assertTrue(q.disabled)
        self.assertEqual(q.outcomes["1"].value, 1.85)

    def test_outcome_map_is_replaced_as_a_whole(self) -> None:
        store = _store()
        store.apply_odds_patch([{"id": 100, "om": {"2": {"ov": 3.1, "bpc": 12}}}])
        self.assertEqual(list(store.snapshot().odds[100].outcomes), ["2"])

    def test_malformed_records_are_skipped(self) -> None:
        store = _store()
        before = store.snapshot()
        after = store.apply_header_patch([{"ls": "HT"}, "junk", {"id": "x"}])
        self.assertIs(before, after)

    def test_readers_keep_their_snapshot(self) -> None:
        store = _store()
        old = store.snapshot()
        store.apply_header_patch([{"id": 1, "ls": "HT"}])
        self.assertEqual(old.header(1).live_status, "RUNNING")
        self.assertEqual(store.snapshot().header(1).live_status, "HT")
        self.assertEqual(store.watermark, 500)

    def test_clear(self) -> None:
        store = _store()
        store.clear()
        snap = store.snapshot()
        self.assertEqual(len(snap.headers), 0)
        self.assertIsNone(snap.watermark)

    def test_odds_for_match(self) -> None:
        store = _store()
        store.apply_odds_patch([{"id": 200, "mId": 2}])
        self.assertEqual([q.id for q in store.snapshot().odds_for_match(1)], [100])

    def test_string_ids_are_coerced(self) -> None:
        self.assertEqual(decode_header_patch({"id": "7", "ls": "HT"}), (7, {"live_status": "HT"}))

    def test_non_numeric_digit_strings_are_rejected(self) -> None:
        self.assertIsNone(decode_header_patch({"id": 2, "lid": "--7"}))
        self.assertIsNone(decode_header_patch({"id": "²"}))


class PatchChannelTests(unittest.TestCase):
    def test_drop_oldest_when_full(self) -> None:
        ch = PatchChannel(maxsize=2)
        for i in range(3):
            ch.publish(LivePatch(headers=(MatchHeader(id=i),)))
        self.assertEqual(ch.dropped, 1)
        self.assertEqual(len(ch), 2)
        self.assertEqual(ch.get(0).headers[0].id, 1)
        self.assertEqual(ch.get(0).headers[0].id, 2)

    def test_get_times_out(self) -> None:
        self.assertIsNone(PatchChannel().get(0.01))

    def test_close_drains_then_stops(self) -> None:
        ch = PatchChannel()
        ch.publish(LivePatch())
        ch.close()
        self.assertFalse(ch.publish(LivePatch()))
        self.assertIsNotNone(ch.get(0))
        self.assertIsNone(ch.get())

    def test_reopen_after_close(self) -> None:
        ch = PatchChannel()
        ch.close()
        ch.reopen()
        self.assertFalse(ch.closed)
        self.assertTrue(ch.publish(LivePatch()))
        self.assertIsNotNone(ch.get(0))

    def test_patch_to_dict(self) -> None:
        d = LivePatch(headers=(MatchHeader(id=1),), received_at=1.5).to_dict()
        self.assertEqual(d["timestamp"], 1500)
        self.assertEqual(d["headers"][0]["id"], 1)
        self.assertEqual(d["odds"], [])


if __name__ == "__main__":
    unittest.main()
