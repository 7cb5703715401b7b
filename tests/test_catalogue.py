import unittest

from soccerbet.catalogue import get_scheduled_matches, load_catalog
from soccerbet.errors import TransportError
from tests.fakes import FakeResponse, FakeSession

SPORTS = [
    {"name": "Fudbal", "sportTypeCode": "S", "active": True, "activeInLive": True, "orderNumber": 1},
    {"name": "Tenis", "sportTypeCode": "T", "active": True, "orderNumber": 3},
    {"name": "broken"},
]

OPTIONS = {
    "systemTime": "2024-05-01T10:00:00",
    "betMap": {"1": {"code": 1, "caption": "Konačan ishod", "sport": "S"}, "x": {"caption": "no code"}},
    "betPickMap": {
        "1_S": {"label": "Home win", "caption": "1", "tipTypeCode": 1, "betCode": 1},
        "2_S": {"label": "no tip"},
    },
    "betPickGroupMap": {"10": {"id": 10, "name": "Final result", "sport": "S", "tipTypes": [1, 2, 3]}},
}

SCHEDULED = {
    "esMatches": [
        {
            "id": 77, "home": "Partizan", "away": "Zvezda", "sport": "S", "kickOffTime": 1714560000000,
            "leagueName": "Superliga", "matchCode": 1001,
            "betMap": {"1": {"NULL": {"bpc": 11, "tt": 1, "ov": 1.9, "bc": 1, "s": "ACTIVE"}}},
        },
        {"home": "no id"},
    ]
}


class CatalogueTests(unittest.TestCase):
    def test_load_catalog(self) -> None:
        session = FakeSession({
            "/translate/sr/sports": FakeResponse(json_data=SPORTS),
            "/offer/sr/ttg_lang": FakeResponse(json_data=OPTIONS),
        })
        catalog = load_catalog(session=session)
        self.assertEqual([s.code for s in catalog.sports], ["S", "T"])
        self.assertEqual(list(catalog.bet_types), ["1"])
        self.assertEqual(list(catalog.picks), ["1_S"])
        self.assertEqual(catalog.groups["10"].tip_types, (1, 2, 3))
        self.assertEqual(catalog.system_time, "2024-05-01T10:00:00")
        self.assertIn("desktopVersion", session.calls[0]["params"])

    def test_catalog_http_failure(self) -> None:
        session = FakeSession({"/translate/sr/sports": FakeResponse(status_code=500, json_data=[])})
        with self.assertRaises(TransportError):
            load_catalog(session=session)

    def test_catalog_wrong_shape(self) -> None:
        session = FakeSession({"/translate/sr/sports": FakeResponse(json_data={"not": "a list"})})
        with self.assertRaises(TransportError):
            load_catalog(session=session)

    def test_scheduled_matches(self) -> None:
        session = FakeSession({"/sport/S/mob": FakeResponse(json_data=SCHEDULED)})
        matches = get_scheduled_matches("S", session=session)
        self.assertEqual([m.id for m in matches], [77])
        pick = matches[0].bet_map["1"]["NULL"]
        self.assertEqual(pick.odds_value, 1.9)
        self.assertEqual(pick.pick_code, 11)
        self.assertEqual(session.calls[0]["params"]["annex"], 0)
        self.assertEqual(session.calls[0]["params"]["locale"], "sr")


if __name__ == "__main__":
    unittest.main()
