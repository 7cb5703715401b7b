import json
import unittest

from fastapi.testclient import TestClient

from app import create_app
from offer.channel import LivePatch
from offer.models import MatchHeader, OddsQuote, Outcome
from soccerbet.errors import TransportError
from tests.test_orchestrator import make_orchestrator


class AppTests(unittest.TestCase):
    def setUp(self) -> None:
        self.orch = make_orchestrator()
        self.client = TestClient(create_app(orchestrator=self.orch))

    def test_health(self) -> None:
        r = self.client.get("/health")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.text, "ok")

    def test_start_rejects_bad_input(self) -> None:
        r = self.client.post("/api/start", json={"mode": "live", "sport": "golf"})
        self.assertEqual(r.status_code, 400)
        body = r.json()
        self.assertFalse(body["success"])
        self.assertIn("golf", body["message"])
        self.assertIsNone(body["data"])

    def test_start_failure_is_500(self) -> None:
        def broken(**kw):
            raise TransportError("catalog down")

        self.orch._load_catalog = broken
        r = self.client.post("/api/start", json={"mode": "live", "sport": "football"})
        self.assertEqual(r.status_code, 500)
        self.assertIn("catalog down", r.json()["message"])

    def test_live_flow(self) -> None:
        r = self.client.post("/api/start", json={"mode": "live", "sport": "football", "interval": "1min"})
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.json()["success"])
        self.assertEqual(r.json()["data"]["sport_code"], "S")

        data = self.client.get("/api/live-data").json()["data"]
        self.assertEqual(len(data["matches"]), 1)
        self.assertEqual(data["matches"][0]["bets"][0]["odds"][0]["description"], "Home win")
        self.assertEqual(data["stats"]["total_bets"], 1)
        self.assertTrue(data["streaming"])

        matches = self.client.get("/api/live-matches").json()["data"]
        self.assertEqual(matches["matches"][0]["status"], "Live")
        self.assertEqual(matches["matches"][0]["sport"], "Football")
        self.assertTrue(matches["matches"][0]["is_live"])

        bets = self.client.get("/api/live-bets/1").json()["data"]
        self.assertEqual(bets["match"]["home_team"], "Partizan")
        self.assertEqual(bets["groups"][0]["group"]["id"], 10)
        self.assertEqual(self.client.get("/api/live-bets/404").json()["data"]["bets"], [])

        summary = self.client.get("/api/data").json()["data"]
        self.assertEqual(summary["session"]["mode"], "live")
        self.assertEqual(sorted(summary["catalog"]["bet_types"]), ["1", "7"])

        self.assertEqual(self.client.get("/api/pregame-data").status_code, 400)

    def test_pregame_flow(self) -> None:
        self.client.post("/api/start", json={"mode": "pre-game", "sport": "football"})
        body = self.client.get("/api/pregame-data").json()
        self.assertTrue(body["success"])
        self.assertEqual([m["id"] for m in body["data"]["matches"]], [5])
        self.assertEqual(self.client.get("/api/live-data").status_code, 400)

    def test_stop_clears_session(self) -> None:
        self.client.post("/api/start", json={"mode": "live", "sport": "football"})
        r = self.client.post("/api/stop")
        self.assertTrue(r.json()["success"])
        self.assertEqual(self.client.get("/api/data").status_code, 400)
        # stopping twice is fine
        self.assertEqual(self.client.post("/api/stop").status_code, 200)


class StreamTests(unittest.TestCase):
    def test_patches_reach_filtered_subscribers(self) -> None:
        orch = make_orchestrator()
        app = create_app(orchestrator=orch)
        with TestClient(app) as client:
            client.post("/api/start", json={"mode": "live", "sport": "football"})
            with client.websocket_connect("/stream") as ws:
                ws.send_text(json.dumps({"quiet": False, "matches": [1]}))
                ack = ws.receive_json()
                self.assertEqual(ack["control"], "filters_updated")
                self.assertEqual(ack["filters"]["matches"], ["1"])

                orch.channel.publish(LivePatch(
                    headers=(MatchHeader(id=1, live_status="HT"), MatchHeader(id=3, live_status="HT")),
                    odds=(OddsQuote(id=100, match_id=1, outcomes={"1": Outcome(2.0, 11)}),),
                ))
                msg = ws.receive_json()
                self.assertEqual(msg["type"], "patch")
                self.assertEqual([h["id"] for h in msg["payload"]["headers"]], [1])
                self.assertEqual(msg["payload"]["odds"][0]["outcomes"]["1"]["value"], 2.0)

    def test_second_lifespan_still_streams(self) -> None:
        orch = make_orchestrator()
        app = create_app(orchestrator=orch)
        with TestClient(app):
            pass
        self.assertTrue(orch.channel.closed)

        with TestClient(app) as client:
            self.assertFalse(orch.channel.closed)
            client.post("/api/start", json={"mode": "live", "sport": "football"})
            with client.websocket_connect("/stream") as ws:
                ws.send_text(json.dumps({"quiet": False, "matches": [1]}))
                self.assertEqual(ws.receive_json()["control"], "filters_updated")
                self.assertTrue(orch.channel.publish(LivePatch(headers=(MatchHeader(id=1, live_status="FT"),))))
                msg = ws.receive_json()
                self.assertEqual(msg["type"], "patch")
                self.assertEqual(msg["payload"]["headers"][0]["live_status"], "FT")


if __name__ == "__main__":
    unittest.main()
