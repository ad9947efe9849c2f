"""
Auction desk HTTP and presenter feed tests
==========================================
"""

import io

import pytest
from openpyxl import load_workbook

from auction_flask_app import PRESENTER_NAMESPACE, XLSX_MIMETYPE, create_flask_app
from auction_lobby import AuctionLobby
from auction_session import AuctionSession


@pytest.fixture
def desk(engine):
    flask_app, socketio = create_flask_app(AuctionSession(engine))
    flask_app.config["TESTING"] = True
    return flask_app, socketio


@pytest.fixture
def client(desk):
    return desk[0].test_client()


def _bid(client, team_id, amount, **extra):
    return client.post("/api/auction/bid", json=dict(team_id=team_id, amount=amount, **extra))


class TestReadRoutes:
    def test_index(self, client):
        assert client.get("/").status_code == 200

    def test_state_before_start(self, client):
        data = client.get("/api/auction").get_json()
        assert data["status"] == "waiting"
        assert data["current_player"] is None
        assert len(data["remaining_players"]) == 4

    def test_teams(self, client):
        teams = client.get("/api/auction/teams").get_json()
        assert [t["id"] for t in teams] == ["T1", "T2"]
        assert teams[0]["remaining_budget"] == 1000

    def test_history_groups(self, client):
        client.post("/api/auction/start")
        _bid(client, "T1", 150)
        _bid(client, "T2", 160)
        by_team = client.get("/api/auction/history?group=team").get_json()
        assert [b["amount"] for b in by_team["T2"]] == [160]
        by_player = client.get("/api/auction/history?group=player").get_json()
        assert [b["team_id"] for b in by_player["P1"]] == ["T1", "T2"]
        assert len(client.get("/api/auction/history").get_json()) == 2
        assert client.get("/api/auction/history?group=season").status_code == 400

    def test_export_json(self, client):
        response = client.get("/api/auction/export?format=json")
        assert response.status_code == 200
        assert response.mimetype == "application/json"
        assert "Test_League_summary.json" in response.headers["Content-Disposition"]

    def test_export_xlsx(self, client):
        response = client.get("/api/auction/export?format=xlsx")
        assert response.status_code == 200
        assert response.mimetype == XLSX_MIMETYPE
        wb = load_workbook(io.BytesIO(response.data))
        assert wb.sheetnames[0] == "Summary"

    def test_export_unknown_format(self, client):
        assert client.get("/api/auction/export?format=pdf").status_code == 400


class TestOperatorRoutes:
    def test_start_and_bid(self, client):
        response = client.post("/api/auction/start")
        assert response.get_json()["current_player"]["id"] == "P1"
        accepted = _bid(client, "T1", 150)
        assert accepted.status_code == 200
        assert accepted.get_json()["bid"]["amount"] == 150
        state = client.get("/api/auction").get_json()
        assert state["current_bid_amount"] == 150
        assert state["current_bidder_team_id"] == "T1"
        assert state["bidding_display"]["status_text"] == "₹150 by TEAM ALPHA"
        assert [p["id"] for p in state["up_next"]] == ["P2", "P3", "P4"]

    def test_start_twice_conflicts(self, client):
        client.post("/api/auction/start")
        response = client.post("/api/auction/start")
        assert response.status_code == 409
        assert response.get_json()["ok"] is False

    def test_low_bid_rejected(self, client):
        client.post("/api/auction/start")
        _bid(client, "T1", 150)
        response = _bid(client, "T2", 151)
        assert response.status_code == 409
        body = response.get_json()
        assert body["reason"] == "BidTooLow"
        assert body["min_next_bid"] == 158

    def test_bid_for_other_player_rejected(self, client):
        client.post("/api/auction/start")
        response = _bid(client, "T1", 150, player_id="P2")
        assert response.get_json()["reason"] == "NotCurrentPlayer"

    @pytest.mark.parametrize("payload", [{}, {"team_id": "T1"}, {"amount": 150}])
    def test_bid_missing_fields(self, client, payload):
        client.post("/api/auction/start")
        assert client.post("/api/auction/bid", json=payload).status_code == 400

    def test_bid_bad_amount(self, client):
        client.post("/api/auction/start")
        assert _bid(client, "T1", "lots").status_code == 400
        assert _bid(client, "T1", 150.5).status_code == 400
        assert "must be a number" in _bid(client, "T1", "lots").get_json()["error"]

    def test_bid_amount_as_numeric_string(self, client):
        client.post("/api/auction/start")
        response = _bid(client, "T1", "150")
        assert response.status_code == 200
        assert response.get_json()["bid"]["amount"] == 150

    def test_skip_and_complete(self, client):
        client.post("/api/auction/start")
        lot = client.post("/api/auction/skip", json={"player_id": "P1"}).get_json()["lot"]
        assert lot["outcome"] == "skipped"
        assert lot["requeued"] is True
        done = client.post("/api/auction/complete").get_json()
        assert sorted(done["unsold_player_ids"]) == ["P1", "P2", "P3", "P4"]
        assert client.get("/api/auction").get_json()["status"] == "completed"
        assert _bid(client, "T1", 150).get_json()["reason"] == "AuctionNotActive"


class TestLobbyRoutes:
    def test_no_lobby(self, client):
        assert client.get("/api/lobby").status_code == 404
        assert client.post("/api/lobby/join", json={"code": "123456"}).status_code == 404

    def test_captains_join_then_start(self, make_engine):
        lobby = AuctionLobby(["T1", "T2"], captain_code="123456", viewer_code="654321")
        flask_app, _ = create_flask_app(AuctionSession(make_engine(lobby=lobby, require_captains=True)))
        client = flask_app.test_client()
        assert client.post("/api/auction/start").status_code == 409
        bad = client.post("/api/lobby/join", json={"code": "000000", "team_id": "T1"})
        assert bad.status_code == 403
        for team_id in ("T1", "T2"):
            joined = client.post("/api/lobby/join", json={"code": "123456", "team_id": team_id})
            assert joined.status_code == 200
        viewer = client.post("/api/lobby/join", json={"role": "viewer", "code": "654321"})
        assert viewer.get_json()["lobby"]["viewer_count"] == 1
        assert client.get("/api/lobby").get_json()["all_captains_joined"] is True
        assert "captain_code" not in client.get("/api/lobby").get_json()
        assert client.post("/api/auction/start").status_code == 200


class TestPresenterFeed:
    def test_state_on_connect(self, desk):
        flask_app, socketio = desk
        presenter = socketio.test_client(flask_app, namespace=PRESENTER_NAMESPACE)
        received = presenter.get_received(PRESENTER_NAMESPACE)
        assert received[0]["name"] == "full_state_update"
        assert received[0]["args"][0]["status"] == "waiting"
        presenter.disconnect(namespace=PRESENTER_NAMESPACE)

    def test_state_pushed_after_bid(self, desk):
        flask_app, socketio = desk
        presenter = socketio.test_client(flask_app, namespace=PRESENTER_NAMESPACE)
        presenter.get_received(PRESENTER_NAMESPACE)
        client = flask_app.test_client()
        client.post("/api/auction/start")
        _bid(client, "T2", 150)
        updates = [m["args"][0] for m in presenter.get_received(PRESENTER_NAMESPACE)
                   if m["name"] == "full_state_update"]
        assert updates[-1]["current_bidder_team_id"] == "T2"
        assert updates[-1]["current_bid_amount"] == 150
        presenter.disconnect(namespace=PRESENTER_NAMESPACE)

    def test_request_initial_data(self, desk):
        flask_app, socketio = desk
        presenter = socketio.test_client(flask_app, namespace=PRESENTER_NAMESPACE)
        presenter.get_received(PRESENTER_NAMESPACE)
        presenter.emit("request_initial_data", namespace=PRESENTER_NAMESPACE)
        received = presenter.get_received(PRESENTER_NAMESPACE)
        assert received[-1]["name"] == "full_state_update"
        presenter.disconnect(namespace=PRESENTER_NAMESPACE)
