# --- auction_flask_app.py ---
import argparse
import io
import logging
import os

from flask import Flask, jsonify, request, send_file, Response
from flask_socketio import SocketIO, emit

from auction_engine import AuctionEngine
from auction_errors import AuctionError, LobbyError
from auction_export import build_summary, export_json, export_excel
from auction_lobby import AuctionLobby
from auction_log import AuctionLogStore
from auction_session import AuctionSession
from auction_setup import load_setup_csv

# Disable werkzeug logs for cleaner terminal
logging.getLogger('werkzeug').setLevel(logging.ERROR)

logger = logging.getLogger(__name__)

PRESENTER_NAMESPACE = '/presenter'
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _rejected(reason, message, status=409, **extra):
    body = {"ok": False, "reason": reason, "message": message}
    body.update(extra)
    return jsonify(body), status


def create_flask_app(session):
    """Auction desk for one operator: JSON routes for actions plus a read-only presenter feed."""
    flask_app = Flask(__name__)
    flask_app.config['SECRET_KEY'] = os.urandom(24)

    socketio = SocketIO(flask_app,
                        async_mode='threading',
                        cors_allowed_origins="*",
                        logger=False,
                        engineio_logger=False)

    def current_summary():
        return session.read(build_summary)

    def emit_full_state():
        socketio.emit('full_state_update', current_summary().to_dict(), namespace=PRESENTER_NAMESPACE)

    previous_on_change = session.on_change

    def on_change(s):
        if previous_on_change is not None:
            previous_on_change(s)
        emit_full_state()

    session.on_change = on_change

    def run(action, *args, **kwargs):
        try:
            return session.call(action, *args, **kwargs), None
        except AuctionError as e:
            return None, (jsonify({"ok": False, "error": str(e)}), 409)

    # --- read routes ---
    @flask_app.route('/')
    def index():
        return "Auction desk. API: /api/auction (state), /api/auction/teams, /api/auction/history, /api/auction/export"

    @flask_app.route('/api/auction')
    def api_auction_state():
        return jsonify(current_summary().to_dict())

    @flask_app.route('/api/auction/teams')
    def api_teams():
        return jsonify(session.read(lambda engine: [v.to_dict() for v in engine.ledger.views()]))

    @flask_app.route('/api/auction/history')
    def api_history():
        group = request.args.get('group')
        if group not in (None, 'player', 'team'):
            return jsonify({"error": f"Unknown group '{group}'. Use 'player' or 'team'."}), 400

        def collect(engine):
            history = engine.state.history
            if group == 'player':
                return {pid: [b.to_dict() for b in bids] for pid, bids in history.by_player().items()}
            if group == 'team':
                return {tid: [b.to_dict() for b in bids] for tid, bids in history.by_team().items()}
            return history.flattened({pid: p.name for pid, p in engine.players_by_id().items()}, engine.team_names())
        return jsonify(session.read(collect))

    @flask_app.route('/api/auction/export')
    def api_export():
        export_format = request.args.get('format', 'json').lower()
        summary = current_summary()
        base_name = "".join(c if c.isalnum() else "_" for c in summary.auction_name) or "auction"
        if export_format == 'json':
            return Response(export_json(summary), mimetype="application/json",
                            headers={"Content-Disposition": f"attachment; filename={base_name}_summary.json"})
        if export_format == 'xlsx':
            return send_file(io.BytesIO(export_excel(summary)), mimetype=XLSX_MIMETYPE,
                             as_attachment=True, download_name=f"{base_name}_summary.xlsx")
        return jsonify({"error": f"Unsupported export format '{export_format}'."}), 400

    # --- operator actions ---
    @flask_app.route('/api/auction/start', methods=['POST'])
    def api_start():
        player, error = run("start")
        if error:
            return error
        return jsonify({"ok": True, "current_player": player.to_dict() if player else None})

    @flask_app.route('/api/auction/bid', methods=['POST'])
    def api_bid():
        data = request.get_json(silent=True) or {}
        team_id, amount = data.get('team_id'), data.get('amount')
        if not team_id or amount is None:
            return jsonify({"ok": False, "error": "team_id and amount are required."}), 400
        try:
            result, error = run("bid", str(team_id), amount, data.get('player_id'))
        except (TypeError, ValueError) as e:
            return jsonify({"ok": False, "error": f"Invalid bid amount: {e}"}), 400
        if error:
            return error
        if not result.ok:
            return _rejected(result.reason.value, result.message, min_next_bid=result.min_next_bid)
        return jsonify(result.to_dict())

    @flask_app.route('/api/auction/skip', methods=['POST'])
    def api_skip():
        data = request.get_json(silent=True) or {}
        lot, error = run("skip", data.get('player_id'))
        if error:
            return error
        return jsonify({"ok": True, "lot": lot.to_dict()})

    @flask_app.route('/api/auction/complete', methods=['POST'])
    def api_complete():
        discarded, error = run("complete")
        if error:
            return error
        return jsonify({"ok": True, "unsold_player_ids": [p.id for p in discarded]})

    # --- lobby ---
    @flask_app.route('/api/lobby')
    def api_lobby():
        lobby = session.engine.lobby
        if lobby is None:
            return jsonify({"error": "This auction has no lobby."}), 404
        return jsonify(lobby.to_dict())

    @flask_app.route('/api/lobby/join', methods=['POST'])
    def api_lobby_join():
        lobby = session.engine.lobby
        if lobby is None:
            return jsonify({"error": "This auction has no lobby."}), 404
        data = request.get_json(silent=True) or {}
        try:
            with session.lock:
                if data.get('role') == 'viewer':
                    lobby.join_as_viewer(data.get('code', ''))
                else:
                    lobby.join_as_captain(data.get('code', ''), data.get('team_id'), data.get('captain_name'))
        except LobbyError as e:
            return jsonify({"ok": False, "error": str(e)}), 403
        emit_full_state()
        return jsonify({"ok": True, "lobby": lobby.to_dict()})

    # --- presenter feed ---
    @socketio.on('connect', namespace=PRESENTER_NAMESPACE)
    def handle_presenter_connect(auth=None):
        logger.info("Presenter client connected: %s", request.sid)
        emit('full_state_update', current_summary().to_dict())

    @socketio.on('request_initial_data', namespace=PRESENTER_NAMESPACE)
    def handle_request_initial_data():
        emit('full_state_update', current_summary().to_dict())

    @socketio.on('disconnect', namespace=PRESENTER_NAMESPACE)
    def handle_presenter_disconnect(*args):
        logger.info("Presenter client disconnected: %s", request.sid)

    return flask_app, socketio


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run an auction desk from a setup CSV or resume one from its .auctionlog.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--setup", metavar="CSV", help="Setup CSV with [CONFIG], [TEAMS_INITIAL] and [PLAYERS_INITIAL].")
    source.add_argument("--resume", metavar="AUCTIONLOG", help="Resume from the latest state in an .auctionlog file.")
    parser.add_argument("--log-dir", default=".", help="Where new .auctionlog files are written.")
    parser.add_argument("--port", type=int, default=5000)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.resume:
        store = AuctionLogStore(args.resume)
        snapshot = store.load()
        if snapshot is None:
            parser.error(f"{args.resume} holds no auction state to resume.")
        engine = AuctionEngine.from_snapshot(snapshot)
        if engine.config.require_captains:
            engine.lobby = AuctionLobby(engine.ledger.team_ids())
    else:
        setup = load_setup_csv(args.setup)
        lobby = AuctionLobby([t["id"] for t in setup.teams]) if setup.config.require_captains else None
        engine = setup.create_engine(lobby=lobby)
        store = AuctionLogStore.for_auction(args.log_dir, setup.auction_name)
    if engine.lobby is not None:
        logger.info("Captain code: %s | Viewer code: %s", engine.lobby.captain_code, engine.lobby.viewer_code)

    session = AuctionSession(engine, store=store)
    flask_app, socketio = create_flask_app(session)
    session.start()
    try:
        socketio.run(flask_app, host='0.0.0.0', port=args.port, debug=False, use_reloader=False,
                     allow_unsafe_werkzeug=True)
    finally:
        session.stop()


if __name__ == "__main__":
    main()
