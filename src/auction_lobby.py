# --- auction_lobby.py ---
import logging
import secrets

from auction_errors import LobbyError

logger = logging.getLogger(__name__)


def _six_digit_code():
    return f"{secrets.randbelow(1_000_000):06d}"


class AuctionLobby:
    """Who is in the room. One captain code for team captains, one viewer code for everyone else.

    This only tracks joins locally; it is what ``require_captains`` consults before
    starting the auction and before accepting a team's bid.
    """

    def __init__(self, team_ids, captain_code=None, viewer_code=None):
        self.team_ids = list(team_ids)
        self.captain_code = captain_code or _six_digit_code()
        self.viewer_code = viewer_code or _six_digit_code()
        while self.viewer_code == self.captain_code:
            self.viewer_code = _six_digit_code()
        self.captains = {}  # team_id -> captain display name
        self.viewer_count = 0

    def regenerate_codes(self):
        """New codes for both roles; already-joined captains stay joined."""
        self.captain_code = _six_digit_code()
        self.viewer_code = _six_digit_code()
        while self.viewer_code == self.captain_code:
            self.viewer_code = _six_digit_code()
        logger.info("Lobby codes regenerated")

    def join_as_captain(self, code, team_id, captain_name=None):
        if not secrets.compare_digest(str(code), self.captain_code):
            raise LobbyError("Invalid captain code.")
        if team_id not in self.team_ids:
            raise LobbyError(f"Team '{team_id}' is not part of this auction.")
        if team_id in self.captains:
            raise LobbyError(f"Team '{team_id}' already has a captain connected.")
        self.captains[team_id] = captain_name or team_id
        logger.info("Captain joined for %s (%d/%d)", team_id, len(self.captains), len(self.team_ids))
        return team_id

    def join_as_viewer(self, code):
        if not secrets.compare_digest(str(code), self.viewer_code):
            raise LobbyError("Invalid viewer code.")
        self.viewer_count += 1
        return self.viewer_count

    def leave(self, team_id):
        if self.captains.pop(team_id, None) is not None:
            logger.info("Captain left for %s", team_id)

    def connected_team_ids(self):
        return set(self.captains)

    def all_captains_joined(self):
        return all(tid in self.captains for tid in self.team_ids)

    def to_dict(self, include_codes=False):
        data = {
            "teams": [{"team_id": tid, "connected": tid in self.captains, "captain": self.captains.get(tid)}
                      for tid in self.team_ids],
            "viewer_count": self.viewer_count,
            "all_captains_joined": self.all_captains_joined(),
        }
        if include_codes:
            data["captain_code"] = self.captain_code
            data["viewer_code"] = self.viewer_code
        return data
