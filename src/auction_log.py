# --- auction_log.py ---
import csv
import json
import logging
import os
from collections import namedtuple
from datetime import datetime

from auction_errors import LogFileError

logger = logging.getLogger(__name__)

LOG_SECTION_CONFIG = "[CONFIG]"
LOG_SECTION_TEAMS_INITIAL = "[TEAMS_INITIAL]"
LOG_SECTION_PLAYERS_INITIAL = "[PLAYERS_INITIAL]"
LOG_SECTION_AUCTION_STATES = "[AUCTION_STATES]"
LOG_KEY_AUCTION_NAME = "AuctionName"
LOG_FILE_EXTENSION = ".auctionlog"
CSV_DELIMITER = ','

LogEntry = namedtuple("LogEntry", ["serial_no", "timestamp", "action", "snapshot", "comment"])


class MemorySnapshotStore:
    """Keeps every saved snapshot in order. For tests and embedding."""

    def __init__(self):
        self.saved = []

    def save(self, snapshot, action, comment=""):
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        self.saved.append(LogEntry(len(self.saved) + 1, timestamp, action, json.loads(json.dumps(snapshot)), comment))

    def load(self):
        return self.saved[-1].snapshot if self.saved else None

    def entries(self):
        return list(self.saved)


class AuctionLogStore:
    """Append-only ``.auctionlog`` file.

    The first save writes the header sections from the snapshot's initial teams and
    players; every save appends one ``[AUCTION_STATES]`` row holding the full JSON state.
    """

    def __init__(self, log_filepath):
        if not log_filepath.endswith(LOG_FILE_EXTENSION):
            log_filepath += LOG_FILE_EXTENSION
        self.log_filepath = os.path.abspath(log_filepath)

    @classmethod
    def for_auction(cls, directory, auction_name):
        safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in auction_name).strip("_") or "auction"
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return cls(os.path.join(directory, f"{safe_name}_{stamp}{LOG_FILE_EXTENSION}"))

    def exists(self):
        return os.path.exists(self.log_filepath)

    def _write_header(self, snapshot):
        now = datetime.now()
        try:
            with open(self.log_filepath, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                f.write(f"{LOG_SECTION_CONFIG}\n")
                writer.writerow([f"#{LOG_KEY_AUCTION_NAME}", snapshot.get("auction_name", "")])
                writer.writerow(["#Date", now.strftime('%Y-%m-%d')])
                writer.writerow(["#Time", now.strftime('%H:%M:%S')])
                writer.writerow(["#TotalInitialPlayers", len(snapshot.get("players", []))])
                writer.writerow(["#AuctionConfig", json.dumps(snapshot.get("config", {}))])

                f.write(f"\n{LOG_SECTION_TEAMS_INITIAL}\n")
                writer.writerow(["#TeamName", "TeamID", "TotalBudget", "SlotCapacity"])
                for team in snapshot.get("teams", {}).values():
                    writer.writerow([team["name"], team["id"], team["total_budget"], team["slot_capacity"]])

                f.write(f"\n{LOG_SECTION_PLAYERS_INITIAL}\n")
                writer.writerow(["#PlayerName", "PlayerID", "Role", "BasePrice"])
                for player in snapshot.get("players", []):
                    writer.writerow([player["name"], player["id"], player["role"], player["base_price"]])

                f.write(f"\n{LOG_SECTION_AUCTION_STATES}\n")
                writer.writerow(["#Timestamp", "ActionDescription", "JSONStateSnapshot", "Comment"])
        except IOError as e:
            raise LogFileError(f"Error creating initial log {self.log_filepath}: {e}")
        logger.info("Created auction log %s", self.log_filepath)

    def save(self, snapshot, action, comment=""):
        if not self.exists():
            self._write_header(snapshot)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        try:
            with open(self.log_filepath, 'a', newline='', encoding='utf-8') as f:
                csv.writer(f).writerow([timestamp, action, json.dumps(snapshot), comment])
        except IOError as e:
            raise LogFileError(f"Failed to write state snapshot to {self.log_filepath}: {e}")

    def read_config(self):
        """The ``#Key,Value`` pairs of the ``[CONFIG]`` section."""
        config = {}
        for section, row_num, row in self._rows():
            if section == LOG_SECTION_CONFIG and row[0].startswith('#') and len(row) >= 2:
                config[row[0][1:].strip()] = row[1].strip()
        return config

    def entries(self):
        entries = []
        for section, row_num, row in self._rows():
            if section != LOG_SECTION_AUCTION_STATES or row[0].startswith('#'):
                continue
            if len(row) < 3:
                logger.warning("LogParse (L%d): Auction state row too short: %s", row_num, row)
                continue
            try:
                snapshot = json.loads(row[2])
            except json.JSONDecodeError as e:
                logger.warning("LogParse (L%d): Bad JSON state: %s", row_num, e)
                continue
            entries.append(LogEntry(len(entries) + 1, row[0], row[1], snapshot, row[3] if len(row) > 3 else ""))
        return entries

    def load(self):
        """Latest snapshot in the file, or None when no state has been logged yet."""
        if not self.exists():
            raise LogFileError(f"Log file not found: {self.log_filepath}")
        entries = self.entries()
        if not entries:
            return None
        logger.info("Resuming from %s (%d states)", self.log_filepath, len(entries))
        return entries[-1].snapshot

    def _rows(self):
        try:
            with open(self.log_filepath, 'r', newline='', encoding='utf-8') as f:
                section = None
                for row_num, row in enumerate(csv.reader(f), start=1):
                    if not row or not row[0].strip():
                        continue
                    first_cell = row[0].strip()
                    if first_cell.startswith('[') and first_cell.endswith(']'):
                        section = first_cell
                        continue
                    yield section, row_num, row
        except FileNotFoundError:
            raise LogFileError(f"Log file not found: {self.log_filepath}")
        except IOError as e:
            raise LogFileError(f"IOError reading log file {self.log_filepath}: {e}")
