"""Showdown websocket client: session upkeep, room discovery, and line fan-out."""

import json
import logging
import random
import threading

import requests
import websocket

from canary.ingest import RawLine, TransportError

logger = logging.getLogger(__name__)


def split_frame(frame: str) -> tuple[str, list[str]]:
    """Split a websocket frame into its room id and protocol lines.

    A frame starting with ``>roomid`` belongs to that room; any other frame
    belongs to the global room ``""``. Empty lines are dropped.
    """
    lines = frame.split("\n")
    room = ""
    if lines and lines[0].startswith(">"):
        room = lines[0][1:].strip()
        lines = lines[1:]
    return room, [line for line in lines if line]


class ShowdownClient:
    """Keeps one Showdown session alive and emits every line it receives.

    Each received line is handed to ``emit`` as a :class:`RawLine`; frames
    that cannot be decoded become a :class:`TransportError`. Besides that the
    client logs in, joins chat rooms and live battles, saves replays of
    finished battles, and tracks which rooms it is in.
    """

    def __init__(self, settings: dict, emit, shutdown_event: threading.Event,
                 connection_factory=None, http=None):
        self._settings = settings
        self._emit = emit
        self._shutdown = shutdown_event
        self._connection_factory = connection_factory or self._create_connection
        self._http = http or requests.Session()
        self._conn = None
        self._send_lock = threading.Lock()
        self._rooms_lock = threading.Lock()
        self._rooms: set[str] = set()
        self._seen_chat = False
        self._username = settings.get("username", "")

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def username(self) -> str:
        return self._username

    def get_rooms(self) -> list[str]:
        with self._rooms_lock:
            return sorted(self._rooms)

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    def _create_connection(self):
        return websocket.create_connection(
            self._settings["server_url"],
            timeout=self._settings.get("connect_timeout_seconds", 10),
        )

    def connect(self) -> bool:
        """Open the websocket. Returns True on success."""
        try:
            conn = self._connection_factory()
        except (websocket.WebSocketException, OSError) as e:
            logger.warning("Failed to connect to %s: %s", self._settings["server_url"], e)
            return False
        conn.settimeout(1.0)
        self._conn = conn
        self._seen_chat = False
        with self._rooms_lock:
            self._rooms.clear()
        logger.info("Connected to %s", self._settings["server_url"])
        return True

    def connect_with_backoff(self, max_attempts: int = 0) -> bool:
        """Retry connection with exponential backoff and jitter.

        Args:
            max_attempts: Max number of attempts (0 = unlimited until shutdown).
        """
        base_delay = 1.0
        max_delay = float(self._settings.get("max_backoff_seconds", 60))
        attempt = 0

        while not self._shutdown.is_set():
            attempt += 1
            if self.connect():
                return True

            if max_attempts > 0 and attempt >= max_attempts:
                logger.error("Exhausted %d connection attempts", max_attempts)
                return False

            delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
            total_delay = delay + random.uniform(0, delay * 0.3)
            logger.info("Retrying in %.1fs (attempt %d)...", total_delay, attempt)
            self._shutdown.wait(total_delay)

        return False

    def close(self):
        conn, self._conn = self._conn, None
        if conn is not None:
            try:
                conn.close()
            except (websocket.WebSocketException, OSError):
                pass

    def send(self, message: str) -> bool:
        """Send one protocol command. Returns True on success."""
        conn = self._conn
        if conn is None:
            return False
        try:
            with self._send_lock:
                conn.send(message)
            return True
        except (websocket.WebSocketException, OSError) as e:
            logger.warning("Send failed: %s", e)
            return False

    def run(self):
        """Receive frames until shutdown, reconnecting whenever the socket drops."""
        while not self._shutdown.is_set():
            if not self.connected and not self.connect_with_backoff():
                break
            try:
                frame = self._conn.recv()
            except websocket.WebSocketTimeoutException:
                continue
            except (websocket.WebSocketConnectionClosedException, websocket.WebSocketException, OSError) as e:
                logger.warning("Connection lost: %s", e)
                self.close()
                continue
            self.handle_frame(frame)
        self.close()

    def start(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name="showdown", daemon=True)
        thread.start()
        return thread

    # ------------------------------------------------------------------
    # Incoming traffic
    # ------------------------------------------------------------------

    def handle_frame(self, frame):
        """Emit every line of a frame, then react to the ones the session cares about."""
        if isinstance(frame, (bytes, bytearray)):
            try:
                frame = bytes(frame).decode("utf-8")
            except UnicodeDecodeError as e:
                self._emit(TransportError("", bytes(frame).decode("utf-8", errors="replace"), [str(e)]))
                return

        room, lines = split_frame(frame)
        for line in lines:
            self._emit(RawLine(room, line))
            self._handle_line(room, line)

    def _handle_line(self, room: str, line: str):
        if not line.startswith("|"):
            return
        name, _, rest = line[1:].partition("|")

        if name == "challstr":
            self._on_challstr(rest)
        elif name == "queryresponse":
            _, _, body = rest.partition("|")
            self._on_query_response(body)
        elif name in ("win", "tie"):
            self.send(f"{room}|/savereplay")
            self.send(f"|/leave {room}")
        elif name == "init":
            with self._rooms_lock:
                self._rooms.add(room)
        elif name == "deinit":
            with self._rooms_lock:
                self._rooms.discard(room)
        elif name == "updateuser":
            user = rest.split("|", 1)[0].strip()
            logger.info("Session user is now %r", user)

    def _on_challstr(self, challstr: str):
        self._login(challstr)
        self.send("|/cmd rooms")
        self.send("|/cmd roomlist")

    def _login(self, challstr: str) -> bool:
        """Trade the challenge string for an assertion and rename to the configured user."""
        username = self._settings.get("username", "")
        if not username:
            logger.info("No Showdown username configured, staying a guest")
            return False

        try:
            response = self._http.post(
                self._settings["login_url"],
                data={"name": username, "pass": self._settings.get("password", ""), "challstr": challstr},
                timeout=10,
            )
            response.raise_for_status()
            data = json.loads(response.text.lstrip("]"))
        except (requests.RequestException, ValueError) as e:
            logger.error("Login request for %s failed: %s", username, e)
            return False

        assertion = data.get("assertion") if isinstance(data, dict) else None
        if not assertion or assertion.startswith(";;"):
            logger.error("Login for %s rejected: %s", username, assertion or "no assertion")
            return False

        return self.send(f"|/trn {username},0,{assertion}")

    def _on_query_response(self, body: str):
        try:
            response = json.loads(body)
        except ValueError:
            logger.warning("Unparseable query response: %.200s", body)
            return
        if not isinstance(response, dict):
            return

        if not self._seen_chat and "chat" in response:
            self._seen_chat = True
            chat_rooms = response["chat"] if isinstance(response["chat"], list) else []
            for chat_room in chat_rooms[: self._settings.get("max_chat_rooms", 15)]:
                title = chat_room.get("title") if isinstance(chat_room, dict) else None
                if title:
                    self.send(f"|/join {title}")
        elif "rooms" in response and isinstance(response["rooms"], dict):
            for battle in response["rooms"]:
                self.send(f"|/join {battle}")

    def refresh_rooms(self):
        """Ask for the current battle list; the response joins any new battles."""
        self.send("|/cmd roomlist")

    def schedule(self, scheduler):
        """Register the periodic room-list refresh on an APScheduler scheduler."""
        return scheduler.add_job(
            self.refresh_rooms,
            "interval",
            seconds=self._settings.get("roomlist_interval_seconds", 60),
            id="showdown-roomlist",
            max_instances=1,
            coalesce=True,
        )
