"""Canary service: wires the Showdown client, ingestion loop, store, flusher and API."""

import logging
import signal
import sys
import threading
import time

from apscheduler.schedulers.background import BackgroundScheduler
from werkzeug.serving import make_server

from canary.api import create_app
from canary.codec import load_codec
from canary.config import Config
from canary.errors import CanaryError
from canary.flusher import StoreFlusher
from canary.ingest import IngestLoop
from canary.persistence import JsonDocumentBackend
from canary.showdown import ShowdownClient
from canary.store import CategorizedStore

LOG_FORMAT = "%(asctime)s [canary] %(levelname)s %(name)s %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(config: Config):
    logging.basicConfig(
        level=str(config["logging"]["level"]).upper(),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def run_service(config: Config, shutdown_event: threading.Event):
    start_time = int(time.time() * 1000)
    storage = config["storage"]

    backend = JsonDocumentBackend(storage["db_path"])
    store = CategorizedStore(backend.load(), page_size=storage["page_size"])
    codec = load_codec(config["codec"]["factory"])

    loop = IngestLoop(
        store,
        codec,
        shutdown_event,
        queue_size=config["ingest"]["queue_size"],
        enqueue_timeout=config["ingest"]["enqueue_timeout_seconds"],
    )
    client = ShowdownClient(config["showdown"], loop.submit, shutdown_event)
    flusher = StoreFlusher(store, backend)

    scheduler = BackgroundScheduler()
    flusher.schedule(scheduler, storage["flush_interval_seconds"])
    client.schedule(scheduler)

    app = create_app(
        store,
        rooms_provider=client.get_rooms,
        metadata={"startTime": start_time, "showdownUsername": client.username},
        static_dir=config["server"]["static_dir"],
    )
    server = make_server(config["server"]["host"], config["server"]["port"], app, threaded=True)
    server_thread = threading.Thread(target=server.serve_forever, name="http", daemon=True)

    loop.start()
    client.start()
    scheduler.start()
    server_thread.start()
    logger.info("Listening on %s:%d", config["server"]["host"], config["server"]["port"])

    try:
        while not shutdown_event.is_set():
            shutdown_event.wait(1.0)
    finally:
        logger.info("Shutting down...")
        server.shutdown()
        scheduler.shutdown(wait=False)
        loop.stop()
        client.close()
        if flusher.flush():
            logger.info("Final flush written to %s", storage["db_path"])
        logger.info(
            "Stopped. seen=%d, dropped=%d, codec errors=%d",
            store.total_seen, loop.dropped, loop.codec_errors,
        )


def main():
    config = Config.from_env()
    configure_logging(config)

    shutdown_event = threading.Event()

    def _signal_handler(signum, _frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        run_service(config, shutdown_event)
    except CanaryError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
