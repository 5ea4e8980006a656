from __future__ import annotations

import logging
import signal
import threading
from typing import Optional

from .config import load_config
from .engine import LadderEngine
from .exceptions import FatalError
from .logger import get_logger
from .mexc_api import DEFAULT_BASE_URL, MexcClient
from .state_store import JsonStateStore


def run_forever(
    engine: LadderEngine,
    stop_event: threading.Event,
    poll_seconds: float,
    logger: logging.Logger,
) -> None:
    """Run reconciliation cycles one after another until ``stop_event`` is set.

    Fatal errors propagate to the caller; anything else is logged and the next
    cycle starts after the usual delay.
    """
    while not stop_event.is_set():
        if stop_event.wait(poll_seconds):
            break
        try:
            engine.reconcile()
        except FatalError:
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected error during reconciliation cycle")
    logger.info("Poll loop stopped")


def _install_signal_handlers(stop_event: threading.Event, logger: logging.Logger) -> None:
    def handle_signal(signum, frame) -> None:
        logger.info("Received signal %s, stopping after the current cycle", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)


def run_bot(
    config_path: str,
    api_key: str,
    api_secret: str,
    base_url: str = DEFAULT_BASE_URL,
    stop_event: Optional[threading.Event] = None,
) -> int:
    logger = get_logger()
    if stop_event is None:
        stop_event = threading.Event()
        if threading.current_thread() is threading.main_thread():
            _install_signal_handlers(stop_event, logger)

    try:
        config = load_config(config_path)
        logger.info("Loaded config for %s (live=%s)", config.pair, config.live)
        client = MexcClient(api_key=api_key, api_secret=api_secret, base_url=base_url)
        engine = LadderEngine(client, config, JsonStateStore(config.state_file), logger)
        engine.start()
        run_forever(engine, stop_event, config.poll_seconds, logger)
    except FatalError as exc:
        logger.error("%s", exc)
        return 1
    return 0
