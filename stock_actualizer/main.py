"""Stock Actualizer

Keeps MoySklad stock-entry ("enter") documents in line with the in-stock
products held in Postgres.
Architecture:
- Postgres: mapping table joined to provider products, read in fixed-size pages
- MoySklad: enter documents (≤ 999 positions each) and their positions
Behavior:
- One pass at startup, then one pass every POLLING_MINUTES
- Matched products get their quantity pushed; unmatched ones are placed
  into a document of their store with room, or a new one
- A failed pass is logged and the next tick starts over from offset 0
- SIGINT/SIGTERM stop the loop between passes

SRP: this module only wires and runs the app; logic lives in services.
"""
from __future__ import annotations

import logging
import signal
import sys
from typing import Optional

import psycopg2

from stock_actualizer.adapters.moysklad.client import MoySkladDocumentClient
from stock_actualizer.adapters.postgres.repositories import PgProductRepository, pg_connect, wait_for_pg
from stock_actualizer.config import Config
from stock_actualizer.errors import ActualizerError, PassCancelled, RemoteServiceError, StartupError
from stock_actualizer.services.reconciler import PassReport, Reconciler
from stock_actualizer.util.cancel import CancelToken

logger = logging.getLogger(__name__)


class App:
    """SRP: orchestrate lifecycle. No business logic here."""

    def __init__(self, cfg: Config, token: Optional[CancelToken] = None) -> None:
        self.cfg = cfg
        self.token = token or CancelToken()
        self.conn = None
        self.client: Optional[MoySkladDocumentClient] = None
        self.reconciler: Optional[Reconciler] = None

    def _setup(self) -> None:
        self.cfg.validate()
        logger.info("STARTUP | waiting_for=postgres | max_wait=%ds", self.cfg.pg_wait_s)
        wait_for_pg(self.cfg)
        try:
            self.conn = pg_connect(self.cfg)
        except psycopg2.Error as exc:
            raise StartupError("DATABASE_UNREACHABLE", f"Can't connect to database: {exc}") from exc

        repo = PgProductRepository(self.conn, self.cfg, token=self.token)
        self.client = MoySkladDocumentClient.from_config(self.cfg, token=self.token)
        self.reconciler = Reconciler(self.cfg, repo, self.client, token=self.token)
        logger.info(
            "CONFIG_LOADED | base_url=%s | page_size=%d | capacity=%d | polling=%smin | stores=%s",
            self.cfg.base_url,
            self.cfg.page_size,
            self.cfg.document_capacity,
            self.cfg.polling_minutes,
            ",".join(self.reconciler.routing.known_stores),
        )

    def _run_pass(self) -> Optional[PassReport]:
        try:
            return self.reconciler.run()
        except PassCancelled:
            logger.info("PASS_CANCELLED | stage=%s | offset=%d", self.reconciler.stage.value, self.reconciler.offset)
        except RemoteServiceError as exc:
            logger.error(
                "PASS_FAILED | stage=%s | offset=%d | error=%s | status=%s | body=%s",
                self.reconciler.stage.value,
                self.reconciler.offset,
                exc.message,
                exc.status,
                exc.body,
            )
        except ActualizerError as exc:
            logger.error(
                "PASS_FAILED | stage=%s | offset=%d | code=%s | error=%s",
                self.reconciler.stage.value,
                self.reconciler.offset,
                exc.code,
                exc.message,
            )
        return None

    def _loop(self) -> None:
        self._run_pass()
        while not self.token.wait(self.cfg.polling_interval_s):
            self._run_pass()
        logger.info("LOOP_STOPPED | reason=cancelled")

    def _teardown(self) -> None:
        try:
            if self.client is not None:
                self.client.close()
        finally:
            if self.conn is not None:
                self.conn.close()

    def stop(self) -> None:
        self.token.cancel()

    def run(self) -> None:
        try:
            self._setup()
            self._loop()
        finally:
            self._teardown()


def main() -> int:
    cfg = Config.from_env()
    level = logging.getLevelName(cfg.log_level)
    logging.basicConfig(
        # unknown names are rejected by Config.validate once logging is up
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    app = App(cfg)

    def _sig(*_):
        logger.info("SHUTDOWN | signal received, stopping after the current call")
        app.stop()

    signal.signal(signal.SIGINT, _sig)
    signal.signal(signal.SIGTERM, _sig)

    try:
        app.run()
    except StartupError as exc:
        logger.error("STARTUP_FAILED | code=%s | error=%s", exc.code, exc.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
