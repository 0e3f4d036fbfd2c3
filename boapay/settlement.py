"""
International Settlement Module

Completes pending international transfers once their settle_after time has
passed. All settlement state is read from storage on every pass, so a
restarted process picks up exactly where the previous one stopped.
"""

import asyncio
from datetime import datetime
from typing import List, Optional

from .errors import BankingError
from .international import InternationalManager, InternationalTransfer
from .logging_config import get_logger
from .operations import BankingOperations
from .storage import utcnow


class InternationalSettlementJob:
    """Periodic job that settles due international transfers"""

    def __init__(self, international: InternationalManager, operations: BankingOperations):
        self.international = international
        self.operations = operations
        self.logger = get_logger("boapay.settlement")

    def run_once(self, now: Optional[datetime] = None) -> List[InternationalTransfer]:
        """Settle every transfer due at `now`; returns the settled transfers"""
        now = now or utcnow()
        settled = []
        for transfer in self.international.list_due_transfers(now):
            try:
                settled.append(self.operations.complete_international_transfer(transfer.id, now=now))
            except BankingError as e:
                # Failed or settled concurrently by an admin since the scan
                self.logger.warning(f"Skipping transfer {transfer.id}: {e.message}")
        return settled

    async def run_forever(self, interval: float = 5.0) -> None:
        """Poll until cancelled"""
        self.logger.info(f"Settlement job started, polling every {interval}s")
        try:
            while True:
                try:
                    self.run_once()
                except Exception:
                    self.logger.exception("Settlement pass failed")
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            self.logger.info("Settlement job stopped")
            raise
