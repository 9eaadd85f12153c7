"""
Solana Deposit Poller

Watches the treasury for incoming SOL and pays out the presale token.
Runs on a fixed interval; every tick is a separate cycle guarded so that
two cycles never overlap.

Per cycle:
1. list recent treasury signatures (newest first) and reverse them
2. skip signatures already in the ledger (no fetch)
3. fetch, ignore failed / unparsable / irrelevant transactions
4. price -> policy -> executor, strictly one candidate at a time
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from presale_bot.core.distribution import DistributionConfig
from presale_bot.core.exceptions import PayoutNotRecordedError
from presale_bot.services.executor import DistributionExecutor
from presale_bot.services.ledger import LedgerStore, SkipEntry
from presale_bot.services.policy import apply_distribution_policy
from presale_bot.services.pricing import resolve_token_amount
from .client import ChainClient, ChainClientError, ParsedTransaction, lamports_to_sol
from .config import solana_settings

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """What happened to a single candidate signature"""
    ALREADY_SEEN = "already_seen"
    IGNORED = "ignored"  # failed on-chain, unparsable, or not a deposit
    PAID = "paid"
    SKIPPED = "skipped"  # ineligible, recorded as never to be paid
    CAP_EXHAUSTED = "cap_exhausted"


@dataclass
class Deposit:
    signature: str
    sender: str
    lamports: int

    @property
    def base_amount(self) -> Decimal:
        return lamports_to_sol(self.lamports)


@dataclass
class CycleReport:
    listed: int = 0
    paid: int = 0
    skipped: int = 0
    failed: int = 0
    unrecorded: int = 0  # paid but not in the ledger, will be paid again
    cap_exhausted: bool = False


def classify_deposit(tx: ParsedTransaction, treasury: str) -> Deposit | None:
    """
    First native transfer into the treasury, if any

    Only one deposit is taken per transaction signature.
    """
    for transfer in tx.transfers:
        if transfer.destination != treasury or transfer.lamports <= 0:
            continue
        if not transfer.source:
            continue
        return Deposit(signature=tx.signature, sender=transfer.source, lamports=transfer.lamports)
    return None


class DepositPoller:
    """
    Deposit poller service

    Polls the treasury address and drives the distribution executor
    exactly once per eligible deposit.
    """

    def __init__(
        self,
        client: ChainClient,
        ledger: LedgerStore,
        config: DistributionConfig,
        executor: DistributionExecutor | None = None,
        polling_interval: float | None = None,
        signature_limit: int | None = None,
    ):
        self.client = client
        self.ledger = ledger
        self.config = config
        self.executor = executor or DistributionExecutor(client, ledger)
        self.polling_interval = polling_interval or solana_settings.POLLING_INTERVAL_SECONDS
        self.signature_limit = signature_limit or solana_settings.SIGNATURE_LIMIT

        self._running = False
        self._warm_start_pending = False
        self._task: asyncio.Task | None = None
        self._cycle_task: asyncio.Task | None = None
        self._run_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def busy(self) -> bool:
        """True while a cycle is in progress"""
        return self._run_lock.locked()

    async def start(self, warm_start: bool = False):
        """Start the poller background task"""
        if self._running:
            logger.warning("Poller already running")
            return

        # Runs at the top of the first cycle; retried every cycle until it succeeds
        self._warm_start_pending = warm_start

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "Deposit poller started (treasury=%s, interval=%ss)",
            self.config.treasury,
            self.polling_interval,
        )

    async def stop(self):
        """
        Stop the poller, cancelling any cycle in flight

        Returns only after the running cycle has released the run guard,
        so the chain client can be closed safely afterwards.
        """
        self._running = False
        # Loop first, so it cannot schedule another cycle while we wait
        for task in (self._task, self._cycle_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._task = None
        self._cycle_task = None
        logger.info("Deposit poller stopped")

    async def _run_loop(self):
        """
        Fire a cycle every interval

        A new cycle task is only created once the previous one is done, so
        `_cycle_task` always refers to the cycle holding the run guard.
        """
        while self._running:
            if self._cycle_task is None or self._cycle_task.done():
                self._cycle_task = asyncio.create_task(self.tick())
            else:
                logger.debug("Previous poll cycle still running, skipping tick")
            await asyncio.sleep(self.polling_interval)

    async def tick(self) -> CycleReport | None:
        """
        Run one cycle unless one is already in progress

        Returns:
            CycleReport, or None if the tick was skipped or the cycle crashed
        """
        if self._run_lock.locked():
            logger.debug("Previous poll cycle still running, skipping tick")
            return None

        async with self._run_lock:
            try:
                return await self._poll_deposits()
            except Exception as e:
                logger.error("Error in deposit polling: %s", e, exc_info=True)
                return None

    async def _poll_deposits(self) -> CycleReport:
        """Poll for new deposits and process them oldest first"""
        if self._warm_start_pending:
            # Paying anything before history is marked would back-pay old deposits
            await self.warm_start()
            self._warm_start_pending = False

        signatures = await self.client.get_signatures_for_address(
            self.config.treasury,
            limit=self.signature_limit,
        )
        report = CycleReport(listed=len(signatures))

        if not signatures:
            logger.debug("No signatures found")
            return report

        for info in reversed(signatures):
            try:
                outcome = await self._process_signature(info.signature)
            except PayoutNotRecordedError as e:
                report.failed += 1
                report.unrecorded += 1
                logger.error("%s; it will be paid again next cycle unless recorded by hand", e)
                continue
            except ChainClientError as e:
                report.failed += 1
                logger.warning("Chain error on %s, will retry next cycle: %s", info.signature[:16], e)
                continue
            except Exception as e:
                report.failed += 1
                logger.error("Error processing %s: %s", info.signature[:16], e, exc_info=True)
                continue

            if outcome is Outcome.PAID:
                report.paid += 1
            elif outcome is Outcome.SKIPPED:
                report.skipped += 1
            elif outcome is Outcome.CAP_EXHAUSTED:
                report.cap_exhausted = True
                logger.warning(
                    "Distribution cap of %d tokens exhausted, halting this cycle",
                    self.config.cap,
                )
                break

        if report.paid or report.skipped:
            logger.info(
                "Cycle done: %d paid, %d skipped, %d failed",
                report.paid,
                report.skipped,
                report.failed,
            )
        return report

    async def _process_signature(self, signature: str) -> Outcome:
        """
        Process a single candidate

        Raises:
            ChainClientError: On fetch or transfer failure (nothing sent or recorded)
            PayoutNotRecordedError: Buyer paid, but the burn or ledger write failed
        """
        if self.ledger.seen(signature):
            return Outcome.ALREADY_SEEN

        tx = await self.client.get_transaction(signature)
        if tx is None or not tx.success:
            return Outcome.IGNORED

        deposit = classify_deposit(tx, self.config.treasury)
        if deposit is None:
            logger.debug("Transaction %s has no deposit into the treasury", signature[:16])
            return Outcome.IGNORED

        base_amount = deposit.base_amount
        raw_amount = resolve_token_amount(base_amount, self.config)
        _, distributed = self.ledger.totals()
        decision = apply_distribution_policy(base_amount, raw_amount, distributed, self.config)

        if decision.cap_exhausted:
            return Outcome.CAP_EXHAUSTED

        if not decision.eligible:
            self.ledger.commit_skip(SkipEntry(
                signature=signature,
                reason=decision.reason,
                base_amount=base_amount,
            ))
            logger.info(
                "Deposit %s from %s (%s SOL) not eligible: %s",
                signature[:16],
                deposit.sender,
                base_amount,
                decision.reason,
            )
            return Outcome.SKIPPED

        if decision.capped:
            logger.info(
                "Deposit %s clamped from %d to %d tokens to fill the cap",
                signature[:16],
                raw_amount,
                decision.buyer_amount,
            )

        await self.executor.execute(
            signature=signature,
            sender=deposit.sender,
            base_amount=base_amount,
            buyer_amount=decision.buyer_amount,
            burn_amount=decision.burn_amount,
        )
        return Outcome.PAID

    async def process_signature(self, signature: str) -> Outcome:
        """
        Manually process one signature (for re-processing / debugging)

        Shares the run guard with the polling loop, so it waits for any
        cycle in progress to finish first.
        """
        async with self._run_lock:
            return await self._process_signature(signature)

    async def warm_start(self, limit: int | None = None) -> int:
        """
        Mark the treasury's existing history as seen

        Only runs against an empty ledger (first boot), so deposits that
        arrived while a durable deployment was down are still paid.

        Returns:
            Number of signatures marked

        Raises:
            ChainClientError: If the signature list cannot be fetched
        """
        if not self.ledger.is_empty():
            logger.info("Ledger has history, skipping warm start")
            return 0

        signatures = await self.client.get_signatures_for_address(
            self.config.treasury,
            limit=limit or solana_settings.WARM_START_LIMIT,
        )

        marked = 0
        for info in signatures:
            if self.ledger.commit_skip(SkipEntry(signature=info.signature, reason="warm_start")):
                marked += 1

        logger.info("Warm start: marked %d existing signatures as processed", marked)
        return marked
