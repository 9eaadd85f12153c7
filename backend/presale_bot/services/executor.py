"""
Distribution Executor

Pays the buyer, burns if required, then commits the ledger.

Order is strict, each step only runs if the previous one succeeded:
1. transfer buyer tokens          (chain)
2. burn tokens + BurnRecord       (chain, then ledger)
3. PurchaseRecord                 (ledger)

If step 1 fails nothing is written and the deposit is retried next cycle.
If step 1 succeeds but a later step fails, the buyer has been paid but the
ledger does not know it. The executor raises PayoutNotRecordedError with
the payout transaction. The deposit is still unseen, so the next cycle
pays the buyer AGAIN unless an operator records the purchase first.
"""

from dataclasses import dataclass
from decimal import Decimal

from presale_bot.chain.client import ChainClient
from presale_bot.core.exceptions import PayoutNotRecordedError
from presale_bot.core.logging_config import get_logger
from presale_bot.services.ledger import BurnEntry, LedgerStore, PurchaseEntry

logger = get_logger(__name__)


@dataclass
class ExecutionResult:
    signature: str
    buyer_amount: int
    burn_amount: int
    payout_tx: str | None = None
    burn_tx: str | None = None
    recorded: bool = False


class DistributionExecutor:
    def __init__(self, client: ChainClient, ledger: LedgerStore):
        self.client = client
        self.ledger = ledger

    async def execute(
        self,
        signature: str,
        sender: str,
        base_amount: Decimal,
        buyer_amount: int,
        burn_amount: int,
    ) -> ExecutionResult:
        """
        Pay out one deposit

        Args:
            signature: Deposit transaction signature (idempotency key)
            sender: Buyer address
            base_amount: SOL received
            buyer_amount: Whole tokens for the buyer
            burn_amount: Whole tokens to burn (0 for none)

        Raises:
            ChainClientError: If the payout itself fails (nothing was sent)
            PayoutNotRecordedError: If the burn or a ledger write fails after
                                    the buyer was paid; retrying pays again
        """
        result = ExecutionResult(
            signature=signature,
            buyer_amount=buyer_amount,
            burn_amount=burn_amount,
        )

        if buyer_amount > 0:
            result.payout_tx = await self.client.transfer_tokens(sender, buyer_amount)
            logger.info(
                "Paid %d tokens to %s for %s SOL (deposit %s, payout %s)",
                buyer_amount,
                sender,
                base_amount,
                signature[:16],
                result.payout_tx,
            )

        try:
            if burn_amount > 0:
                result.burn_tx = await self.client.burn_tokens(burn_amount)
                self.ledger.commit_burn(BurnEntry(amount=burn_amount, signature=signature))
                logger.info("Burned %d tokens for deposit %s (tx %s)", burn_amount, signature[:16], result.burn_tx)

            result.recorded = self.ledger.commit_purchase(PurchaseEntry(
                signature=signature,
                sender=sender,
                base_amount=base_amount,
                token_amount=buyer_amount,
            ))
        except Exception as e:
            if result.payout_tx is None:
                raise
            logger.error(
                "Deposit %s paid (payout %s) but ledger not updated, the next cycle "
                "will pay it again unless recorded by hand",
                signature,
                result.payout_tx,
                exc_info=True,
            )
            raise PayoutNotRecordedError(signature, result.payout_tx) from e

        return result
