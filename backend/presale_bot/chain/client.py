"""
Solana RPC Client

Capability interface for the distribution engine plus its JSON-RPC
implementation. Reads go straight to the RPC node over httpx; payouts and
burns are SPL token instructions built and signed with solders/spl.
"""

import asyncio
import base64
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    burn_checked,
    create_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)
from spl.token.models import BurnCheckedParams, TransferCheckedParams

from presale_bot.core.exceptions import ConfigurationError
from .config import solana_settings

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000

_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


@dataclass
class SignatureInfo:
    """Entry from getSignaturesForAddress"""
    signature: str
    slot: int
    failed: bool
    block_time: int | None = None


@dataclass
class NativeTransfer:
    """System program SOL transfer instruction"""
    source: str
    destination: str
    lamports: int


@dataclass
class ParsedTransaction:
    """Transaction reduced to what deposit classification needs"""
    signature: str
    slot: int
    block_time: int | None
    success: bool
    transfers: list[NativeTransfer] = field(default_factory=list)


class ChainClientError(Exception):
    """RPC / transport error"""
    pass


class RateLimitError(ChainClientError):
    """Rate limit exceeded"""
    pass


class TransactionFailedError(ChainClientError):
    """Submitted transaction failed or was not confirmed in time"""
    pass


def load_keypair(raw: str) -> Keypair:
    """
    Load the distributor keypair

    Expects a JSON array of 64 bytes (solana-keygen format).

    Raises:
        ConfigurationError: If the key material is malformed
    """
    try:
        secret = json.loads(raw)
        if not isinstance(secret, list) or len(secret) != 64:
            raise ValueError("expected a JSON array of 64 bytes")
        return Keypair.from_bytes(bytes(secret))
    except (TypeError, ValueError) as e:
        # json.JSONDecodeError and out-of-range byte values are ValueErrors too
        raise ConfigurationError("DISTRIBUTOR_PRIVATE_KEY is not a valid Solana keypair") from e


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / Decimal(LAMPORTS_PER_SOL)


class ChainClient(ABC):
    """
    What the distribution engine needs from the chain

    Implementations raise ChainClientError on any failure.
    """

    @abstractmethod
    async def get_signatures_for_address(self, address: str, limit: int) -> list[SignatureInfo]:
        """Recent signatures involving `address`, newest first"""

    @abstractmethod
    async def get_transaction(self, signature: str) -> ParsedTransaction | None:
        """Parsed transaction, or None if unknown / unparsable"""

    @abstractmethod
    async def transfer_tokens(self, recipient: str, amount: int) -> str:
        """Send `amount` whole tokens to `recipient`'s token account, creating it if needed"""

    @abstractmethod
    async def burn_tokens(self, amount: int) -> str:
        """Burn `amount` whole tokens from the distributor's holdings"""

    @abstractmethod
    async def get_sol_balance(self, address: str) -> Decimal:
        """Native balance in SOL"""

    @abstractmethod
    async def get_token_balance(self, owner: str) -> Decimal:
        """Presale token balance of `owner` in whole tokens"""

    async def close(self) -> None:
        return None


class SolanaRpcClient(ChainClient):
    """
    Async JSON-RPC client

    Handles:
    - Rate limiting and transport errors with bounded retries
    - Signature listing and jsonParsed transaction parsing
    - Building, signing, sending and confirming SPL transfers and burns
    """

    def __init__(
        self,
        keypair: Keypair,
        mint: str,
        decimals: int,
        rpc_url: str | None = None,
        commitment: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.keypair = keypair
        self.mint = Pubkey.from_string(mint)
        self.decimals = decimals
        self.rpc_url = rpc_url or solana_settings.RPC_URL
        self.commitment = commitment or solana_settings.COMMITMENT
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

    @property
    def distributor(self) -> Pubkey:
        return self.keypair.pubkey()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Content-Type": "application/json"},
                timeout=solana_settings.REQUEST_TIMEOUT_SECONDS,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close HTTP client"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, params: list[Any] | None = None) -> Any:
        """
        Make a JSON-RPC call with retries and rate limit handling

        Args:
            method: RPC method name (e.g., "getSignaturesForAddress")
            params: Positional RPC params

        Returns:
            The "result" member of the response

        Raises:
            ChainClientError: On RPC errors (not retried) or transport errors
            RateLimitError: On rate limit (after all retries exhausted)
        """
        client = await self._get_client()
        last_error: Exception | None = None

        for attempt in range(solana_settings.API_RETRY_ATTEMPTS):
            self._request_id += 1
            payload = {
                "jsonrpc": "2.0",
                "id": self._request_id,
                "method": method,
                "params": params or [],
            }
            try:
                response = await client.post(self.rpc_url, json=payload)

                if response.status_code == 429:
                    delay = solana_settings.API_RETRY_DELAY_SECONDS * (attempt + 1)
                    logger.warning(
                        "RPC rate limit hit on %s, retrying in %.1fs (attempt %d/%d)",
                        method,
                        delay,
                        attempt + 1,
                        solana_settings.API_RETRY_ATTEMPTS,
                    )
                    last_error = RateLimitError(f"Rate limited on {method}")
                    await asyncio.sleep(delay)
                    continue

                response.raise_for_status()
                data = response.json()

                if data.get("error"):
                    error = data["error"]
                    message = error.get("message") if isinstance(error, dict) else str(error)
                    raise ChainClientError(f"RPC error on {method}: {message}")

                return data.get("result")

            except httpx.HTTPStatusError as e:
                last_error = ChainClientError(f"HTTP error {e.response.status_code} on {method}")
                if e.response.status_code >= 500:
                    await asyncio.sleep(solana_settings.API_RETRY_DELAY_SECONDS)
                    continue
                raise last_error

            except httpx.RequestError as e:
                last_error = ChainClientError(f"Request error on {method}: {e}")
                await asyncio.sleep(solana_settings.API_RETRY_DELAY_SECONDS)
                continue

        if last_error:
            raise last_error
        raise RateLimitError(f"Rate limit exceeded after all retries on {method}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_signatures_for_address(self, address: str, limit: int) -> list[SignatureInfo]:
        result = await self._request(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": self.commitment}],
        )

        if not isinstance(result, list):
            logger.error("Unexpected getSignaturesForAddress response: %s", type(result))
            return []

        return [
            SignatureInfo(
                signature=item["signature"],
                slot=int(item.get("slot", 0)),
                failed=item.get("err") is not None,
                block_time=item.get("blockTime"),
            )
            for item in result
            if item.get("signature")
        ]

    async def get_transaction(self, signature: str) -> ParsedTransaction | None:
        result = await self._request(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": self.commitment,
                },
            ],
        )
        if result is None:
            return None
        return self.parse_transaction(signature, result)

    def parse_transaction(self, signature: str, tx_data: dict[str, Any]) -> ParsedTransaction | None:
        """
        Parse a jsonParsed getTransaction result

        Only top-level system program transfers are extracted; inner
        (CPI) instructions are ignored.

        Returns:
            ParsedTransaction or None if the payload is malformed
        """
        try:
            meta = tx_data.get("meta") or {}
            message = tx_data["transaction"]["message"]

            transfers = []
            for instruction in message.get("instructions") or []:
                if instruction.get("program") != "system":
                    continue
                parsed = instruction.get("parsed")
                if not isinstance(parsed, dict) or parsed.get("type") != "transfer":
                    continue
                info = parsed.get("info") or {}
                transfers.append(NativeTransfer(
                    source=info.get("source", ""),
                    destination=info.get("destination", ""),
                    lamports=int(info.get("lamports") or 0),
                ))

            return ParsedTransaction(
                signature=signature,
                slot=int(tx_data.get("slot", 0)),
                block_time=tx_data.get("blockTime"),
                success=meta.get("err") is None,
                transfers=transfers,
            )

        except (KeyError, TypeError, ValueError) as e:
            logger.error("Failed to parse transaction %s: %s", signature[:16], e)
            return None

    async def get_sol_balance(self, address: str) -> Decimal:
        result = await self._request("getBalance", [address, {"commitment": self.commitment}])
        return lamports_to_sol(int(result["value"]))

    async def get_token_balance(self, owner: str) -> Decimal:
        result = await self._request(
            "getTokenAccountsByOwner",
            [
                owner,
                {"mint": str(self.mint)},
                {"encoding": "jsonParsed", "commitment": self.commitment},
            ],
        )
        total = Decimal("0")
        for account in result.get("value") or []:
            token_amount = account["account"]["data"]["parsed"]["info"]["tokenAmount"]
            total += Decimal(token_amount["uiAmountString"])
        return total

    async def _account_exists(self, address: Pubkey) -> bool:
        result = await self._request(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment}],
        )
        return bool(result and result.get("value"))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _to_base_units(self, amount: int) -> int:
        return amount * 10 ** self.decimals

    async def transfer_tokens(self, recipient: str, amount: int) -> str:
        owner = self.distributor
        recipient_key = Pubkey.from_string(recipient)
        source_ata = get_associated_token_address(owner, self.mint)
        dest_ata = get_associated_token_address(recipient_key, self.mint)

        instructions = []
        if not await self._account_exists(dest_ata):
            # Distributor pays rent for the buyer's token account
            instructions.append(create_associated_token_account(owner, recipient_key, self.mint))

        instructions.append(transfer_checked(TransferCheckedParams(
            program_id=TOKEN_PROGRAM_ID,
            source=source_ata,
            mint=self.mint,
            dest=dest_ata,
            owner=owner,
            amount=self._to_base_units(amount),
            decimals=self.decimals,
        )))

        return await self._send_and_confirm(instructions)

    async def burn_tokens(self, amount: int) -> str:
        owner = self.distributor
        instruction = burn_checked(BurnCheckedParams(
            program_id=TOKEN_PROGRAM_ID,
            account=get_associated_token_address(owner, self.mint),
            mint=self.mint,
            owner=owner,
            amount=self._to_base_units(amount),
            decimals=self.decimals,
        ))
        return await self._send_and_confirm([instruction])

    async def _send_and_confirm(self, instructions: list) -> str:
        """Sign with the distributor key, submit, and wait for the configured commitment"""
        latest = await self._request("getLatestBlockhash", [{"commitment": self.commitment}])
        blockhash = Hash.from_string(latest["value"]["blockhash"])

        message = Message.new_with_blockhash(instructions, self.distributor, blockhash)
        transaction = Transaction([self.keypair], message, blockhash)
        encoded = base64.b64encode(bytes(transaction)).decode("ascii")

        signature = await self._request(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )
        await self._confirm(signature)
        return signature

    async def _confirm(self, signature: str) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + solana_settings.CONFIRM_TIMEOUT_SECONDS
        target = _COMMITMENT_RANK.get(self.commitment, 1)

        while loop.time() < deadline:
            result = await self._request(
                "getSignatureStatuses",
                [[signature], {"searchTransactionHistory": False}],
            )
            status = (result.get("value") or [None])[0]
            if status is not None:
                if status.get("err") is not None:
                    raise TransactionFailedError(f"Transaction {signature} failed: {status['err']}")
                reached = _COMMITMENT_RANK.get(status.get("confirmationStatus") or "", -1)
                if reached >= target:
                    return
            await asyncio.sleep(solana_settings.CONFIRM_POLL_SECONDS)

        raise TransactionFailedError(
            f"Transaction {signature} not confirmed within {solana_settings.CONFIRM_TIMEOUT_SECONDS:.0f}s"
        )
