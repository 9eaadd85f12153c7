"""
Solana Blockchain Integration

- ChainClient: capability interface used by the distribution engine
- SolanaRpcClient: JSON-RPC implementation (httpx + solders/spl)
- DepositPoller: watches the treasury and drives payouts
"""

from .config import solana_settings

# Lazy imports - SolanaRpcClient and DepositPoller pull in httpx/solders
# Import them directly when needed:
#   from presale_bot.chain.client import SolanaRpcClient
#   from presale_bot.chain.poller import DepositPoller

__all__ = ["solana_settings"]
