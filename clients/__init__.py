"""Clients for external services: Solana RPC, Helius, pump.fun, Jupiter, Deepseek and Twitter."""

from .solana_rpc_client import SolanaRPCClient
from .helius_client import HeliusClient
from .pumpfun_client import PumpfunClient
from .jupiter_client import JupiterClient, get_jupiter_client
from .deepseek_client import DeepseekClient
from .twitter_client import TwitterClient

__all__ = [
    'SolanaRPCClient',
    'HeliusClient',
    'PumpfunClient',
    'JupiterClient',
    'get_jupiter_client',
    'DeepseekClient',
    'TwitterClient'
]
