# infrastructure/rpc.py
"""
Centralized RPC configuration for Arca Vault Metrics.
All contract reads go through one AsyncWeb3 instance on the Sonic chain.
"""
from typing import Optional

from web3 import AsyncHTTPProvider, AsyncWeb3

from .config import get_config


def get_rpc_url() -> str:
    """Get the configured Sonic RPC URL."""
    return get_config().blockchain.rpc_url


def get_async_web3(rpc_url: Optional[str] = None) -> AsyncWeb3:
    """Get an AsyncWeb3 instance connected to Sonic mainnet."""
    url = rpc_url or get_rpc_url()
    timeout = get_config().blockchain.request_timeout
    return AsyncWeb3(AsyncHTTPProvider(url, request_kwargs={"timeout": timeout}))


w3 = None

def get_w3() -> AsyncWeb3:
    """Get cached AsyncWeb3 instance (lazy initialization)."""
    global w3
    if w3 is None:
        w3 = get_async_web3()
    return w3
