"""
Arca Vault Metrics
Read-path aggregator for the Arca vault dashboard: range status, TVL and
rewards across Metropolis and Shadow vaults on Sonic.
"""

__version__ = "0.1.0"
