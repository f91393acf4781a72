"""CaseVault Python SDK."""

__version__ = "0.1.0"

from casevault_sdk.client import CaseVaultClient
from casevault_sdk.hashing import HashComputationError, hash_bytes, hash_file
from casevault_sdk.verify import ChainVerdict, verify_exported_chain

__all__ = [
    "CaseVaultClient",
    "ChainVerdict",
    "HashComputationError",
    "hash_bytes",
    "hash_file",
    "verify_exported_chain",
]
