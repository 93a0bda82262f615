"""
Identity Provider

Derives the signing identity used for the marketplace from a wallet private
key and a chain RPC endpoint.
"""

import logging
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .exceptions import SetupFailure

logger = logging.getLogger(__name__)


class ProviderIdentity:
    """Wallet-backed signer. Holds credentials only, no mutable state."""

    def __init__(self, account: LocalAccount, web3: Optional[Web3] = None):
        self._account = account
        self.web3 = web3

    @property
    def address(self) -> str:
        return self._account.address

    def sign_text(self, text: str) -> str:
        """Sign an EIP-191 personal message and return the 0x-hex signature"""
        signed = self._account.sign_message(encode_defunct(text=text))
        return Web3.to_hex(signed.signature)

    @staticmethod
    def recover_signer(text: str, signature: str) -> str:
        """Address that produced ``signature`` over ``text``"""
        return Account.recover_message(encode_defunct(text=text), signature=signature)

    def __repr__(self) -> str:
        return f"ProviderIdentity(address={self.address})"


def create_identity(private_key: Optional[str], rpc_url: str) -> ProviderIdentity:
    """
    Build a ProviderIdentity from a secret key and network location.

    Raises:
        SetupFailure: key missing or not a valid secp256k1 private key
    """
    if not private_key:
        raise SetupFailure("Missing PRIVATE_KEY")

    try:
        web3 = Web3(Web3.HTTPProvider(rpc_url))
        account = web3.eth.account.from_key(private_key)
    except Exception as e:
        # Never include the key itself in the error
        raise SetupFailure(
            "Invalid PRIVATE_KEY: could not construct signer",
            details={"rpc_url": rpc_url, "reason": type(e).__name__},
        ) from e

    logger.info(f"Signing identity ready for address ****{account.address[-4:]}")
    return ProviderIdentity(account, web3)
