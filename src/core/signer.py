"""
Keypair-backed transaction signer.
"""

import json
import os
from pathlib import Path

from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from pipeline.types import TransactionDraft
from utils.logger import get_logger

logger = get_logger(__name__)


class KeypairSigner:
    """Signs drafts as the single fee payer."""

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @classmethod
    def from_base58(cls, private_key: str) -> "KeypairSigner":
        return cls(Keypair.from_base58_string(private_key))

    @classmethod
    def from_json_file(cls, path: str | Path) -> "KeypairSigner":
        """Load a Solana CLI keypair file (JSON array of 64 bytes)."""
        key_path = Path(path).expanduser()
        if not key_path.exists():
            raise FileNotFoundError(f"Keypair file not found: {key_path}")
        secret = json.loads(key_path.read_text(encoding="utf-8"))
        signer = cls(Keypair.from_bytes(bytes(secret)))
        logger.info(f"Keypair loaded from {key_path}: {signer.public_key()}")
        return signer

    @classmethod
    def from_env(cls, var: str = "SOLANA_PRIVATE_KEY") -> "KeypairSigner":
        private_key = os.getenv(var)
        if not private_key:
            raise ValueError(f"{var} is not set")
        return cls.from_base58(private_key)

    def public_key(self) -> Pubkey:
        return self._keypair.pubkey()

    def sign(self, draft: TransactionDraft, blockhash: Hash) -> Transaction:
        if draft.payer != self._keypair.pubkey():
            raise ValueError(f"Draft fee payer {draft.payer} is not the signer {self._keypair.pubkey()}")
        return Transaction([self._keypair], draft.message(), blockhash)
