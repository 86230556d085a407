"""
Preflight balance check.
"""

from solders.pubkey import Pubkey

from pipeline.errors import InsufficientFunds
from pipeline.protocols import RpcTransport
from utils.logger import get_logger

logger = get_logger(__name__)


async def check_balance(transport: RpcTransport, payer: Pubkey, commitment: str) -> int:
    """Fail fast when the fee payer cannot pay anything.

    This is a cheap precondition only; a balance drained between this check
    and submission shows up as a submission error.

    Returns:
        Balance in lamports

    Raises:
        InsufficientFunds: If balance is not strictly positive
        TransportError: If the balance query fails (not retried)
    """
    balance = await transport.get_balance(payer, commitment)
    if balance <= 0:
        logger.error(f"Fee payer {payer} has no spendable balance ({balance} lamports)")
        raise InsufficientFunds(balance)
    logger.debug(f"Fee payer balance: {balance} lamports")
    return balance
