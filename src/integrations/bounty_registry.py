"""
Read-only access to the bounty factory contract.

Bounty state lives on-chain; the claim pipeline only needs the required
domain and keywords of one bounty, read through the factory's view getters.

Usage:
    from integrations import bounty_registry

    reader = bounty_registry.BountyReader()
    requirement = reader.get_requirement("3")
"""

import logging
import os
from typing import Any, Optional

from web3 import Web3

from domain.models import BountyRequirement
from .zkemail_prover import ConfigurationError

logger = logging.getLogger(__name__)

BOUNTY_RPC_URL = os.environ.get('BOUNTY_RPC_URL')
BOUNTY_FACTORY_ADDRESS = os.environ.get('BOUNTY_FACTORY_ADDRESS')
RPC_TIMEOUT_SECONDS = int(os.environ.get('BOUNTY_RPC_TIMEOUT', '10'))

ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'

# Fields of the Bounty struct returned by getBounty, in ABI order
_BOUNTY_COMPONENTS = [
    {'name': 'id', 'type': 'uint256'},
    {'name': 'domain', 'type': 'string'},
    {'name': 'description', 'type': 'string'},
    {'name': 'totalReward', 'type': 'uint256'},
    {'name': 'deadline', 'type': 'uint256'},
    {'name': 'status', 'type': 'uint8'},
    {'name': 'creator', 'type': 'address'},
    {'name': 'createdAt', 'type': 'uint256'},
    {'name': 'keywords', 'type': 'string[]'},
    {'name': 'hashedKeywords', 'type': 'bytes32[]'},
]
_DOMAIN_INDEX = 1
_KEYWORDS_INDEX = 8

BOUNTY_FACTORY_ABI = [
    {
        'type': 'function',
        'name': 'getBounty',
        'inputs': [{'name': '_bountyId', 'type': 'uint256'}],
        'outputs': [{'name': '', 'type': 'tuple', 'components': _BOUNTY_COMPONENTS}],
        'stateMutability': 'view',
    },
    {
        'type': 'function',
        'name': 'getEscrowAddress',
        'inputs': [{'name': '_bountyId', 'type': 'uint256'}],
        'outputs': [{'name': '', 'type': 'address'}],
        'stateMutability': 'view',
    },
]


def _connect_factory():
    """
    Build a contract handle for the configured bounty factory.

    Raises:
        ConfigurationError: If the RPC URL or factory address is not set
    """
    if not BOUNTY_RPC_URL or not BOUNTY_FACTORY_ADDRESS:
        raise ConfigurationError(
            "BOUNTY_RPC_URL and BOUNTY_FACTORY_ADDRESS environment variables are required "
            "to read bounty requirements from chain"
        )

    w3 = Web3(Web3.HTTPProvider(BOUNTY_RPC_URL, request_kwargs={'timeout': RPC_TIMEOUT_SECONDS}))
    logger.info(f"Connected bounty factory reader: factory={BOUNTY_FACTORY_ADDRESS}")
    return w3.eth.contract(
        address=Web3.to_checksum_address(BOUNTY_FACTORY_ADDRESS),
        abi=BOUNTY_FACTORY_ABI
    )


def _field(record: Any, name: str, index: int) -> Any:
    # Struct outputs decode as tuples; some providers hand back dict-like records
    if isinstance(record, dict):
        return record.get(name)
    return record[index]


class BountyReader:
    """Reads bounty requirements from the factory contract."""

    def __init__(self, contract: Optional[Any] = None):
        self._contract = contract

    @property
    def contract(self):
        if self._contract is None:
            self._contract = _connect_factory()
        return self._contract

    def get_requirement(self, bounty_id: str) -> BountyRequirement:
        """
        Fetch the domain and keyword requirement of a bounty.

        Args:
            bounty_id: Bounty identifier (decimal string or int)

        Returns:
            BountyRequirement

        Raises:
            ValueError: If the id is not numeric or the bounty does not exist
        """
        try:
            numeric_id = int(str(bounty_id).strip())
        except ValueError:
            raise ValueError(f"Bounty ID must be numeric, got: {bounty_id!r}")

        escrow = self.contract.functions.getEscrowAddress(numeric_id).call()
        if not escrow or str(escrow).lower() == ZERO_ADDRESS:
            logger.warning(f"Bounty not found on chain: {numeric_id}")
            raise ValueError(f"Bounty not found: {numeric_id}")

        record = self.contract.functions.getBounty(numeric_id).call()
        domain = _field(record, 'domain', _DOMAIN_INDEX) or ''
        keywords = list(_field(record, 'keywords', _KEYWORDS_INDEX) or [])

        logger.info(f"Loaded bounty {numeric_id}: domain={domain}, keywords={len(keywords)}")
        return BountyRequirement(
            bounty_id=str(numeric_id),
            required_domain=domain,
            required_keywords=keywords
        )
