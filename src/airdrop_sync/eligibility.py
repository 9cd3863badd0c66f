"""
Eligibility derivation from mint logs.

Reduces raw Transfer logs to the set of accounts that received a mint in the
scan window.
"""

import logging
from collections.abc import Iterable
from typing import Any

from web3 import Web3

from .models import LogEntry

logger = logging.getLogger(__name__)

# Index of the indexed `to` address in Transfer(address,address,uint256) topics
RECIPIENT_TOPIC_INDEX = 2


def topic_to_address(topic: Any) -> str:
    """
    Extract a right-aligned 20-byte address from a 32-byte topic.

    Ethereum event topics can come in different formats depending on the provider:
    - As bytes objects
    - As hex strings: "0x000000000000000000000000<40 hex chars>"

    :param topic: The topic to parse (bytes or str)
    :return: Checksummed address
    """
    if isinstance(topic, bytes):
        raw = topic[-20:]
    elif isinstance(topic, str):
        hex_str = topic[2:] if topic.startswith("0x") else topic
        raw = bytes.fromhex(hex_str[-40:])
    else:
        raise TypeError(f"Unsupported topic type: {type(topic).__name__}")
    return Web3.to_checksum_address(raw)


def derive_eligible(logs: Iterable[LogEntry]) -> set[str]:
    """Deduplicated set of mint recipients, in checksum form."""
    eligible: set[str] = set()
    total = 0
    for log in logs:
        eligible.add(topic_to_address(log.topics[RECIPIENT_TOPIC_INDEX]))
        total += 1

    if total:
        logger.info(f"Derived {len(eligible)} eligible accounts from {total} mint logs")
    return eligible


def canonical_order(addresses: Iterable[str]) -> list[str]:
    """Sort accounts into the order leaves are built in."""
    return sorted(Web3.to_checksum_address(a) for a in addresses)
