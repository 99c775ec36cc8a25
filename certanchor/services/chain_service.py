# certanchor/services/chain_service.py
"""
Read-only client for the certificate registry contract.

The contract exposes `verifyCertificate(bytes32)` returning
(studentName, courseName, issueTimestamp, issuer, universityName,
universityDomain, revoked, valid). No transactions are sent from here.
"""
import json
import logging
from typing import Optional, Tuple, Any

from web3 import Web3

logger = logging.getLogger(__name__)

CERTIFICATE_REGISTRY_ABI = [
    {
        "name": "verifyCertificate",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "certificateHash", "type": "bytes32"}],
        "outputs": [
            {"name": "studentName", "type": "string"},
            {"name": "courseName", "type": "string"},
            {"name": "issueTimestamp", "type": "uint256"},
            {"name": "issuer", "type": "address"},
            {"name": "universityName", "type": "string"},
            {"name": "universityDomain", "type": "string"},
            {"name": "revoked", "type": "bool"},
            {"name": "valid", "type": "bool"},
        ],
    }
]


class ChainClient:
    def __init__(self, rpc_url: str, contract_address: str, abi=None, timeout: float = 10.0):
        self.web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self.contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=abi or CERTIFICATE_REGISTRY_ABI,
        )

    def verify_certificate(self, content_hash_hex: str) -> Tuple[Any, ...]:
        """Calls the registry; network and revert errors propagate to the caller."""
        certificate_hash = Web3.to_bytes(hexstr=content_hash_hex)
        return tuple(self.contract.functions.verifyCertificate(certificate_hash).call())


def load_abi(path: str):
    with open(path, "r") as file:
        abi = json.load(file)
    # Hardhat/Truffle artifacts wrap the ABI.
    return abi["abi"] if isinstance(abi, dict) else abi


def build_chain_client(config) -> Optional[ChainClient]:
    """Returns a client for the configured contract, or None in store-only mode."""
    rpc_url = config.get("CHAIN_RPC_URL")
    contract_address = config.get("CONTRACT_ADDRESS")
    if not rpc_url or not contract_address:
        logger.info("No chain endpoint configured; certificates will be verified against the registry only.")
        return None

    abi_path = config.get("CONTRACT_ABI_PATH")
    abi = load_abi(abi_path) if abi_path else None
    client = ChainClient(rpc_url, contract_address, abi=abi, timeout=config.get("CHAIN_TIMEOUT", 10.0))
    logger.info(f"Chain client configured for contract {contract_address}")
    return client


def init_app(app):
    app.extensions["chain_client"] = build_chain_client(app.config)
