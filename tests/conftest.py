"""
Pytest fixtures for the ethadapter SDK tests.
"""
import pytest
from unittest.mock import MagicMock
from hexbytes import HexBytes
from eth_account import Account

from ethadapter_sdk.client import EthClient
from ethadapter_sdk.transaction import Transaction, TxBuilder

# Constants for testing
TEST_RPC_URL = "https://rpc.example.com"
# Well-known development key (hardhat/anvil account #0)
TEST_PRIV_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TEST_RECIPIENT = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
TEST_TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def test_account():
    return Account.from_key(TEST_PRIV_KEY)


@pytest.fixture
def mock_w3():
    """
    Mock Web3 instance with a mainnet chain id and an empty mempool.
    """
    w3 = MagicMock()
    w3.eth.chain_id = 1
    w3.eth.get_block.return_value = {"number": 0}
    return w3


@pytest.fixture
def client(mock_w3):
    """EthClient whose web3 instance is replaced by ``mock_w3``."""
    eth_client = EthClient(rpc_url=TEST_RPC_URL)
    eth_client.w3 = mock_w3
    return eth_client


@pytest.fixture
def legacy_tx():
    """EIP-155 signed legacy transfer on mainnet."""
    builder = TxBuilder(chain_id=1)
    params = builder.build_tx(
        to=TEST_RECIPIENT,
        value=10**16,
        nonce=7,
        gas_limit=21000,
        gas_price=20 * 10**9,
    )
    return builder.sign(params, TEST_PRIV_KEY)


@pytest.fixture
def dynamic_fee_tx():
    """EIP-1559 signed transfer on sepolia."""
    builder = TxBuilder(chain_id=11155111)
    params = builder.build_tx(
        to=TEST_RECIPIENT,
        value=1,
        nonce=3,
        gas_limit=50000,
        max_fee_per_gas=30 * 10**9,
        max_priority_fee_per_gas=2 * 10**9,
        data=b"\x01\x02",
    )
    return builder.sign(params, TEST_PRIV_KEY)


@pytest.fixture
def make_rpc_tx():
    """
    Render a Transaction the way web3 returns ``eth_getTransactionByHash``.
    """
    def _make(tx: Transaction, block_number=None):
        fields = tx.fields
        v, r, s = tx.signature
        data = {
            "hash": HexBytes(tx.hash),
            "type": tx.tx_type,
            "nonce": fields["nonce"],
            "gas": fields["gas"],
            "to": tx.to,
            "value": fields["value"],
            "input": HexBytes(fields["data"]),
            "v": v,
            "r": HexBytes(r.to_bytes(32, "big")),
            "s": HexBytes(s.to_bytes(32, "big")),
            "blockNumber": block_number,
            "blockHash": None if block_number is None else HexBytes(b"\x11" * 32),
        }
        if tx.tx_type == 0:
            data["gasPrice"] = fields["gas_price"]
        else:
            data["chainId"] = fields["chain_id"]
            data["yParity"] = v
            data["accessList"] = []
        if tx.tx_type == 2:
            data["maxFeePerGas"] = fields["max_fee_per_gas"]
            data["maxPriorityFeePerGas"] = fields["max_priority_fee_per_gas"]
            data["gasPrice"] = fields["max_fee_per_gas"]
        return data

    return _make


@pytest.fixture
def make_receipt():
    """Build a web3-style receipt."""
    def _make(block_number, status=1, tx_hash=TEST_TX_HASH):
        return {
            "transactionHash": HexBytes(tx_hash),
            "blockNumber": block_number,
            "blockHash": HexBytes(b"\x11" * 32),
            "status": status,
            "gasUsed": 21000,
            "from": TEST_ADDRESS,
            "to": TEST_RECIPIENT,
            "contractAddress": None,
            "logs": [],
        }

    return _make
