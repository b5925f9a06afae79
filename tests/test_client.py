"""
Tests for transaction lifecycle resolution in EthClient.
"""
import threading

import pytest
import requests
from hexbytes import HexBytes
from unittest.mock import MagicMock, PropertyMock
from web3.exceptions import TransactionIndexingInProgress, TransactionNotFound, Web3Exception

from ethadapter_sdk import EthClient
from ethadapter_sdk.exceptions import NetworkError, NotFoundError, RevertedError, TransportError
from ethadapter_sdk.signer import SignerScheme
from ethadapter_sdk.types import SignerKind, TxState
from conftest import TEST_RPC_URL, TEST_TX_HASH


def test_pending_transaction(client, mock_w3, legacy_tx, make_rpc_tx):
    """A transaction without a block is pending with zero confirmations."""
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx)

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.state == TxState.PENDING
    assert record.confirmations == 0
    assert record.block_number is None
    assert record.signer == SignerScheme(SignerKind.EIP155, 1)
    assert record.transaction.encode() == legacy_tx.encode()
    mock_w3.eth.get_transaction.assert_called_once_with(TEST_TX_HASH)
    mock_w3.eth.get_transaction_receipt.assert_not_called()
    mock_w3.eth.get_block.assert_not_called()


def test_receipt_indexing_in_progress_is_pending(client, mock_w3, legacy_tx, make_rpc_tx):
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx, block_number=100)
    mock_w3.eth.get_transaction_receipt.side_effect = TransactionIndexingInProgress("transaction indexing is in progress")

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.state == TxState.PENDING
    mock_w3.eth.get_block.assert_not_called()


@pytest.mark.parametrize("chain_id", [1, 5, 11155111, 999999])
def test_pending_depth_independent_of_chain(client, mock_w3, legacy_tx, make_rpc_tx, chain_id):
    mock_w3.eth.chain_id = chain_id
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx)

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.state == TxState.PENDING
    assert record.confirmations == 0
    assert record.signer == SignerScheme(SignerKind.EIP155, chain_id)


def test_transaction_not_found(client, mock_w3):
    mock_w3.eth.get_transaction.side_effect = TransactionNotFound("not found")

    with pytest.raises(NotFoundError) as exc_info:
        client.resolve_transaction(TEST_TX_HASH)

    assert exc_info.value.tx_hash == TEST_TX_HASH
    mock_w3.eth.get_transaction_receipt.assert_not_called()


def test_missing_receipt_is_pending(client, mock_w3, legacy_tx, make_rpc_tx):
    """A transaction observed in a block but without a receipt is not yet confirmable."""
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx, block_number=100)
    mock_w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("no receipt")

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.state == TxState.PENDING
    assert record.confirmations == 0
    assert record.signer.kind == SignerKind.EIP155
    mock_w3.eth.get_block.assert_not_called()


def test_reverted_transaction(client, mock_w3, legacy_tx, make_rpc_tx, make_receipt):
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx, block_number=15_000_000)
    mock_w3.eth.get_transaction_receipt.return_value = make_receipt(15_000_000, status=0)

    with pytest.raises(RevertedError) as exc_info:
        client.resolve_transaction(TEST_TX_HASH)

    assert exc_info.value.tx_hash == TEST_TX_HASH
    assert exc_info.value.block_number == 15_000_000
    mock_w3.eth.get_block.assert_not_called()


@pytest.mark.parametrize("depth", [0, 1, 12, 1000])
def test_confirmed_depth(client, mock_w3, legacy_tx, make_rpc_tx, make_receipt, depth):
    inclusion = 15_000_000
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx, block_number=inclusion)
    mock_w3.eth.get_transaction_receipt.return_value = make_receipt(inclusion)
    mock_w3.eth.get_block.return_value = {"number": inclusion + depth}

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.state == TxState.CONFIRMED
    assert record.confirmations == depth
    assert record.block_number == inclusion
    assert record.signer == SignerScheme(SignerKind.LONDON, 1)
    assert record.transaction.signer == record.signer
    mock_w3.eth.get_block.assert_called_once_with("latest")


@pytest.mark.parametrize("inclusion, kind", [
    (1_000_000, SignerKind.FRONTIER),
    (2_000_000, SignerKind.HOMESTEAD),
    (5_000_000, SignerKind.EIP155),
    (12_500_000, SignerKind.EIP2930),
    (12_965_000, SignerKind.LONDON),
])
def test_confirmed_signer_follows_inclusion_era(client, mock_w3, legacy_tx, make_rpc_tx, make_receipt, inclusion, kind):
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx, block_number=inclusion)
    mock_w3.eth.get_transaction_receipt.return_value = make_receipt(inclusion)
    mock_w3.eth.get_block.return_value = {"number": 20_000_000}

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.signer.kind == kind


def test_unknown_chain_uses_fallback_signer(client, mock_w3, legacy_tx, make_rpc_tx, make_receipt):
    """Unknown chain, included at 100, head at 100."""
    mock_w3.eth.chain_id = 424242
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx, block_number=100)
    mock_w3.eth.get_transaction_receipt.return_value = make_receipt(100)
    mock_w3.eth.get_block.return_value = {"number": 100}

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.state == TxState.CONFIRMED
    assert record.confirmations == 0
    assert record.signer == SignerScheme(SignerKind.LONDON, 424242)


def test_head_behind_inclusion_clamps_to_zero(client, mock_w3, legacy_tx, make_rpc_tx, make_receipt):
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx, block_number=500)
    mock_w3.eth.get_transaction_receipt.return_value = make_receipt(500)
    mock_w3.eth.get_block.return_value = {"number": 498}
    client.logger = MagicMock()

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.state == TxState.CONFIRMED
    assert record.confirmations == 0
    client.logger.warning.assert_called_once()


def test_resolve_accepts_raw_hash(client, mock_w3, legacy_tx, make_rpc_tx):
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx)

    record = client.resolve_transaction(bytes.fromhex("ab" * 32))

    assert record.tx_hash == TEST_TX_HASH
    mock_w3.eth.get_transaction.assert_called_once_with(TEST_TX_HASH)


@pytest.mark.parametrize("bad_hash", ["0x1234", "zz" * 32, b"\x00" * 31, 12345])
def test_resolve_rejects_malformed_hash(client, mock_w3, bad_hash):
    with pytest.raises(ValueError):
        client.resolve_transaction(bad_hash)
    mock_w3.eth.get_transaction.assert_not_called()


def test_cancel_during_receipt_query_is_transport_error(client, mock_w3, legacy_tx, make_rpc_tx):
    """Cancellation while the receipt query is in flight must not look like an absence."""
    cancel = threading.Event()
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx, block_number=100)

    def _receipt(tx_hash):
        cancel.set()
        raise TransactionNotFound("no receipt")

    mock_w3.eth.get_transaction_receipt.side_effect = _receipt

    with pytest.raises(TransportError) as exc_info:
        client.resolve_transaction(TEST_TX_HASH, cancel=cancel)

    assert exc_info.value.cancelled is True
    mock_w3.eth.get_block.assert_not_called()


def test_cancel_during_lookup_is_not_not_found(client, mock_w3):
    cancel = threading.Event()

    def _lookup(tx_hash):
        cancel.set()
        raise TransactionNotFound("not found")

    mock_w3.eth.get_transaction.side_effect = _lookup

    with pytest.raises(TransportError):
        client.resolve_transaction(TEST_TX_HASH, cancel=cancel)


def test_cancel_before_start_issues_no_query(client, mock_w3):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(TransportError, match="cancelled"):
        client.resolve_transaction(TEST_TX_HASH, cancel=cancel)

    mock_w3.eth.get_transaction.assert_not_called()


def test_transport_failure_on_lookup(client, mock_w3):
    mock_w3.eth.get_transaction.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(TransportError, match="connection refused") as exc_info:
        client.resolve_transaction(TEST_TX_HASH)

    assert exc_info.value.cancelled is False
    assert isinstance(exc_info.value.__cause__, requests.ConnectionError)


def test_transport_failure_on_head_query(client, mock_w3, legacy_tx, make_rpc_tx, make_receipt):
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(legacy_tx, block_number=100)
    mock_w3.eth.get_transaction_receipt.return_value = make_receipt(100)
    mock_w3.eth.get_block.side_effect = Web3Exception("header unavailable")

    with pytest.raises(TransportError, match="fetching header"):
        client.resolve_transaction(TEST_TX_HASH)


def test_timeout_is_transport_error(client, mock_w3):
    mock_w3.eth.get_transaction.side_effect = requests.Timeout("read timed out")

    with pytest.raises(TransportError, match="read timed out"):
        client.resolve_transaction(TEST_TX_HASH)


def test_dynamic_fee_transaction_confirmed(client, mock_w3, dynamic_fee_tx, make_rpc_tx, make_receipt):
    mock_w3.eth.chain_id = 11155111
    mock_w3.eth.get_transaction.return_value = make_rpc_tx(dynamic_fee_tx, block_number=6_000_000)
    mock_w3.eth.get_transaction_receipt.return_value = make_receipt(6_000_000)
    mock_w3.eth.get_block.return_value = {"number": 6_000_003}

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.confirmations == 3
    assert record.transaction.hash == dynamic_fee_tx.hash
    assert record.transaction.sender() == dynamic_fee_tx.sender()


def test_deposit_transaction_without_chain_id(client, mock_w3, make_receipt):
    """Rollup deposit transactions carry no chain id and no signature but still resolve."""
    mock_w3.eth.chain_id = 10
    mock_w3.eth.get_transaction.return_value = {
        "hash": HexBytes(TEST_TX_HASH),
        "type": 0x7E,
        "nonce": 0,
        "gas": 100000,
        "from": "0xDeaDDEaDDeAdDeAdDEAdDEaddeAddEAdDEAd0001",
        "to": "0x4200000000000000000000000000000000000015",
        "value": 0,
        "input": HexBytes("0x440a5e20"),
        "sourceHash": HexBytes(b"\x22" * 32),
        "mint": 0,
        "v": 0,
        "r": HexBytes(b""),
        "s": HexBytes(b""),
        "blockNumber": 100,
        "blockHash": HexBytes(b"\x11" * 32),
    }
    mock_w3.eth.get_transaction_receipt.return_value = make_receipt(100)
    mock_w3.eth.get_block.return_value = {"number": 105}

    record = client.resolve_transaction(TEST_TX_HASH)

    assert record.state == TxState.CONFIRMED
    assert record.confirmations == 5
    assert record.signer == SignerScheme(SignerKind.LONDON, 10)
    assert record.transaction.tx_type == 0x7E
    assert record.transaction.chain_id is None
    with pytest.raises(ValueError, match="cannot be encoded"):
        record.transaction.encode()


class TestClientConfiguration:
    """Test client construction and network checks."""

    def test_rejects_plain_http_remote(self):
        with pytest.raises(ValueError, match="https"):
            EthClient(rpc_url="http://rpc.example.com")

    @pytest.mark.parametrize("url", ["http://localhost:8545", "http://127.0.0.1:8545/"])
    def test_allows_plain_http_local(self, url):
        assert EthClient(rpc_url=url).rpc_url == url

    def test_from_network(self):
        client = EthClient.from_network("sepolia", rpc_url="https://override.example.com")
        assert client.rpc_url == "https://override.example.com"
        assert client.expected_chain_id == 11155111

    def test_from_network_unknown(self):
        with pytest.raises(NetworkError, match="Unknown network"):
            EthClient.from_network("no-such-network")

    def test_assert_chain_id_mismatch(self, mock_w3):
        client = EthClient.from_network("sepolia")
        client.w3 = mock_w3

        with pytest.raises(NetworkError, match="Chain ID mismatch"):
            client.assert_chain_id()

    def test_assert_chain_id_match(self, mock_w3):
        client = EthClient(rpc_url=TEST_RPC_URL, expected_chain_id=1)
        client.w3 = mock_w3
        client.assert_chain_id()

    def test_assert_chain_id_without_expectation_warns(self, client):
        client.logger = MagicMock()
        client.assert_chain_id()
        client.logger.warning.assert_called_once()
        assert "No expected chain ID set" in client.logger.warning.call_args[0][0]

    def test_assert_chain_id_transport_failure(self):
        client = EthClient(rpc_url=TEST_RPC_URL, expected_chain_id=1)
        mock_w3 = MagicMock()
        type(mock_w3.eth).chain_id = PropertyMock(side_effect=Web3Exception("RPC error"))
        client.w3 = mock_w3

        with pytest.raises(NetworkError, match="Failed to validate chain ID"):
            client.assert_chain_id()
