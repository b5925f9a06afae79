#!/usr/bin/env python3
"""
Example of using EthClient with network configuration.
"""
import os
import sys
import threading

from eth_account import Account

from ethadapter_sdk import EthClient, NetworkConfig, TxBuilder, TxState
from ethadapter_sdk.exceptions import ChainAdapterError, NotFoundError, RevertedError


def main():
    """
    Demonstrate usage of the EthClient with network-based configuration.

    This example shows how to:
    1. Initialize the client from a network configuration
    2. Read the sender's nonce and balance
    3. Build, sign and broadcast a transfer
    4. Resolve the transaction's lifecycle state
    """
    PRIVATE_KEY = os.environ.get("PRIVATE_KEY")
    RECIPIENT = os.environ.get("RECIPIENT")
    network = os.environ.get("NETWORK", "sepolia")

    if not PRIVATE_KEY or not RECIPIENT:
        print("ERROR: PRIVATE_KEY and RECIPIENT environment variables are required")
        return 1

    print("Available networks:")
    for network_name in NetworkConfig.load_networks().keys():
        print(f"  - {network_name}")
    print()

    client = EthClient.from_network(network)
    client.assert_chain_id()
    print(f"Connected to network: {network}")

    # Set from another thread (or a signal handler) to abandon the calls below
    cancel = threading.Event()

    builder = TxBuilder.from_client(client, cancel=cancel)
    sender = Account.from_key(PRIVATE_KEY).address

    snapshot = client.account_snapshot(sender, cancel=cancel)
    print(f"Sender {snapshot.address}: nonce {snapshot.nonce}, balance {snapshot.balance} wei")

    params = builder.build_tx(
        to=RECIPIENT,
        value=10**12,
        nonce=snapshot.nonce,
        gas_limit=21000,
        max_fee_per_gas=30 * 10**9,
        max_priority_fee_per_gas=10**9,
    )
    tx = builder.sign(params, PRIVATE_KEY)

    try:
        tx_hash = client.submit_transaction(tx, cancel=cancel)
        print(f"Transaction hash: 0x{tx_hash.hex()}")

        record = client.resolve_transaction(tx_hash, cancel=cancel)
        if record.state == TxState.CONFIRMED:
            print(f"Confirmed in block {record.block_number} ({record.confirmations} confirmations)")
        else:
            print("Transaction is pending")
    except NotFoundError:
        print("Node does not know the transaction yet")
    except RevertedError as e:
        print(f"Transaction reverted in block {e.block_number}")
    except ChainAdapterError as e:
        print(f"Error: {str(e)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
