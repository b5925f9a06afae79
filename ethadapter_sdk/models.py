"""
Data models for the ethadapter SDK.
"""
from typing import Dict, Any, Optional, List

from hexbytes import HexBytes
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .signer import SignerScheme
from .transaction import Transaction
from .types import TxState


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    # Pre-Byzantium receipts carry a state root instead of a status
    status: Optional[int] = None
    gas_used: int = Field(0, alias="gasUsed")
    from_address: Optional[str] = Field(None, alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    contract_address: Optional[str] = Field(None, alias="contractAddress")
    logs: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status != 0


class TransactionRecord(BaseModel):
    """
    Result of resolving a transaction against current chain state.

    ``confirmations`` is only meaningful when ``state`` is confirmed and is
    zero otherwise.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    tx_hash: str
    transaction: Transaction
    signer: SignerScheme
    state: TxState
    confirmations: int = Field(0, ge=0)
    block_number: Optional[int] = None

    @model_validator(mode="after")
    def _depth_requires_confirmation(self) -> "TransactionRecord":
        if self.state != TxState.CONFIRMED and self.confirmations != 0:
            raise ValueError(f"confirmations must be 0 for a {self.state.value} transaction")
        return self


class AccountSnapshot(BaseModel):
    """Nonce and balance of one address at the current chain head"""
    model_config = ConfigDict(frozen=True)

    address: str
    nonce: int = Field(..., ge=0)
    balance: int = Field(..., ge=0)


class CallInvocation(BaseModel):
    """Read-only contract invocation"""
    model_config = ConfigDict(frozen=True)

    to: str
    data: bytes = b""

    def to_call_params(self) -> Dict[str, Any]:
        return {"to": self.to, "data": HexBytes(self.data)}
