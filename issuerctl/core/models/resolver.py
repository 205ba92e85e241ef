"""
ResolverSettings — per-network parameters consumed by the platform binary.

The document is keyed chain family → network name → parameter record.
Field aliases carry the exact key spelling the platform expects.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class NetworkParameters(BaseModel):
    """Connection and transaction parameters for one network."""

    model_config = ConfigDict(populate_by_name=True)

    network_url: str = Field(alias="networkURL")
    chain_id: int = Field(alias="chainID")
    default_gas_limit: int = Field(600000, alias="defaultGasLimit")
    max_gas_price: int = Field(alias="maxGasPrice")
    confirmation_timeout: str = Field("600s", alias="confirmationTimeout")
    confirmation_block_count: int = Field(alias="confirmationBlockCount")
    receipt_timeout: str = Field("600s", alias="receiptTimeout")
    min_gas_price: int = Field(0, alias="minGasPrice")
    rpc_response_timeout: str = Field("5s", alias="rpcResponseTimeout")
    wait_receipt_cycle_time: str = Field("30s", alias="waitReceiptCycleTime")
    wait_block_cycle_time: str = Field("30s", alias="waitBlockCycleTime")
    contract_address: str = Field(alias="contractAddress")
    multicall_address: str = Field(alias="multicallAddress")


ResolverSettings = dict[str, dict[str, NetworkParameters]]
