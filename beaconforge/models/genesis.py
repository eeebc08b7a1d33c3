"""Genesis deposit data and chain parameters.

Deposit values come back from the merge step as raw shell output. They are
validated here, once, so nothing downstream ever sees an empty or
non-hex value.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from beaconforge.catalog import ENV_DEPOSIT_COUNT, ENV_DEPOSIT_ROOT

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]+$")


class DepositDataError(ValueError):
    """Raised when a deposit count or root is empty or not 0x-prefixed hex."""


def check_hex(field: str, value: str) -> str:
    """Return *value* if it is non-empty ``0x`` hex, else raise DepositDataError."""
    if not value:
        raise DepositDataError(f"{field} is empty")
    if not _HEX_RE.match(value):
        raise DepositDataError(f"{field} is not 0x-prefixed hex: {value!r}")
    return value


class GenesisDepositData(BaseModel):
    """Aggregate deposit count and root, computed once per network."""

    model_config = ConfigDict(frozen=True)

    deposit_count: str
    deposit_root: str

    @field_validator("deposit_count", "deposit_root")
    @classmethod
    def _must_be_hex(cls, value: str, info: ValidationInfo) -> str:
        return check_hex(info.field_name, value)

    @classmethod
    def from_outputs(cls, count_output: str, root_output: str) -> GenesisDepositData:
        """Build from the two remote read outputs.

        Trailing newlines and whitespace are stripped. Raises
        DepositDataError (not pydantic's ValidationError) on bad values.
        """
        count = check_hex("deposit_count", (count_output or "").strip())
        root = check_hex("deposit_root", (root_output or "").strip())
        return cls(deposit_count=count, deposit_root=root)

    @property
    def count(self) -> int:
        return int(self.deposit_count, 16)

    def as_env(self) -> dict[str, str]:
        return {
            ENV_DEPOSIT_COUNT: self.deposit_count,
            ENV_DEPOSIT_ROOT: self.deposit_root,
        }


class ChainParams(BaseModel):
    """Chain-wide identifiers and deposit parameters shared by every node."""

    model_config = ConfigDict(frozen=True)

    chain_id: str = "beacon-kit"
    eth_chain_id: str = "80087"
    network: str = "VALUE"
    keyring_backend: str = "test"
    minimum_gas_price: str = "0abgt"
    chain_spec: str = "devnet"
    withdrawal_address: str = "0x20f33ce90a13a4b5e7697e3544c3083b8f8a51d4"
    deposit_amount: str = "32000000000"
    kzg_implementation: str = "crate-crypto/go-kzg-4844"
