"""Ledger entries as supplied by the node layer.

``ErgoBox`` is an immutable snapshot of a UTXO box: value, tokens, registers
and the (opaque) ErgoTree script. The verification layer only ever reads these
records; fetching them is the node interface's job.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from epf.registers import Constant, decode_constant
from epf.schema import ERGO_BOX_SCHEMA, validate_against_schema

# A Base58 encoded String of a P2PK address.
P2PKAddress = str
# A Base58 encoded String of a P2S address.
P2SAddress = str
TxId = str
# The smallest unit of the Erg currency.
NanoErg = int
BlockHeight = int
# Duration in number of blocks.
BlockDuration = int
# Hex encoded token ID.
TokenID = str
# Identifier the node assigns to a registered scan.
ScanID = str

# Non-mandatory registers, in order.
REGISTER_NAMES = ("R4", "R5", "R6", "R7", "R8", "R9")


@dataclass(frozen=True)
class Token:
    """A token held in a box."""
    token_id: TokenID
    amount: int

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"token amount must be positive: {self.amount}")


@dataclass(frozen=True)
class UnsignedInput:
    """Reference to a box spent by an unsigned transaction."""
    box_id: str
    # context extension as (key, constant) pairs
    extension: Tuple[Tuple[int, Constant], ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {
            "boxId": self.box_id,
            "extension": {str(k): v.to_hex() for k, v in sorted(self.extension, key=lambda kv: kv[0])},
        }


@dataclass(frozen=True)
class ErgoBox:
    """An immutable ledger entry.

    ``registers`` holds the non-mandatory registers in order, so
    ``registers[0]`` is R4.
    """
    box_id: str
    value: NanoErg
    ergo_tree: bytes
    tokens: Tuple[Token, ...] = ()
    registers: Tuple[Constant, ...] = ()
    creation_height: BlockHeight = 0
    transaction_id: TxId = ""
    index: int = 0

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"box value must be non-negative: {self.value}")
        if len(self.registers) > len(REGISTER_NAMES):
            raise ValueError(f"box has {len(self.registers)} registers, at most {len(REGISTER_NAMES)} allowed")
        object.__setattr__(self, "ergo_tree", bytes(self.ergo_tree))
        object.__setattr__(self, "tokens", tuple(self.tokens))
        object.__setattr__(self, "registers", tuple(self.registers))

    def snapshot(self) -> "ErgoBox":
        """Return an equal copy of this box."""
        return replace(self)

    def register(self, name: str) -> Constant:
        """Look up a register by name, e.g. ``box.register("R4")``."""
        try:
            return self.registers[REGISTER_NAMES.index(name)]
        except (ValueError, IndexError):
            raise KeyError(name) from None

    def to_input(self) -> UnsignedInput:
        return UnsignedInput(box_id=self.box_id)

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> "ErgoBox":
        """Build a box from the node's JSON representation.

        Raises ``ValueError`` if the object does not match the box schema, if
        the registers are not densely packed from R4, or if a register value
        cannot be decoded.
        """
        errs = validate_against_schema(obj, ERGO_BOX_SCHEMA)
        if errs:
            raise ValueError(f"invalid box JSON: {errs[0]}")

        raw_registers = obj.get("additionalRegisters") or {}
        registers: List[Constant] = []
        for name in REGISTER_NAMES[:len(raw_registers)]:
            if name not in raw_registers:
                raise ValueError(f"registers must be densely packed from R4; missing {name}")
            try:
                registers.append(decode_constant(raw_registers[name]))
            except ValueError as e:
                raise ValueError(f"invalid register {name}: {e}") from e

        return cls(
            box_id=str(obj["boxId"]).lower(),
            value=int(obj["value"]),
            ergo_tree=bytes.fromhex(obj["ergoTree"]),
            tokens=tuple(
                Token(token_id=str(a["tokenId"]).lower(), amount=int(a["amount"]))
                for a in obj.get("assets") or []
            ),
            registers=tuple(registers),
            creation_height=int(obj.get("creationHeight", 0)),
            transaction_id=str(obj.get("transactionId", "")).lower(),
            index=int(obj.get("index", 0)),
        )

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "boxId": self.box_id,
            "value": self.value,
            "ergoTree": self.ergo_tree.hex(),
            "assets": [{"tokenId": t.token_id, "amount": t.amount} for t in self.tokens],
            "additionalRegisters": {
                name: c.to_hex() for name, c in zip(REGISTER_NAMES, self.registers)
            },
            "creationHeight": self.creation_height,
            "index": self.index,
        }
        if self.transaction_id:
            out["transactionId"] = self.transaction_id
        return out


def boxes_from_json(objs: Iterable[Mapping[str, Any]]) -> List[ErgoBox]:
    return [ErgoBox.from_json(o) for o in objs]
