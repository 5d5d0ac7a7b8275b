"""
Protocol stages.

A ``Stage`` is one role a box can play in a protocol: the contract the box must
be locked by, plus the predicate the box must satisfy. ``Stage.box`` is the
usual way to obtain a ``StageBox``.

Scripts are opaque bytes here. Address decoding and any deeper script validity
check are supplied by the caller.
"""

from __future__ import annotations

from typing import Callable, Generic, Iterable, List, Optional, Type

from epf.config import get_config
from epf.errors import BoxVerificationError, InvalidErgoTree, InvalidP2SAddress
from epf.ledger import ErgoBox, P2SAddress
from epf.observability import EpfLayer, get_logger
from epf.predicated_boxes import ST, StageBox, marker_type
from epf.predicates import Predicate

logger = get_logger("stage", EpfLayer.STAGE)

ScriptCheck = Callable[[bytes], bool]
AddressDecoder = Callable[[P2SAddress], bytes]


class Stage(Generic[ST]):
    """A protocol stage: contract script, stage marker and predicate."""

    def __init__(
        self,
        marker: Type[ST],
        ergo_tree: bytes,
        predicate: Predicate,
        *,
        script_check: Optional[ScriptCheck] = None,
        address: P2SAddress = "",
    ):
        self.marker: Type[ST] = marker_type(marker)  # type: ignore[assignment]
        self.ergo_tree = bytes(ergo_tree)
        self.predicate = predicate
        self.script_check = script_check
        self.address = address

    @classmethod
    def from_address(
        cls,
        marker: Type[ST],
        address: P2SAddress,
        decoder: AddressDecoder,
        predicate: Predicate,
        *,
        script_check: Optional[ScriptCheck] = None,
    ) -> "Stage[ST]":
        """Build a stage from its P2S address.

        ``decoder`` turns the address into the contract's ErgoTree bytes and
        raises ``ValueError`` for an invalid address.
        """
        try:
            ergo_tree = decoder(address)
        except ValueError as e:
            raise InvalidP2SAddress(f"{address!r}: {e}") from e
        return cls(marker, ergo_tree, predicate, script_check=script_check, address=address)

    @property
    def name(self) -> str:
        return self.marker.__name__

    def _log_rejection(self, box: ErgoBox, error: BoxVerificationError, operation: str) -> None:
        if get_config().verification.log_rejections.get():
            logger.info(
                f"Box is not at stage {self.name}",
                operation=operation,
                error_code=error.code,
                box_id=box.box_id,
                reason=str(error),
            )

    def _check_contract(self, box: ErgoBox) -> None:
        error: Optional[InvalidErgoTree] = None
        if self.script_check is not None and not self.script_check(box.ergo_tree):
            error = InvalidErgoTree(f"Box {box.box_id} failed the script check of stage {self.name}.")
        elif box.ergo_tree != self.ergo_tree:
            error = InvalidErgoTree(f"Box {box.box_id} is not locked by the {self.name} contract.")
        if error is not None:
            self._log_rejection(box, error, "stage_contract")
            raise error

    def verify_box(self, box: ErgoBox) -> None:
        """Check that ``box`` is locked by the stage contract and passes the predicate."""
        self._check_contract(box)
        try:
            self.predicate(box)
        except BoxVerificationError as e:
            self._log_rejection(box, e, "stage_predicate")
            raise

    def box(self, box: ErgoBox) -> StageBox[ST]:
        """Verify ``box`` against this stage and wrap it."""
        self._check_contract(box)
        return StageBox(box, self.predicate, self.marker)

    def boxes(self, boxes: Iterable[ErgoBox]) -> List[StageBox[ST]]:
        """Wrap every box, failing on the first one that is not at this stage."""
        return [self.box(b) for b in boxes]

    def __repr__(self) -> str:
        return f"Stage({self.name}, predicate={self.predicate.name!r})"
