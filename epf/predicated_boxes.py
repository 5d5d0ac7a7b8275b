"""
Predicated Boxes

Wrapper types for ``ErgoBox`` which have a predicate applied to them on
creation. The type of the wrapper tells an Action exactly which checks its
inputs have passed, so Actions can declare very specific input types and never
re-validate.

    PredicatedBox            capability: .predicate, .get_box()
    ├── StageBox[ST]         any predicate, tagged with a protocol stage
    ├── ErgsBox              box_with_ergs
    └── OracleBoxLong        oracle_box_long, exposes .datapoint

Every wrapper is a snapshot guarantee: the box satisfied the predicate when the
wrapper was built. Wrappers are immutable; there is no way to build one without
running its predicate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import (
    Any,
    Callable,
    Generic,
    Iterable,
    List,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from epf.config import get_config
from epf.errors import BoxVerificationError
from epf.ledger import ErgoBox, NanoErg, UnsignedInput
from epf.observability import EpfLayer, get_logger
from epf.predicates import (
    Predicate,
    box_with_ergs,
    extract_long_datapoint,
    oracle_box_long,
)

logger = get_logger("predicated_boxes", EpfLayer.BOX)


def _verify(box: ErgoBox, pred: Predicate, kind: str) -> ErgoBox:
    """Run ``pred`` against ``box`` and return a snapshot of it.

    The predicate's exception propagates unchanged.
    """
    if not isinstance(pred, Predicate):
        raise TypeError(f"{kind} requires a Predicate, got {type(pred).__name__}")
    try:
        pred(box)
    except BoxVerificationError as e:
        if get_config().verification.log_rejections.get():
            logger.info(
                f"{kind} rejected box",
                operation="verify",
                error_code=e.code,
                box_id=box.box_id,
                predicate=pred.name,
                reason=str(e),
            )
        raise
    logger.debug(f"{kind} verified box", operation="verify", box_id=box.box_id, predicate=pred.name)
    return box.snapshot()


class PredicatedBox(ABC):
    """A box which has been checked against a predicate."""

    __slots__ = ()

    @property
    @abstractmethod
    def predicate(self) -> Predicate:
        """The predicate the box was verified against."""

    @abstractmethod
    def get_box(self) -> ErgoBox:
        """The verified box."""

    @property
    def box_id(self) -> str:
        return self.get_box().box_id

    @property
    def value(self) -> NanoErg:
        return self.get_box().value

    def to_input(self) -> UnsignedInput:
        return self.get_box().to_input()

    def _key(self) -> Tuple[Any, ...]:
        return (type(self), self.predicate, self.get_box())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PredicatedBox):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(box_id={self.box_id!r}, predicate={self.predicate.name!r})"


# =============================================================================
# STAGE BOXES
# =============================================================================

class StageType:
    """Marker for a protocol stage.

    Subclass once per stage; the subclass itself is the stage's identity and
    instances carry no data.

        class PoolStage(StageType): pass
    """

    __slots__ = ()

    @classmethod
    def new(cls) -> "StageType":
        return cls()

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


ST = TypeVar("ST", bound=StageType)


def marker_type(stage: Union[StageType, Type[StageType]]) -> Type[StageType]:
    marker = stage if isinstance(stage, type) else type(stage)
    if not issubclass(marker, StageType) or marker is StageType:
        raise TypeError(f"not a stage marker: {stage!r}")
    return marker


class StageBox(PredicatedBox, Generic[ST]):
    """A predicated box which has been verified to be at a given stage.

    ``StageBox[PoolStage]`` guarantees at the type level that the box can be
    used as a pool-stage input of an Action. Use ``is_stage``/``expect_stage``
    where the stage also has to be checked at runtime.
    """

    __slots__ = ("_box", "_predicate", "_stage")

    def __init__(self, box: ErgoBox, predicate: Predicate, stage: Union[ST, Type[ST]]):
        marker = marker_type(stage)
        self._box = _verify(box, predicate, f"StageBox[{marker.__name__}]")
        self._predicate = predicate
        self._stage: ST = marker.new()  # type: ignore[assignment]

    @classmethod
    def new(cls, box: ErgoBox, predicate: Predicate, stage: Union[ST, Type[ST]]) -> "StageBox[ST]":
        return cls(box, predicate, stage)

    @property
    def predicate(self) -> Predicate:
        return self._predicate

    @property
    def stage(self) -> ST:
        return self._stage

    def get_box(self) -> ErgoBox:
        return self._box

    def is_stage(self, stage: Union[StageType, Type[StageType]]) -> bool:
        return type(self._stage) is marker_type(stage)

    def expect_stage(self, stage: Union[ST, Type[ST]]) -> "StageBox[ST]":
        """Return self if the box is at ``stage``, else raise ``TypeError``."""
        if not self.is_stage(stage):
            raise TypeError(
                f"expected a {marker_type(stage).__name__} box, got {type(self._stage).__name__}"
            )
        return self

    def _key(self) -> Tuple[Any, ...]:
        return super()._key() + (self._stage,)

    def __repr__(self) -> str:
        return (
            f"StageBox[{type(self._stage).__name__}]"
            f"(box_id={self.box_id!r}, predicate={self._predicate.name!r})"
        )


# =============================================================================
# ERGS BOX
# =============================================================================

class ErgsBox(PredicatedBox):
    """A predicated box intended to be spent for the Ergs inside.

    The box must hold more than 1000000 nanoErgs.
    """

    __slots__ = ("_box",)

    def __init__(self, box: ErgoBox):
        self._box = _verify(box, box_with_ergs, "ErgsBox")

    @property
    def predicate(self) -> Predicate:
        return box_with_ergs

    def get_box(self) -> ErgoBox:
        return self._box


# =============================================================================
# ORACLE BOX
# =============================================================================

class OracleBoxLong(PredicatedBox):
    """An oracle box which stores a Long datapoint in R4.

    This may be an Oracle Pool box or any other kind of oracle box. The box
    must also hold exactly one token with an amount of 1 (an NFT). The
    datapoint is extracted once and exposed as ``datapoint``.
    """

    __slots__ = ("_box", "_datapoint")

    def __init__(self, box: ErgoBox):
        self._box = _verify(box, oracle_box_long, "OracleBoxLong")
        self._datapoint = extract_long_datapoint(self._box)

    @property
    def predicate(self) -> Predicate:
        return oracle_box_long

    @property
    def datapoint(self) -> int:
        return self._datapoint

    @property
    def nft_id(self) -> str:
        return self._box.tokens[0].token_id

    def get_box(self) -> ErgoBox:
        return self._box


# =============================================================================
# HELPERS
# =============================================================================

B = TypeVar("B", bound=PredicatedBox)


def sum_values(boxes: Iterable[PredicatedBox]) -> NanoErg:
    """Sum the nanoErg value of a list of predicated boxes."""
    return sum(pb.get_box().value for pb in boxes)


def unwrap_entries(boxes: Iterable[PredicatedBox]) -> List[ErgoBox]:
    """Unwrap a list of predicated boxes into their ``ErgoBox``es."""
    return [pb.get_box() for pb in boxes]


def to_transaction_inputs(boxes: Iterable[PredicatedBox]) -> List[UnsignedInput]:
    """Convert a list of predicated boxes into transaction inputs."""
    return [pb.get_box().to_input() for pb in boxes]


def partition_boxes(
    boxes: Iterable[ErgoBox],
    wrapper: Callable[[ErgoBox], B],
) -> Tuple[List[B], List[Tuple[ErgoBox, BoxVerificationError]]]:
    """Wrap every box that passes, and collect the ones that do not.

    Returns: (wrapped, rejected) where ``rejected`` pairs each failing box with
    the error its predicate raised. Both lists keep input order.
    """
    wrapped: List[B] = []
    rejected: List[Tuple[ErgoBox, BoxVerificationError]] = []
    for box in boxes:
        try:
            wrapped.append(wrapper(box))
        except BoxVerificationError as e:
            rejected.append((box, e))
    return wrapped, rejected
