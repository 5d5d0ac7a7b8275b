"""
Verification predicates.

A predicate is a named, pure rule over an ``ErgoBox``: it returns ``None`` when
the box satisfies the rule and raises a ``BoxVerificationError`` subclass when
it does not. Two predicates are equal only when they share both the name and
the rule function, so a look-alike predicate never passes for a registered one.

Built-in rules:

    box_with_ergs     value > 1_000_000 nanoErgs
    oracle_box_long   Long datapoint in R4 and a single NFT
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from epf.errors import (
    BoxVerificationError,
    InvalidErgsValue,
    InvalidOracleBox,
    InvalidTokens,
)
from epf.ledger import ErgoBox
from epf.registers import ConstantType

Rule = Callable[[ErgoBox], None]

# nanoErgs a box must exceed to be spent for its Ergs
MIN_ERGS_VALUE = 1_000_000


@dataclass(frozen=True)
class Predicate:
    """A named verification rule."""
    name: str
    rule: Rule = field(repr=False)
    description: str = field(default="", compare=False)

    def __call__(self, box: ErgoBox) -> None:
        self.rule(box)

    def check(self, box: ErgoBox) -> Optional[BoxVerificationError]:
        """Run the rule, returning the failure instead of raising it."""
        try:
            self.rule(box)
        except BoxVerificationError as e:
            return e
        return None

    def holds(self, box: ErgoBox) -> bool:
        return self.check(box) is None


_registry: Dict[str, Predicate] = {}
_registry_lock = threading.Lock()


def register(pred: Predicate) -> Predicate:
    """Add a predicate to the registry.

    Names are unique: registering a different rule under a taken name raises
    ``ValueError``. Re-registering the same rule is a no-op.
    """
    with _registry_lock:
        existing = _registry.get(pred.name)
        if existing is not None:
            if existing.rule is not pred.rule:
                raise ValueError(f"predicate name already registered: {pred.name}")
            return existing
        _registry[pred.name] = pred
        return pred


def predicate(name: str, description: str = "") -> Callable[[Rule], Predicate]:
    """Decorator turning a rule function into a registered ``Predicate``."""
    def decorator(rule: Rule) -> Predicate:
        return register(Predicate(name=name, rule=rule, description=description or (rule.__doc__ or "").strip()))
    return decorator


def get_predicate(name: str) -> Predicate:
    with _registry_lock:
        try:
            return _registry[name]
        except KeyError:
            raise KeyError(f"unknown predicate: {name}") from None


def registered_predicates() -> List[str]:
    with _registry_lock:
        return sorted(_registry)


# =============================================================================
# BUILT-IN RULES
# =============================================================================

@predicate("box_with_ergs")
def box_with_ergs(box: ErgoBox) -> None:
    """The box holds more than 1000000 nanoErgs."""
    if box.value <= MIN_ERGS_VALUE:
        raise InvalidErgsValue(f"Box did not have more than {MIN_ERGS_VALUE - 1} nanoErgs inside.")


def extract_long_datapoint(box: ErgoBox) -> int:
    """Extract the Long datapoint held in R4."""
    if not box.registers:
        raise InvalidOracleBox("No datapoint in R4.")
    r4 = box.registers[0]
    if r4.tpe is not ConstantType.LONG:
        raise InvalidOracleBox("Value in R4 is not a Long.")
    return r4.value


@predicate("oracle_box_long")
def oracle_box_long(box: ErgoBox) -> None:
    """The box holds a Long datapoint in R4 and exactly one NFT."""
    extract_long_datapoint(box)

    if len(box.tokens) != 1:
        raise InvalidTokens("The oracle box is required to only hold a single NFT token.")
    if box.tokens[0].amount != 1:
        raise InvalidTokens("The oracle box is required to only hold a single NFT token.")
