"""
Predicated Box Tests

Covers the wrapper contract shared by every predicated box, stage boxes, the
two ready-made boxes and the collection helpers.

Run with: pytest tests/test_predicated_boxes.py -v
"""

import dataclasses
import logging

import pytest

from epf.config import get_config_manager
from epf.errors import (
    BoxVerificationError,
    InvalidErgsValue,
    InvalidOracleBox,
    InvalidRegisters,
    InvalidTokens,
)
from epf.ledger import ErgoBox, Token, UnsignedInput
from epf.predicated_boxes import (
    ErgsBox,
    OracleBoxLong,
    PredicatedBox,
    StageBox,
    StageType,
    partition_boxes,
    sum_values,
    to_transaction_inputs,
    unwrap_entries,
)
from epf.predicates import Predicate, box_with_ergs, oracle_box_long, predicate
from epf.registers import Constant


NFT_ID = "c3" * 32
TREE = bytes.fromhex("100204a00b08cd0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798ea02d192a39a8cc7a70173007301")


def _box(value=2_000_000, tokens=(), registers=(), box_id=None, n=0):
    return ErgoBox(
        box_id=box_id or f"{n:064x}",
        value=value,
        ergo_tree=TREE,
        tokens=tuple(tokens),
        registers=tuple(registers),
    )


def _oracle_box(datapoint=1_234_567, tokens=None, n=0):
    if tokens is None:
        tokens = (Token(NFT_ID, 1),)
    return _box(tokens=tokens, registers=(Constant.long(datapoint),), n=n)


class PoolStage(StageType):
    pass


class DepositStage(StageType):
    pass


_POOL_ERROR = InvalidRegisters("R5 does not hold the pool epoch")


@predicate("test_predicated_boxes.pool_box")
def pool_box(box):
    """The box carries the pool NFT."""
    if not box.tokens or box.tokens[0].token_id != NFT_ID:
        raise InvalidTokens("pool NFT missing")


@predicate("test_predicated_boxes.never")
def never(box):
    raise _POOL_ERROR


# =============================================================================
# ERGS BOX
# =============================================================================

class TestErgsBox:

    def test_value_at_threshold_is_rejected(self):
        with pytest.raises(InvalidErgsValue):
            ErgsBox(_box(value=1_000_000))

    def test_value_above_threshold_is_accepted(self):
        eb = ErgsBox(_box(value=1_000_001))
        assert eb.value == 1_000_001

    def test_exposes_fixed_predicate(self):
        eb = ErgsBox(_box())
        assert eb.predicate is box_with_ergs
        assert isinstance(eb, PredicatedBox)

    def test_holds_a_snapshot(self):
        raw = _box()
        eb = ErgsBox(raw)
        assert eb.get_box() == raw
        assert eb.get_box() is not raw
        assert eb.box_id == raw.box_id

    def test_is_read_only(self):
        eb = ErgsBox(_box())
        with pytest.raises(AttributeError):
            eb.predicate = oracle_box_long
        with pytest.raises(dataclasses.FrozenInstanceError):
            eb.get_box().value = 5

    def test_equality(self):
        assert ErgsBox(_box(n=1)) == ErgsBox(_box(n=1))
        assert ErgsBox(_box(n=1)) != ErgsBox(_box(n=2))
        assert len({ErgsBox(_box(n=1)), ErgsBox(_box(n=1))}) == 1


# =============================================================================
# ORACLE BOX
# =============================================================================

class TestOracleBoxLong:

    def test_valid_box_exposes_datapoint(self):
        ob = OracleBoxLong(_oracle_box(datapoint=987_654_321))
        assert ob.datapoint == 987_654_321
        assert ob.predicate is oracle_box_long
        assert ob.nft_id == NFT_ID

    def test_negative_and_extreme_datapoints(self):
        assert OracleBoxLong(_oracle_box(datapoint=-1)).datapoint == -1
        assert OracleBoxLong(_oracle_box(datapoint=2 ** 63 - 1)).datapoint == 2 ** 63 - 1

    def test_no_registers(self):
        with pytest.raises(InvalidOracleBox, match="No datapoint"):
            OracleBoxLong(_box(tokens=(Token(NFT_ID, 1),)))

    @pytest.mark.parametrize("tokens", [
        (),
        (Token(NFT_ID, 1),),
        (Token(NFT_ID, 1), Token("d4" * 32, 1)),
    ])
    def test_non_long_register_fails_regardless_of_tokens(self, tokens):
        box = _box(tokens=tokens, registers=(Constant.coll_byte(b"price"),))
        with pytest.raises(InvalidOracleBox, match="not a Long"):
            OracleBoxLong(box)

    def test_int_register_is_not_a_long(self):
        from epf.registers import ConstantType

        box = _box(tokens=(Token(NFT_ID, 1),), registers=(Constant(ConstantType.INT, 5),))
        with pytest.raises(InvalidOracleBox, match="not a Long"):
            OracleBoxLong(box)

    def test_two_tokens(self):
        with pytest.raises(InvalidTokens):
            OracleBoxLong(_oracle_box(tokens=(Token(NFT_ID, 1), Token("d4" * 32, 1))))

    @pytest.mark.parametrize("amount", [2, 1_000])
    def test_single_token_amount_not_one(self, amount):
        with pytest.raises(InvalidTokens):
            OracleBoxLong(_oracle_box(tokens=(Token(NFT_ID, amount),)))

    def test_no_tokens(self):
        with pytest.raises(InvalidTokens):
            OracleBoxLong(_oracle_box(tokens=()))


# =============================================================================
# STAGE BOX
# =============================================================================

class TestStageBox:

    def test_construct(self):
        raw = _box(tokens=(Token(NFT_ID, 1),))
        sb = StageBox(raw, pool_box, PoolStage)
        assert sb.predicate is pool_box
        assert sb.get_box() == raw
        assert sb.stage == PoolStage()
        assert isinstance(sb.stage, PoolStage)

    def test_new_accepts_marker_instance(self):
        sb = StageBox.new(_box(tokens=(Token(NFT_ID, 1),)), pool_box, PoolStage())
        assert sb.is_stage(PoolStage)

    def test_parameterised_construction(self):
        sb = StageBox[PoolStage](_box(tokens=(Token(NFT_ID, 1),)), pool_box, PoolStage)
        assert sb.is_stage(PoolStage())

    def test_failing_predicate_error_is_propagated_unchanged(self):
        with pytest.raises(InvalidRegisters) as exc_info:
            StageBox(_box(), never, PoolStage)
        assert exc_info.value is _POOL_ERROR

    def test_failing_predicate_specific_kind(self):
        with pytest.raises(InvalidTokens, match="pool NFT missing"):
            StageBox(_box(), pool_box, PoolStage)

    def test_stages_are_distinct(self):
        raw = _box(tokens=(Token(NFT_ID, 1),))
        pool = StageBox(raw, pool_box, PoolStage)
        deposit = StageBox(raw, pool_box, DepositStage)
        assert pool != deposit
        assert not pool.is_stage(DepositStage)
        assert pool.expect_stage(PoolStage) is pool
        with pytest.raises(TypeError, match="DepositStage"):
            pool.expect_stage(DepositStage)

    def test_lookalike_predicate_does_not_match_builtin(self):
        lookalike = Predicate("box_with_ergs", lambda box: None)
        sb = StageBox(_box(value=1), lookalike, PoolStage)
        assert sb.predicate != box_with_ergs

        raw = _box(tokens=(Token(NFT_ID, 1),))
        assert StageBox(raw, lookalike, PoolStage) != StageBox(raw, box_with_ergs, PoolStage)

    def test_requires_a_concrete_marker(self):
        with pytest.raises(TypeError):
            StageBox(_box(), pool_box, StageType)
        with pytest.raises(TypeError):
            StageBox(_box(), pool_box, int)

    def test_requires_a_named_predicate(self):
        with pytest.raises(TypeError, match="requires a Predicate"):
            StageBox(_box(), lambda box: None, PoolStage)

    def test_repr_names_stage(self):
        sb = StageBox(_box(tokens=(Token(NFT_ID, 1),)), pool_box, PoolStage)
        assert "StageBox[PoolStage]" in repr(sb)


# =============================================================================
# HELPERS
# =============================================================================

class TestHelpers:

    def test_sum_values(self):
        boxes = [ErgsBox(_box(value=2_000_000, n=1)), ErgsBox(_box(value=3_000_000, n=2))]
        assert sum_values(boxes) == 5_000_000

    def test_sum_values_empty(self):
        assert sum_values([]) == 0

    def test_sum_values_large(self):
        boxes = [ErgsBox(_box(value=2 ** 63 - 1, n=i)) for i in range(4)]
        assert sum_values(boxes) == 4 * (2 ** 63 - 1)

    def test_sum_values_no_dedup(self):
        eb = ErgsBox(_box(value=2_000_000))
        assert sum_values([eb, eb]) == 4_000_000

    def test_unwrap_entries_preserves_order(self):
        raws = [_box(n=i) for i in (3, 1, 2)]
        assert unwrap_entries([ErgsBox(b) for b in raws]) == raws

    def test_to_transaction_inputs_preserves_order(self):
        raws = [_box(n=i) for i in (3, 1, 2)]
        inputs = to_transaction_inputs([ErgsBox(b) for b in raws])
        assert inputs == [UnsignedInput(box_id=b.box_id) for b in raws]

    def test_helpers_accept_any_predicated_box(self):
        boxes = [ErgsBox(_box(n=1)), OracleBoxLong(_oracle_box(n=2))]
        assert [b.box_id for b in unwrap_entries(boxes)] == [f"{1:064x}", f"{2:064x}"]
        assert sum_values(boxes) == 4_000_000

    def test_partition_boxes(self):
        raws = [_box(value=v, n=i) for i, v in enumerate([5_000_000, 10, 2_000_000, 1_000_000])]
        wrapped, rejected = partition_boxes(raws, ErgsBox)

        assert [w.get_box() for w in wrapped] == [raws[0], raws[2]]
        assert [b for b, _ in rejected] == [raws[1], raws[3]]
        assert all(isinstance(e, InvalidErgsValue) for _, e in rejected)

    def test_partition_boxes_does_not_catch_other_errors(self):
        def broken(box):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            partition_boxes([_box()], broken)


# =============================================================================
# LOGGING
# =============================================================================

class TestRejectionLogging:

    def test_rejection_is_logged_with_error_code(self, caplog):
        with caplog.at_level(logging.INFO, logger="epf"):
            with pytest.raises(BoxVerificationError):
                ErgsBox(_box(value=1))

        records = [r for r in caplog.records if r.name == "epf.box.predicated_boxes"]
        assert len(records) == 1
        assert records[0].error_code == "invalid_ergs_value"
        assert records[0].context["predicate"] == "box_with_ergs"

    def test_rejection_logging_can_be_disabled(self, caplog):
        get_config_manager().set("verification.log_rejections", False)
        with caplog.at_level(logging.INFO, logger="epf"):
            with pytest.raises(BoxVerificationError):
                ErgsBox(_box(value=1))

        assert not [r for r in caplog.records if r.name == "epf.box.predicated_boxes"]
