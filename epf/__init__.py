"""
EPF Predicated Boxes

Verification layer that turns raw ledger boxes into pre-verified wrapper types
before they reach transaction-building Actions.

Architecture
────────────

    ┌──────────────────────────────────────────────────────────────┐
    │  Actions (external)   take StageBox[ST] / ErgsBox / ...       │
    ├──────────────────────────────────────────────────────────────┤
    │  stage.py             Stage: contract + predicate → StageBox  │
    │  predicated_boxes.py  PredicatedBox, StageBox, ErgsBox,       │
    │                       OracleBoxLong, collection helpers       │
    │  predicates.py        named verification rules                │
    │  errors.py            BoxVerificationError taxonomy           │
    ├──────────────────────────────────────────────────────────────┤
    │  ledger.py            ErgoBox, Token, UnsignedInput           │
    │  registers.py         register constant codec                 │
    │  schema.py            node box JSON validation                │
    ├──────────────────────────────────────────────────────────────┤
    │  config.py            YAML / EPF_* configuration              │
    │  observability.py     structured logging                      │
    └──────────────────────────────────────────────────────────────┘

Every wrapper runs its predicate on construction and is immutable afterwards.
Wrappers are snapshot guarantees: they say nothing about the box's state on
chain after they were built.
"""

__version__ = "0.1.0"


# Lazy imports to keep `import epf` cheap
def __getattr__(name):
    """Lazy import EPF modules on first access."""

    if name in ("ErgoBox", "Token", "UnsignedInput", "NanoErg", "TokenID",
                "P2SAddress", "P2PKAddress", "TxId", "BlockHeight",
                "BlockDuration", "ScanID", "boxes_from_json"):
        from epf import ledger
        return getattr(ledger, name)

    if name in ("Constant", "ConstantType", "decode_constant", "encode_constant"):
        from epf import registers
        return getattr(registers, name)

    if name in ("BoxVerificationError", "InvalidP2SAddress", "InvalidErgoTree",
                "InvalidErgsValue", "InvalidTokens", "InvalidRegisters",
                "InvalidOracleBox", "OtherError"):
        from epf import errors
        return getattr(errors, name)

    if name in ("Predicate", "predicate", "get_predicate", "box_with_ergs",
                "oracle_box_long", "extract_long_datapoint", "MIN_ERGS_VALUE"):
        from epf import predicates
        return getattr(predicates, name)

    if name in ("PredicatedBox", "StageType", "StageBox", "ErgsBox",
                "OracleBoxLong", "sum_values", "unwrap_entries",
                "to_transaction_inputs", "partition_boxes"):
        from epf import predicated_boxes
        return getattr(predicated_boxes, name)

    if name == "Stage":
        from epf.stage import Stage
        return Stage

    if name in ("get_config", "get_config_manager"):
        from epf import config
        return getattr(config, name)

    raise AttributeError(f"module 'epf' has no attribute {name!r}")


__all__ = [
    "__version__",
    # Ledger
    "ErgoBox", "Token", "UnsignedInput", "boxes_from_json",
    "Constant", "ConstantType", "decode_constant", "encode_constant",
    # Errors
    "BoxVerificationError", "InvalidP2SAddress", "InvalidErgoTree",
    "InvalidErgsValue", "InvalidTokens", "InvalidRegisters",
    "InvalidOracleBox", "OtherError",
    # Predicates
    "Predicate", "predicate", "get_predicate", "box_with_ergs",
    "oracle_box_long", "extract_long_datapoint", "MIN_ERGS_VALUE",
    # Boxes
    "PredicatedBox", "StageType", "StageBox", "ErgsBox", "OracleBoxLong",
    "sum_values", "unwrap_entries", "to_transaction_inputs", "partition_boxes",
    "Stage",
    # Config
    "get_config", "get_config_manager",
]
