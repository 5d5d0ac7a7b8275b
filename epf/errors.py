"""
Box verification errors.

The closed set of failure kinds a predicate can raise. Every error carries a
message that explains why verification failed, and a stable ``code`` used in
structured log records.

    BoxVerificationError
    ├── InvalidP2SAddress
    ├── InvalidErgoTree
    ├── InvalidErgsValue
    ├── InvalidTokens
    ├── InvalidRegisters
    ├── InvalidOracleBox
    └── OtherError
"""

from __future__ import annotations


class BoxVerificationError(Exception):
    """Base class for a box that failed a verification predicate."""

    code = "box_verification_error"
    prefix = ""

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        if not self.prefix:
            return message
        if not message:
            return self.prefix
        return f"{self.prefix}: {message}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoxVerificationError):
            return NotImplemented
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.message))


class InvalidP2SAddress(BoxVerificationError):
    code = "invalid_p2s_address"
    prefix = "The P2S address is invalid."

    def _format(self, message: str) -> str:
        return f"{self.prefix} {message}".strip()


class InvalidErgoTree(BoxVerificationError):
    code = "invalid_ergo_tree"
    prefix = "The ErgoTree is invalid."

    def _format(self, message: str) -> str:
        return f"{self.prefix} {message}".strip()


class InvalidErgsValue(BoxVerificationError):
    code = "invalid_ergs_value"
    prefix = "The number of Ergs held within the box is invalid"


class InvalidTokens(BoxVerificationError):
    code = "invalid_tokens"
    prefix = (
        "The provided box did not pass the verification predicate because of "
        "a problem with the tokens held in the box"
    )


class InvalidRegisters(BoxVerificationError):
    code = "invalid_registers"
    prefix = (
        "The provided box did not pass the verification predicate because of "
        "a problem with the values within the registers of the box"
    )


class InvalidOracleBox(BoxVerificationError):
    code = "invalid_oracle_box"
    prefix = "The provided box is not a valid Oracle Box"


class OtherError(BoxVerificationError):
    """Catch-all for rule failures outside the named families."""
    code = "other_error"
