from typing import Optional


class MetadataUpdateError(Exception):
    """Base class for every failure raised while building a metadata update."""


# Input errors


class InvalidUpdateRequest(MetadataUpdateError):
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


# Ledger errors


class RecordNotFound(MetadataUpdateError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Metadata account {address} not found on-chain")


class LedgerNetworkError(MetadataUpdateError):
    def __init__(self, address: str, detail: str):
        self.address = address
        super().__init__(f"RPC error fetching {address}: {detail}")


class MetadataDecodeError(MetadataUpdateError):
    pass


# State errors


class RecordImmutable(MetadataUpdateError):
    def __init__(self, address: Optional[str] = None):
        self.address = address
        target = f" {address}" if address else ""
        super().__init__(f"Metadata{target} has isMutable=false and can no longer be updated")


class AuthorityMismatch(MetadataUpdateError):
    """On-chain update authority differs from the one requested.

    Warning-grade: the pipeline reports it and keeps going unless strict mode
    is enabled, since a co-signer may hold the real authority.
    """

    def __init__(self, on_chain: str, requested: str):
        self.on_chain = on_chain
        self.requested = requested
        super().__init__(
            f"Update authority mismatch: on-chain {on_chain}, requested {requested}. "
            "The multisig will fail to execute unless the on-chain authority signs."
        )


# Integration errors


class InstructionBuilderIncompatible(MetadataUpdateError):
    pass


class NoInstructionsProduced(MetadataUpdateError):
    def __init__(self):
        super().__init__("Instruction builder returned no instructions")


class AddressDecodeError(MetadataUpdateError):
    def __init__(self, field: str, value: object, detail: str = ""):
        self.field = field
        self.value = value
        suffix = f": {detail}" if detail else ""
        super().__init__(f"{field} is not a valid pubkey ({value!r}){suffix}")


# Encoding errors


class EmptyInstructionSet(MetadataUpdateError):
    def __init__(self):
        super().__init__("Refusing to encode a transaction with no instructions")


class SerializationOverflow(MetadataUpdateError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Serialized transaction is {size} bytes, exceeds the {limit} byte limit")
