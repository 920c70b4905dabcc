import base64
import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple, Union

import base58
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from errors import (
    AddressDecodeError,
    EmptyInstructionSet,
    InstructionBuilderIncompatible,
    NoInstructionsProduced,
    SerializationOverflow,
)
from metadata_codec import DataV2, MetadataRecord, NativeAccountMeta, NativeInstruction, update_metadata_account_v2

logger = logging.getLogger("metadata_updater")

# Max wire size of a transaction (IPv6 MTU minus headers).
PACKET_DATA_SIZE = 1232
# Dummy blockhash; the multisig replaces it before broadcast.
PLACEHOLDER_BLOCKHASH = Hash.default()


def to_pubkey(value: object, field: str = "pubkey") -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    try:
        return Pubkey.from_string(str(value))
    except Exception as exc:  # noqa: BLE001
        raise AddressDecodeError(field, value, str(exc)) from exc


# Instruction source: the factory either hands back instructions directly or a
# builder they have to be pulled out of. Resolved once, then matched on.


@dataclass(frozen=True)
class DirectList:
    instructions: Tuple[object, ...]


@dataclass(frozen=True)
class ExtractableBuilder:
    builder: object

    def extract(self) -> List[object]:
        getter = getattr(self.builder, "get_instructions", None)
        if callable(getter):
            return list(getter())
        return [item.instruction for item in self.builder.items if getattr(item, "instruction", None) is not None]


InstructionSource = Union[DirectList, ExtractableBuilder]
InstructionFactory = Callable[..., object]


def resolve_instruction_source(produced: object) -> InstructionSource:
    if isinstance(produced, (list, tuple)):
        return DirectList(tuple(produced))
    if callable(getattr(produced, "get_instructions", None)) or isinstance(getattr(produced, "items", None), list):
        return ExtractableBuilder(produced)
    raise InstructionBuilderIncompatible(
        f"Unable to extract instructions from {type(produced).__name__} (builder version mismatch)"
    )


def extract_instructions(source: InstructionSource) -> List[NativeInstruction]:
    if isinstance(source, DirectList):
        items = list(source.instructions)
    else:
        try:
            items = source.extract()
        except Exception as exc:  # noqa: BLE001
            raise InstructionBuilderIncompatible(f"Instruction extraction failed: {exc}") from exc
    for idx, ix in enumerate(items):
        if not isinstance(ix, NativeInstruction):
            raise InstructionBuilderIncompatible(
                f"Instruction #{idx} is a {type(ix).__name__}, expected NativeInstruction"
            )
        if not isinstance(ix.keys, list) or not all(isinstance(key, NativeAccountMeta) for key in ix.keys):
            raise InstructionBuilderIncompatible(
                f"Instruction #{idx} keys must be a list of NativeAccountMeta, got {ix.keys!r}"
            )
    return items


def assemble_instructions(
    metadata: Pubkey,
    update_authority: Pubkey,
    data: DataV2,
    record: MetadataRecord,
    factory: InstructionFactory = update_metadata_account_v2,
) -> List[NativeInstruction]:
    produced = factory(
        metadata=metadata,
        update_authority=update_authority,
        data=data,
        new_update_authority=None,
        # The program only accepts Some(true) here; None leaves the flag as is.
        primary_sale_happened=True if record.primary_sale_happened else None,
        is_mutable=record.is_mutable,
    )
    instructions = extract_instructions(resolve_instruction_source(produced))
    if not instructions:
        raise NoInstructionsProduced()
    return instructions


def adapt_instruction(ix: NativeInstruction) -> Instruction:
    if isinstance(ix.data, str):
        raise InstructionBuilderIncompatible("Instruction data must be bytes, got str")
    program_id = to_pubkey(ix.program_id, "program_id")
    accounts = [
        AccountMeta(
            pubkey=to_pubkey(key.pubkey, f"keys[{idx}].pubkey"),
            is_signer=bool(key.is_signer),
            is_writable=bool(key.is_writable),
        )
        for idx, key in enumerate(ix.keys)
    ]
    return Instruction(program_id=program_id, data=bytes(ix.data), accounts=accounts)


def build_unsigned_transaction(fee_payer: Pubkey, ixs: Sequence[Instruction]) -> Transaction:
    if not ixs:
        raise EmptyInstructionSet()
    message = Message.new_with_blockhash(list(ixs), fee_payer, PLACEHOLDER_BLOCKHASH)
    # Every signature slot stays zeroed; nothing is signed or verified here.
    return Transaction.new_unsigned(message)


def encode_unsigned_transaction(fee_payer: Pubkey, ixs: Sequence[Instruction]) -> bytes:
    raw = bytes(build_unsigned_transaction(fee_payer, ixs))
    if len(raw) > PACKET_DATA_SIZE:
        raise SerializationOverflow(len(raw), PACKET_DATA_SIZE)
    logger.debug("unsigned_tx_encoded size=%s instructions=%s", len(raw), len(ixs))
    return raw


def encode_b58(raw: bytes) -> str:
    return base58.b58encode(raw).decode()


def decode_b58(text: str) -> bytes:
    return base58.b58decode(text)


def instruction_to_dict(ix: Instruction) -> dict:
    return {
        "program_id": str(ix.program_id),
        "keys": [
            {
                "pubkey": str(k.pubkey),
                "is_signer": k.is_signer,
                "is_writable": k.is_writable,
            }
            for k in ix.accounts
        ],
        "data": base64.b64encode(ix.data).decode(),
    }
