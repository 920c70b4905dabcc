"""
Borsh layouts and instruction factory for the Metaplex Token Metadata program.

Account layout (MetadataV1, key = 4):
    key u8 | update_authority [32] | mint [32] | name str | symbol str | uri str |
    seller_fee_basis_points u16 | creators Option<Vec<Creator>> |
    primary_sale_happened bool | is_mutable bool | edition_nonce Option<u8> |
    token_standard Option<u8> | collection Option<Collection> | uses Option<Uses> | ...

Strings are kept exactly as stored on-chain, including the NUL padding the
program adds, so that untouched fields are written back byte-for-byte.
"""
import io
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional

from borsh_construct import Bool, CStruct, Option, String, U16, U64, U8, Vec
from solders.pubkey import Pubkey

from errors import MetadataDecodeError

TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")
METADATA_SEED = b"metadata"
METADATA_KEY_V1 = 4
UPDATE_METADATA_ACCOUNT_V2_DISCRIMINATOR = 15

MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200


class UseMethod(IntEnum):
    Burn = 0
    Multiple = 1
    Single = 2


CreatorLayout = CStruct("address" / U8[32], "verified" / Bool, "share" / U8)
CollectionLayout = CStruct("verified" / Bool, "key" / U8[32])
UsesLayout = CStruct("use_method" / U8, "remaining" / U64, "total" / U64)

MetadataHeadLayout = CStruct(
    "key" / U8,
    "update_authority" / U8[32],
    "mint" / U8[32],
    "name" / String,
    "symbol" / String,
    "uri" / String,
    "seller_fee_basis_points" / U16,
    "creators" / Option(Vec(CreatorLayout)),
    "primary_sale_happened" / Bool,
    "is_mutable" / Bool,
)
# Older accounts stop before some of these; zero padding decodes as None.
# The head is never padded, so an account cut short there fails to decode.
MetadataTailLayout = CStruct(
    "edition_nonce" / Option(U8),
    "token_standard" / Option(U8),
    "collection" / Option(CollectionLayout),
    "uses" / Option(UsesLayout),
)
_TAIL_PADDING = 64

DataV2Layout = CStruct(
    "name" / String,
    "symbol" / String,
    "uri" / String,
    "seller_fee_basis_points" / U16,
    "creators" / Option(Vec(CreatorLayout)),
    "collection" / Option(CollectionLayout),
    "uses" / Option(UsesLayout),
)
UpdateMetadataAccountArgsV2Layout = CStruct(
    "data" / Option(DataV2Layout),
    "update_authority" / Option(U8[32]),
    "primary_sale_happened" / Option(Bool),
    "is_mutable" / Option(Bool),
)


@dataclass(frozen=True)
class Creator:
    address: Pubkey
    verified: bool
    share: int


@dataclass(frozen=True)
class Collection:
    verified: bool
    key: Pubkey


@dataclass(frozen=True)
class Uses:
    use_method: int
    remaining: int
    total: int


@dataclass(frozen=True)
class MetadataRecord:
    update_authority: Pubkey
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int
    creators: Optional[List[Creator]]
    primary_sale_happened: bool
    is_mutable: bool
    edition_nonce: Optional[int] = None
    token_standard: Optional[int] = None
    collection: Optional[Collection] = None
    uses: Optional[Uses] = None
    key: int = METADATA_KEY_V1


@dataclass(frozen=True)
class DataV2:
    """Writable payload of a metadata account, as taken by UpdateMetadataAccountV2."""

    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int
    creators: Optional[List[Creator]]
    collection: Optional[Collection]
    uses: Optional[Uses]


def display_text(value: str) -> str:
    return value.rstrip("\x00")


def _key_bytes(pubkey: Pubkey) -> list:
    return list(bytes(pubkey))


def _creators_to_layout(creators: Optional[List[Creator]]):
    if creators is None:
        return None
    return [{"address": _key_bytes(c.address), "verified": c.verified, "share": c.share} for c in creators]


def _collection_to_layout(collection: Optional[Collection]):
    if collection is None:
        return None
    return {"verified": collection.verified, "key": _key_bytes(collection.key)}


def _uses_to_layout(uses: Optional[Uses]):
    if uses is None:
        return None
    return {"use_method": int(uses.use_method), "remaining": uses.remaining, "total": uses.total}


def _creators_from_layout(parsed) -> Optional[List[Creator]]:
    if parsed is None:
        return None
    return [Creator(Pubkey.from_bytes(bytes(c.address)), bool(c.verified), c.share) for c in parsed]


def _collection_from_layout(parsed) -> Optional[Collection]:
    if parsed is None:
        return None
    return Collection(bool(parsed.verified), Pubkey.from_bytes(bytes(parsed.key)))


def _uses_from_layout(parsed) -> Optional[Uses]:
    if parsed is None:
        return None
    return Uses(UseMethod(parsed.use_method), parsed.remaining, parsed.total)


def decode_metadata_account(data: bytes) -> MetadataRecord:
    raw = bytes(data)
    if not raw:
        raise MetadataDecodeError("Metadata account has no data")
    if raw[0] != METADATA_KEY_V1:
        raise MetadataDecodeError(f"Unexpected metadata account key: {raw[0]}")
    stream = io.BytesIO(raw)
    try:
        head = MetadataHeadLayout.parse_stream(stream)
        tail = MetadataTailLayout.parse(stream.read() + bytes(_TAIL_PADDING))
        return MetadataRecord(
            key=head.key,
            update_authority=Pubkey.from_bytes(bytes(head.update_authority)),
            mint=Pubkey.from_bytes(bytes(head.mint)),
            name=head.name,
            symbol=head.symbol,
            uri=head.uri,
            seller_fee_basis_points=head.seller_fee_basis_points,
            creators=_creators_from_layout(head.creators),
            primary_sale_happened=bool(head.primary_sale_happened),
            is_mutable=bool(head.is_mutable),
            edition_nonce=tail.edition_nonce,
            token_standard=tail.token_standard,
            collection=_collection_from_layout(tail.collection),
            uses=_uses_from_layout(tail.uses),
        )
    except Exception as exc:  # noqa: BLE001
        raise MetadataDecodeError(f"Unable to decode metadata account: {exc}") from exc


def data_v2_to_layout(data: DataV2) -> dict:
    return {
        "name": data.name,
        "symbol": data.symbol,
        "uri": data.uri,
        "seller_fee_basis_points": data.seller_fee_basis_points,
        "creators": _creators_to_layout(data.creators),
        "collection": _collection_to_layout(data.collection),
        "uses": _uses_to_layout(data.uses),
    }


def encode_update_metadata_v2(
    data: Optional[DataV2],
    new_update_authority: Optional[Pubkey],
    primary_sale_happened: Optional[bool],
    is_mutable: Optional[bool],
) -> bytes:
    args = UpdateMetadataAccountArgsV2Layout.build(
        {
            "data": None if data is None else data_v2_to_layout(data),
            "update_authority": None if new_update_authority is None else _key_bytes(new_update_authority),
            "primary_sale_happened": primary_sale_happened,
            "is_mutable": is_mutable,
        }
    )
    return bytes([UPDATE_METADATA_ACCOUNT_V2_DISCRIMINATOR]) + args


# Instruction factory. Addresses are carried as base58 strings here and only
# parsed into Pubkeys when adapted for the transaction envelope.


@dataclass
class NativeAccountMeta:
    pubkey: str
    is_signer: bool
    is_writable: bool


@dataclass
class NativeInstruction:
    program_id: str
    keys: List[NativeAccountMeta]
    data: bytes


@dataclass
class WrappedInstruction:
    instruction: NativeInstruction


class TransactionBuilder:
    def __init__(self, items: Optional[List[WrappedInstruction]] = None):
        self.items: List[WrappedInstruction] = list(items or [])

    def add(self, item: WrappedInstruction) -> "TransactionBuilder":
        return TransactionBuilder(self.items + [item])

    def get_instructions(self) -> List[NativeInstruction]:
        return [item.instruction for item in self.items]


def update_metadata_account_v2(
    metadata: Pubkey,
    update_authority: Pubkey,
    data: Optional[DataV2],
    new_update_authority: Optional[Pubkey] = None,
    primary_sale_happened: Optional[bool] = None,
    is_mutable: Optional[bool] = None,
) -> TransactionBuilder:
    keys = [
        NativeAccountMeta(pubkey=str(metadata), is_signer=False, is_writable=True),
        NativeAccountMeta(pubkey=str(update_authority), is_signer=True, is_writable=False),
    ]
    ix = NativeInstruction(
        program_id=str(TOKEN_METADATA_PROGRAM_ID),
        keys=keys,
        data=encode_update_metadata_v2(data, new_update_authority, primary_sale_happened, is_mutable),
    )
    return TransactionBuilder().add(WrappedInstruction(ix))
