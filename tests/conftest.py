import base64
from dataclasses import dataclass
from typing import Dict, Optional

import pytest
from solders.pubkey import Pubkey

from config import UpdateRequest
from metadata_codec import (
    TOKEN_METADATA_PROGRAM_ID,
    Collection,
    Creator,
    MetadataHeadLayout,
    MetadataRecord,
    MetadataTailLayout,
    Uses,
    data_v2_to_layout,
)


def encode_metadata_account(record: MetadataRecord) -> bytes:
    """Serialize a record the way the metadata program lays out the account."""
    fields = data_v2_to_layout(record)
    head = MetadataHeadLayout.build(
        {
            "key": record.key,
            "update_authority": list(bytes(record.update_authority)),
            "mint": list(bytes(record.mint)),
            "name": fields["name"],
            "symbol": fields["symbol"],
            "uri": fields["uri"],
            "seller_fee_basis_points": fields["seller_fee_basis_points"],
            "creators": fields["creators"],
            "primary_sale_happened": record.primary_sale_happened,
            "is_mutable": record.is_mutable,
        }
    )
    tail = MetadataTailLayout.build(
        {
            "edition_nonce": record.edition_nonce,
            "token_standard": record.token_standard,
            "collection": fields["collection"],
            "uses": fields["uses"],
        }
    )
    return head + tail


@dataclass
class FakeAccount:
    data: object
    owner: Pubkey = TOKEN_METADATA_PROGRAM_ID


@dataclass
class FakeResponse:
    value: Optional[FakeAccount]
    error: Optional[str] = None


class FakeSolanaClient:
    """Stands in for solana.rpc.api.Client; only get_account_info is used."""

    def __init__(self, accounts: Optional[Dict[Pubkey, FakeAccount]] = None, raise_exc: Optional[Exception] = None):
        self.accounts = accounts or {}
        self.raise_exc = raise_exc
        self.calls = []

    def get_account_info(self, pubkey: Pubkey) -> FakeResponse:
        self.calls.append(pubkey)
        if self.raise_exc is not None:
            raise self.raise_exc
        return FakeResponse(self.accounts.get(pubkey))


@pytest.fixture
def authority() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def mint() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def record(authority: Pubkey, mint: Pubkey) -> MetadataRecord:
    """A mutable record padded the way the metadata program stores strings."""
    return MetadataRecord(
        update_authority=authority,
        mint=mint,
        name="Genesis Pass #1".ljust(32, "\x00"),
        symbol="PASS".ljust(10, "\x00"),
        uri="ipfs://old".ljust(200, "\x00"),
        seller_fee_basis_points=500,
        creators=[Creator(authority, True, 80), Creator(Pubkey.new_unique(), False, 20)],
        primary_sale_happened=True,
        is_mutable=True,
        edition_nonce=254,
        token_standard=0,
        collection=Collection(verified=True, key=Pubkey.new_unique()),
        uses=Uses(use_method=1, remaining=3, total=5),
    )


@pytest.fixture
def update_request(authority: Pubkey, mint: Pubkey) -> UpdateRequest:
    return UpdateRequest(mint=mint, update_authority=authority, uri="ipfs://new")


@pytest.fixture
def make_client():
    def _make(record: Optional[MetadataRecord] = None, address: Optional[Pubkey] = None, as_base64: bool = False):
        accounts = {}
        if record is not None:
            raw = encode_metadata_account(record)
            data = [base64.b64encode(raw).decode(), "base64"] if as_base64 else raw
            accounts[address] = FakeAccount(data)
        return FakeSolanaClient(accounts)

    return _make
