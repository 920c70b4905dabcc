import dataclasses

from solders.pubkey import Pubkey

from config import UpdateRequest
from merge import merge_data
from metadata_codec import MetadataRecord


class TestMergeData:
    def test_uri_replaced_everything_else_kept(self, record: MetadataRecord, update_request: UpdateRequest) -> None:
        merged = merge_data(record, update_request)

        assert merged.uri == "ipfs://new"
        assert merged.name == record.name
        assert merged.symbol == record.symbol
        assert merged.seller_fee_basis_points == record.seller_fee_basis_points
        assert merged.creators == record.creators
        assert merged.collection == record.collection
        assert merged.uses == record.uses

    def test_name_and_symbol_override(self, record: MetadataRecord, authority: Pubkey, mint: Pubkey) -> None:
        request = UpdateRequest(mint=mint, update_authority=authority, uri="ipfs://new", name="Renamed", symbol="NEW")

        merged = merge_data(record, request)

        assert merged.name == "Renamed"
        assert merged.symbol == "NEW"

    def test_padding_kept_on_untouched_strings(self, record: MetadataRecord, update_request: UpdateRequest) -> None:
        merged = merge_data(record, update_request)

        assert merged.name.encode() == record.name.encode()
        assert len(merged.symbol) == 10

    def test_absent_optionals_stay_absent(self, record: MetadataRecord, update_request: UpdateRequest) -> None:
        bare = dataclasses.replace(record, creators=None, collection=None, uses=None)

        merged = merge_data(bare, update_request)

        assert merged.creators is None
        assert merged.collection is None
        assert merged.uses is None

    def test_empty_creators_not_conflated_with_none(self, record: MetadataRecord, update_request: UpdateRequest) -> None:
        merged = merge_data(dataclasses.replace(record, creators=[]), update_request)

        assert merged.creators == []
        assert merged.creators is not None

    def test_creator_list_is_a_copy(self, record: MetadataRecord, update_request: UpdateRequest) -> None:
        merged = merge_data(record, update_request)

        assert merged.creators is not record.creators
        assert merged.creators == record.creators
