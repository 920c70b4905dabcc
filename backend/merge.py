from config import UpdateRequest
from metadata_codec import DataV2, MetadataRecord


def merge_data(record: MetadataRecord, request: UpdateRequest) -> DataV2:
    # Everything but uri/name/symbol is copied as-is; None and [] creators stay distinct.
    return DataV2(
        name=request.name if request.name is not None else record.name,
        symbol=request.symbol if request.symbol is not None else record.symbol,
        uri=request.uri,
        seller_fee_basis_points=record.seller_fee_basis_points,
        creators=None if record.creators is None else list(record.creators),
        collection=record.collection,
        uses=record.uses,
    )
