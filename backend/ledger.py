import base64
import logging

from solana.rpc.api import Client
from solders.pubkey import Pubkey

from errors import LedgerNetworkError, MetadataDecodeError, RecordNotFound
from metadata_codec import METADATA_SEED, TOKEN_METADATA_PROGRAM_ID, MetadataRecord, decode_metadata_account

logger = logging.getLogger("metadata_updater")


def metadata_pda(mint: Pubkey) -> Pubkey:
    return Pubkey.find_program_address(
        [METADATA_SEED, bytes(TOKEN_METADATA_PROGRAM_ID), bytes(mint)], TOKEN_METADATA_PROGRAM_ID
    )[0]


def _account_bytes(raw_data) -> bytes:
    if isinstance(raw_data, (bytes, bytearray)):
        return bytes(raw_data)
    # handle (data, encoding) tuple/list shape
    data_b64 = raw_data[0] if isinstance(raw_data, (list, tuple)) else raw_data
    return base64.b64decode(data_b64)


def fetch_metadata_record(client: Client, address: Pubkey) -> MetadataRecord:
    logger.info("metadata_fetch address=%s", address)
    try:
        resp = client.get_account_info(address)
    except Exception as exc:  # noqa: BLE001
        raise LedgerNetworkError(str(address), str(exc)) from exc
    if getattr(resp, "error", None):
        raise LedgerNetworkError(str(address), str(resp.error))
    value = resp.value
    if value is None or value.data is None:
        raise RecordNotFound(str(address))
    if value.owner != TOKEN_METADATA_PROGRAM_ID:
        raise MetadataDecodeError(f"Account {address} is owned by {value.owner}, not the token metadata program")
    return decode_metadata_account(_account_bytes(value.data))
