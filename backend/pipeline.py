"""
Fetch -> validate -> merge -> assemble -> adapt -> encode.

Each step either returns the input of the next one or raises a
MetadataUpdateError, which stops the run before anything is emitted.
"""
import base64
import logging
from dataclasses import dataclass
from typing import List, Optional

from solana.rpc.api import Client
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from authority import AuthorityCheck, validate_update
from config import UpdateConfig, UpdateRequest
from errors import AuthorityMismatch
from ledger import fetch_metadata_record, metadata_pda
from merge import merge_data
from metadata_codec import DataV2, MetadataRecord, display_text, update_metadata_account_v2
from tx_builder import (
    InstructionFactory,
    adapt_instruction,
    assemble_instructions,
    encode_b58,
    encode_unsigned_transaction,
)

logger = logging.getLogger("metadata_updater")


@dataclass(frozen=True)
class UpdateDiagnostics:
    metadata_address: str
    on_chain_authority: str
    requested_authority: str
    is_mutable: bool
    old_uri: str
    new_uri: str
    old_name: str
    new_name: str
    old_symbol: str
    new_symbol: str


@dataclass(frozen=True)
class UpdateTransactionResult:
    raw: bytes
    encoded: str
    instructions: List[Instruction]
    data: DataV2
    diagnostics: UpdateDiagnostics
    authority_mismatch: Optional[AuthorityMismatch] = None

    @property
    def has_authority_mismatch(self) -> bool:
        return self.authority_mismatch is not None

    @property
    def tx_b64(self) -> str:
        return base64.b64encode(self.raw).decode()


def diagnose(record: MetadataRecord, request: UpdateRequest, metadata_address: Pubkey) -> UpdateDiagnostics:
    return UpdateDiagnostics(
        metadata_address=str(metadata_address),
        on_chain_authority=str(record.update_authority),
        requested_authority=str(request.update_authority),
        is_mutable=record.is_mutable,
        old_uri=display_text(record.uri),
        new_uri=request.uri,
        old_name=display_text(record.name),
        new_name=display_text(request.name if request.name is not None else record.name),
        old_symbol=display_text(record.symbol),
        new_symbol=display_text(request.symbol if request.symbol is not None else record.symbol),
    )


def check_update(
    record: MetadataRecord, request: UpdateRequest, metadata_address: Pubkey, strict_authority: bool = False
) -> AuthorityCheck:
    check = validate_update(record, request.update_authority, metadata_address)
    if check.mismatch is not None:
        logger.warning(
            "authority_mismatch metadata=%s on_chain=%s requested=%s",
            metadata_address,
            check.on_chain,
            check.requested,
        )
        if strict_authority:
            raise check.mismatch
    return check


def build_update_transaction(
    record: MetadataRecord,
    request: UpdateRequest,
    metadata_address: Pubkey,
    strict_authority: bool = False,
    factory: InstructionFactory = update_metadata_account_v2,
) -> UpdateTransactionResult:
    diagnostics = diagnose(record, request, metadata_address)
    logger.info(
        "metadata_update metadata=%s on_chain_authority=%s requested_authority=%s is_mutable=%s old_uri=%s new_uri=%s",
        diagnostics.metadata_address,
        diagnostics.on_chain_authority,
        diagnostics.requested_authority,
        diagnostics.is_mutable,
        diagnostics.old_uri,
        diagnostics.new_uri,
    )
    check = check_update(record, request, metadata_address, strict_authority)
    data = merge_data(record, request)
    native = assemble_instructions(metadata_address, request.update_authority, data, record, factory)
    ixs = [adapt_instruction(ix) for ix in native]
    raw = encode_unsigned_transaction(request.payer, ixs)
    return UpdateTransactionResult(
        raw=raw,
        encoded=encode_b58(raw),
        instructions=ixs,
        data=data,
        diagnostics=diagnostics,
        authority_mismatch=check.mismatch,
    )


def run_update(config: UpdateConfig, client: Optional[Client] = None) -> UpdateTransactionResult:
    client = client or Client(config.rpc_url)
    address = metadata_pda(config.request.mint)
    record = fetch_metadata_record(client, address)
    return build_update_transaction(record, config.request, address, strict_authority=config.strict_authority)
