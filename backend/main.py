from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel
from solana.rpc.api import Client as SolanaClient

from config import Settings, build_update_request
from errors import (
    AuthorityMismatch,
    InvalidUpdateRequest,
    LedgerNetworkError,
    MetadataDecodeError,
    MetadataUpdateError,
    RecordImmutable,
    RecordNotFound,
)
from ledger import fetch_metadata_record, metadata_pda
from merge import merge_data
from metadata_codec import DataV2, display_text
from pipeline import build_update_transaction, check_update, diagnose
from tx_builder import PLACEHOLDER_BLOCKHASH, instruction_to_dict

settings = Settings()
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("metadata_updater")

app = FastAPI(title="Metadata Updater")


def get_sol_client() -> SolanaClient:
    return SolanaClient(settings.rpc_url)


class MetadataUpdateRequest(BaseModel):
    mint: str
    update_authority: str
    uri: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    fee_payer: Optional[str] = None
    strict_authority: bool = False


class MetadataLookupRequest(BaseModel):
    mint: str
    update_authority: str
    uri: str
    name: Optional[str] = None
    symbol: Optional[str] = None


class KeyMeta(BaseModel):
    pubkey: str
    is_signer: bool
    is_writable: bool


class InstructionMeta(BaseModel):
    program_id: str
    keys: List[KeyMeta]
    data: str


class DiagnosticsView(BaseModel):
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


class CreatorView(BaseModel):
    address: str
    verified: bool
    share: int


class MergedDataView(BaseModel):
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int
    creators: Optional[List[CreatorView]] = None
    collection: Optional[str] = None


class MetadataPreviewResponse(BaseModel):
    diagnostics: DiagnosticsView
    merged: MergedDataView
    authority_mismatch: bool
    authority_warning: Optional[str] = None


class UpdateBuildResponse(BaseModel):
    """Unsigned transaction ready to import into the multisig."""
    tx_b58: str
    tx_b64: str
    recent_blockhash: str
    fee_payer: str
    instructions: List[InstructionMeta]
    authority_mismatch: bool
    authority_warning: Optional[str] = None
    diagnostics: DiagnosticsView


def wrap_instruction_meta(raw: dict) -> InstructionMeta:
    return InstructionMeta(
        program_id=raw["program_id"],
        keys=[KeyMeta(**k) for k in raw["keys"]],
        data=raw["data"],
    )


def wrap_merged_data(data: DataV2) -> MergedDataView:
    creators = None
    if data.creators is not None:
        creators = [CreatorView(address=str(c.address), verified=c.verified, share=c.share) for c in data.creators]
    return MergedDataView(
        name=display_text(data.name),
        symbol=display_text(data.symbol),
        uri=data.uri,
        seller_fee_basis_points=data.seller_fee_basis_points,
        creators=creators,
        collection=str(data.collection.key) if data.collection else None,
    )


def http_error(exc: MetadataUpdateError) -> HTTPException:
    if isinstance(exc, InvalidUpdateRequest):
        status = 400
    elif isinstance(exc, RecordNotFound):
        status = 404
    elif isinstance(exc, (RecordImmutable, AuthorityMismatch)):
        status = 409
    elif isinstance(exc, (LedgerNetworkError, MetadataDecodeError)):
        status = 502
    else:
        status = 500
    return HTTPException(status_code=status, detail=str(exc))


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/metadata/preview", response_model=MetadataPreviewResponse)
def metadata_preview(req: MetadataLookupRequest, client: SolanaClient = Depends(get_sol_client)):
    try:
        request = build_update_request(
            mint=req.mint,
            update_authority=req.update_authority,
            uri=req.uri,
            name=req.name,
            symbol=req.symbol,
        )
        address = metadata_pda(request.mint)
        record = fetch_metadata_record(client, address)
        check = check_update(record, request, address)
        data = merge_data(record, request)
    except MetadataUpdateError as exc:
        raise http_error(exc) from exc
    return MetadataPreviewResponse(
        diagnostics=DiagnosticsView(**dataclasses.asdict(diagnose(record, request, address))),
        merged=wrap_merged_data(data),
        authority_mismatch=not check.matches,
        authority_warning=str(check.mismatch) if check.mismatch else None,
    )


@app.post("/metadata/update/build", response_model=UpdateBuildResponse)
def metadata_update_build(req: MetadataUpdateRequest, client: SolanaClient = Depends(get_sol_client)):
    try:
        request = build_update_request(
            mint=req.mint,
            update_authority=req.update_authority,
            uri=req.uri,
            name=req.name,
            symbol=req.symbol,
            fee_payer=req.fee_payer,
        )
        address = metadata_pda(request.mint)
        record = fetch_metadata_record(client, address)
        result = build_update_transaction(
            record,
            request,
            address,
            strict_authority=req.strict_authority or settings.strict_authority,
        )
    except MetadataUpdateError as exc:
        logger.info("metadata_update_build_failed mint=%s error=%s", req.mint, exc)
        raise http_error(exc) from exc
    return UpdateBuildResponse(
        tx_b58=result.encoded,
        tx_b64=result.tx_b64,
        recent_blockhash=str(PLACEHOLDER_BLOCKHASH),
        fee_payer=str(request.payer),
        instructions=[wrap_instruction_meta(instruction_to_dict(ix)) for ix in result.instructions],
        authority_mismatch=result.has_authority_mismatch,
        authority_warning=str(result.authority_mismatch) if result.authority_mismatch else None,
        diagnostics=DiagnosticsView(**dataclasses.asdict(result.diagnostics)),
    )
