"""
Build an unsigned UpdateMetadataAccountV2 transaction for a multisig import.

Reads RPC_URL, MINT, UPDATE_AUTHORITY, NEW_URI and optionally NEW_NAME,
NEW_SYMBOL, FEE_PAYER, STRICT_AUTHORITY from .env / the environment and prints
the base58 transaction. Nothing is signed or sent.

Usage: python update_metadata.py
"""
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "backend"))
from config import Settings, load_update_config  # noqa: E402
from errors import MetadataUpdateError  # noqa: E402
from pipeline import run_update  # noqa: E402


def main() -> int:
    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    try:
        config = load_update_config(settings)
        result = run_update(config)
    except MetadataUpdateError as exc:
        print(f"ERROR: {exc}")
        return 1

    diag = result.diagnostics
    print(f"Metadata PDA: {diag.metadata_address}")
    print(f"On-chain Update Authority: {diag.on_chain_authority}")
    print(f"Requested Update Authority: {diag.requested_authority}")
    print(f"isMutable: {diag.is_mutable}")
    print(f"Old URI: {diag.old_uri}")
    print(f"New URI: {diag.new_uri}")
    if diag.old_name != diag.new_name:
        print(f"Name: {diag.old_name} -> {diag.new_name}")
    if diag.old_symbol != diag.new_symbol:
        print(f"Symbol: {diag.old_symbol} -> {diag.new_symbol}")

    if result.has_authority_mismatch:
        print("\nWARNING: UPDATE_AUTHORITY does not match on-chain.")
        print("Set UPDATE_AUTHORITY to the 'On-chain Update Authority' above or the multisig will fail.\n")

    print("\n=== BASE58 TX (import into the multisig) ===")
    print(result.encoded)
    print("============================================")
    return 0


if __name__ == "__main__":
    sys.exit(main())
