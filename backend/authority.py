from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from errors import AuthorityMismatch, RecordImmutable
from metadata_codec import MetadataRecord


@dataclass(frozen=True)
class AuthorityCheck:
    on_chain: Pubkey
    requested: Pubkey
    mismatch: Optional[AuthorityMismatch] = None

    @property
    def matches(self) -> bool:
        return self.mismatch is None


def validate_update(record: MetadataRecord, requested_authority: Pubkey, address: Optional[Pubkey] = None) -> AuthorityCheck:
    """Check that ``record`` may be updated by ``requested_authority``.

    Raises RecordImmutable when the record is frozen, whatever the authority.
    An authority mismatch is returned on the check rather than raised.
    """
    if not record.is_mutable:
        raise RecordImmutable(str(address) if address is not None else None)
    mismatch = None
    if bytes(record.update_authority) != bytes(requested_authority):
        mismatch = AuthorityMismatch(str(record.update_authority), str(requested_authority))
    return AuthorityCheck(on_chain=record.update_authority, requested=requested_authority, mismatch=mismatch)
