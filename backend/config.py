from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey

from errors import InvalidUpdateRequest
from metadata_codec import MAX_NAME_LENGTH, MAX_SYMBOL_LENGTH, MAX_URI_LENGTH


class Settings(BaseSettings):
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    mint: Optional[str] = None
    update_authority: Optional[str] = None
    new_uri: Optional[str] = None
    new_name: Optional[str] = None  # optional: keeps on-chain name when unset
    new_symbol: Optional[str] = None  # optional: keeps on-chain symbol when unset
    fee_payer: Optional[str] = None  # defaults to update_authority
    strict_authority: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def parse_pubkey(value: object, field: str) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    text = str(value or "").strip()
    if not text:
        raise ValueError(f"{field} must be set to a valid pubkey")
    try:
        return Pubkey.from_string(text)
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{field} is not a valid pubkey: {exc}") from exc


def _check_length(value: str, limit: int, field: str) -> str:
    size = len(value.encode("utf-8"))
    if size > limit:
        raise ValueError(f"{field} is {size} bytes, max is {limit}")
    return value


class UpdateRequest(BaseModel):
    """Operator intent: which record to touch and what to write into it."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    mint: Pubkey
    update_authority: Pubkey
    uri: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    fee_payer: Optional[Pubkey] = None

    @field_validator("mint", "update_authority", mode="before")
    @classmethod
    def _required_pubkey(cls, value, info):
        return parse_pubkey(value, info.field_name)

    @field_validator("fee_payer", mode="before")
    @classmethod
    def _optional_pubkey(cls, value, info):
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return parse_pubkey(value, info.field_name)

    @field_validator("uri")
    @classmethod
    def _uri(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("uri must not be empty")
        return _check_length(value, MAX_URI_LENGTH, "uri")

    @field_validator("name", "symbol")
    @classmethod
    def _optional_text(cls, value: Optional[str], info) -> Optional[str]:
        # blank means "keep the on-chain value"
        if value is None or not value.strip():
            return None
        limit = MAX_NAME_LENGTH if info.field_name == "name" else MAX_SYMBOL_LENGTH
        return _check_length(value, limit, info.field_name)

    @property
    def payer(self) -> Pubkey:
        return self.fee_payer or self.update_authority


class UpdateConfig(BaseModel):
    """Everything a single run needs, validated before any ledger call."""

    model_config = ConfigDict(frozen=True)

    rpc_url: str
    request: UpdateRequest
    strict_authority: bool = False


ENV_NAMES = {
    "mint": "MINT",
    "update_authority": "UPDATE_AUTHORITY",
    "uri": "NEW_URI",
    "name": "NEW_NAME",
    "symbol": "NEW_SYMBOL",
    "fee_payer": "FEE_PAYER",
}


def invalid_request_from(exc: ValidationError) -> InvalidUpdateRequest:
    first = exc.errors()[0]
    field = str(first["loc"][0]) if first.get("loc") else "request"
    return InvalidUpdateRequest(field, first.get("msg", "invalid value"))


def build_update_request(**fields) -> UpdateRequest:
    try:
        return UpdateRequest(**fields)
    except ValidationError as exc:
        raise invalid_request_from(exc) from exc


def load_update_config(settings: Optional[Settings] = None) -> UpdateConfig:
    settings = settings or Settings()
    if not settings.mint:
        raise InvalidUpdateRequest(ENV_NAMES["mint"], "missing in .env")
    if not settings.update_authority:
        raise InvalidUpdateRequest(ENV_NAMES["update_authority"], "missing in .env")
    if settings.new_uri is None:
        raise InvalidUpdateRequest(ENV_NAMES["uri"], "missing in .env")
    try:
        request = UpdateRequest(
            mint=settings.mint,
            update_authority=settings.update_authority,
            uri=settings.new_uri,
            name=settings.new_name,
            symbol=settings.new_symbol,
            fee_payer=settings.fee_payer,
        )
    except ValidationError as exc:
        err = invalid_request_from(exc)
        raise InvalidUpdateRequest(ENV_NAMES.get(err.field, err.field), err.reason) from exc
    return UpdateConfig(rpc_url=settings.rpc_url, request=request, strict_authority=settings.strict_authority)
