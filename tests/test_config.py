import pytest
from solders.pubkey import Pubkey

from config import Settings, build_update_request, load_update_config
from errors import InvalidUpdateRequest


def make_settings(**overrides) -> Settings:
    values = {
        "rpc_url": "http://localhost:8899",
        "mint": str(Pubkey.new_unique()),
        "update_authority": str(Pubkey.new_unique()),
        "new_uri": "ipfs://new",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestLoadUpdateConfig:
    def test_valid_settings(self) -> None:
        settings = make_settings(new_name="Renamed")

        config = load_update_config(settings)

        assert config.rpc_url == "http://localhost:8899"
        assert str(config.request.mint) == settings.mint
        assert config.request.uri == "ipfs://new"
        assert config.request.name == "Renamed"
        assert config.request.symbol is None
        assert config.strict_authority is False

    def test_fee_payer_defaults_to_authority(self) -> None:
        config = load_update_config(make_settings())

        assert config.request.payer == config.request.update_authority

    def test_explicit_fee_payer(self) -> None:
        payer = Pubkey.new_unique()

        config = load_update_config(make_settings(fee_payer=str(payer)))

        assert config.request.payer == payer

    @pytest.mark.parametrize(
        "field,env_name",
        [("mint", "MINT"), ("update_authority", "UPDATE_AUTHORITY"), ("new_uri", "NEW_URI")],
    )
    def test_missing_required(self, field: str, env_name: str) -> None:
        with pytest.raises(InvalidUpdateRequest) as exc_info:
            load_update_config(make_settings(**{field: None}))

        assert exc_info.value.field == env_name

    def test_malformed_authority(self) -> None:
        with pytest.raises(InvalidUpdateRequest) as exc_info:
            load_update_config(make_settings(update_authority="not-a-key"))

        assert exc_info.value.field == "UPDATE_AUTHORITY"

    def test_blank_uri(self) -> None:
        with pytest.raises(InvalidUpdateRequest) as exc_info:
            load_update_config(make_settings(new_uri="   "))

        assert exc_info.value.field == "NEW_URI"

    def test_name_too_long(self) -> None:
        with pytest.raises(InvalidUpdateRequest) as exc_info:
            load_update_config(make_settings(new_name="x" * 33))

        assert exc_info.value.field == "NEW_NAME"

    def test_blank_name_keeps_on_chain_value(self) -> None:
        config = load_update_config(make_settings(new_name="", new_symbol="  "))

        assert config.request.name is None
        assert config.request.symbol is None


class TestBuildUpdateRequest:
    def test_uri_trimmed(self) -> None:
        request = build_update_request(
            mint=str(Pubkey.new_unique()), update_authority=str(Pubkey.new_unique()), uri="  ipfs://new \n"
        )

        assert request.uri == "ipfs://new"

    def test_uri_byte_limit(self) -> None:
        with pytest.raises(InvalidUpdateRequest) as exc_info:
            build_update_request(
                mint=str(Pubkey.new_unique()), update_authority=str(Pubkey.new_unique()), uri="é" * 101
            )

        assert exc_info.value.field == "uri"

    def test_symbol_limit(self) -> None:
        with pytest.raises(InvalidUpdateRequest, match="symbol"):
            build_update_request(
                mint=str(Pubkey.new_unique()),
                update_authority=str(Pubkey.new_unique()),
                uri="ipfs://new",
                symbol="TOOLONGSYMB",
            )
