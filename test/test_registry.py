#!/usr/bin/env python3
"""Tests for the chain registry."""

import pytest

from airdrop_sync.registry import (
    DEFAULT_BLOCKS_PER_WINDOW,
    KNOWN_CHAINS,
    ChainConfig,
    chain_from_env,
    get_chain_config,
    load_chain_configs,
    parse_chain_ids,
)

NFT = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
DISTRIBUTOR = "0x3333333333333333333333333333333333333333"


class TestChainConfig:
    """Tests for ChainConfig."""

    def test_checksum_address_conversion(self):
        config = ChainConfig(
            id=11155111,
            label="Ethereum Sepolia",
            slug="eth-sepolia",
            nft_contract=NFT.lower(),
        )
        assert config.nft_contract == NFT

    def test_address_without_prefix(self):
        config = ChainConfig(id=1, label="x", slug="x", nft_contract=NFT[2:].lower())
        assert config.nft_contract == NFT

    def test_invalid_address(self):
        with pytest.raises(ValueError, match="Invalid distributor_contract"):
            ChainConfig(id=1, label="x", slug="x", distributor_contract="not-an-address")

    def test_invalid_rpc_url_scheme(self):
        with pytest.raises(ValueError, match="Invalid RPC URL scheme"):
            ChainConfig(id=1, label="x", slug="x", rpc_url="ftp://invalid.scheme")

    def test_websocket_rpc_url(self):
        config = ChainConfig(id=1, label="x", slug="x", rpc_url="wss://rpc.example")
        assert config.rpc_url == "wss://rpc.example"

    def test_invalid_window(self):
        with pytest.raises(ValueError, match="blocks_per_window"):
            ChainConfig(id=1, label="x", slug="x", blocks_per_window=0)

    def test_missing_fields(self):
        config = ChainConfig(id=1, label="x", slug="x", nft_contract=NFT)
        assert config.missing_fields() == ["rpc_url", "distributor_contract"]
        assert not config.is_configured

    def test_configured(self):
        config = ChainConfig(
            id=1,
            label="x",
            slug="x",
            rpc_url="https://rpc.example",
            nft_contract=NFT,
            distributor_contract=DISTRIBUTOR,
        )
        assert config.missing_fields() == []
        assert config.is_configured


class TestChainFromEnv:
    def test_reads_prefixed_variables(self):
        known = next(k for k in KNOWN_CHAINS if k.id == 421614)
        env = {
            "ARB_SEP_RPC_URL": "https://arb.rpc",
            "ARB_SEP_NFT_ADDRESS": NFT,
            "ARB_SEP_DISTRIBUTOR_ADDRESS": DISTRIBUTOR,
            "ARB_SEP_BLOCKS_PER_WINDOW": "1200",
        }
        config = chain_from_env(known, env)

        assert config.slug == "arb-sepolia"
        assert config.rpc_url == "https://arb.rpc"
        assert config.nft_contract == NFT
        assert config.distributor_contract == DISTRIBUTOR
        assert config.blocks_per_window == 1200

    def test_window_falls_back_to_blocks_per_hour(self):
        known = KNOWN_CHAINS[0]
        assert chain_from_env(known, {"BLOCKS_PER_HOUR": "450"}).blocks_per_window == 450
        assert chain_from_env(known, {}).blocks_per_window == DEFAULT_BLOCKS_PER_WINDOW


class TestChainIds:
    def test_parse_keeps_order_and_dedupes(self):
        assert parse_chain_ids("84532, 300,84532,,11155111") == [84532, 300, 11155111]

    def test_parse_invalid(self):
        with pytest.raises(ValueError, match="Invalid chain id"):
            parse_chain_ids("84532,base")

    def test_load_default_chain(self):
        chains = load_chain_configs({})
        assert [c.id for c in chains] == [11155111]

    def test_load_explicit_ids(self):
        chains = load_chain_configs({}, chain_ids=[300, 84532])
        assert [c.slug for c in chains] == ["zksync-sepolia", "base-sepolia"]

    def test_load_unknown_id(self):
        with pytest.raises(ValueError, match="Unknown chain id 1"):
            load_chain_configs({}, chain_ids=[1])

    def test_get_chain_config(self):
        chains = load_chain_configs({}, chain_ids=[300, 84532])
        assert get_chain_config(chains, 84532).label == "Base Sepolia"

    def test_get_unconfigured_chain(self):
        chains = load_chain_configs({}, chain_ids=[300])
        with pytest.raises(ValueError, match="not configured"):
            get_chain_config(chains, 84532)
