"""Environment configuration for the Solana balance watcher."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from chains.solana_rpc import MAINNET_RPC_URL
from core.models import AssetSelector, WatchCriteria
from routing import DEFAULT_FUNCTION_NAME


SERVER = "server"      # long-running webhook server, no store
FUNCTION = "function"  # serverless handler backed by Supabase
DEPLOYMENT_MODES = (SERVER, FUNCTION)


def _get(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def _get_float(value: str, default: float) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_int(value: str, default: int) -> int:
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    solana_rpc_url: str
    solana_addr: str
    asset_selector: str
    port: int
    deployment_mode: str
    function_name: str
    supabase_url: str
    supabase_service_key: str
    rpc_timeout: float
    log_level: str

    @property
    def criteria(self) -> WatchCriteria:
        return WatchCriteria(
            address=self.solana_addr or None,
            asset=AssetSelector.parse(self.asset_selector),
        )

    @property
    def uses_store(self) -> bool:
        return self.deployment_mode == FUNCTION


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    if env is None:
        load_dotenv()
        env = os.environ

    mode = _get(env, "DEPLOYMENT_MODE", SERVER).lower()
    if mode not in DEPLOYMENT_MODES:
        raise RuntimeError(f"DEPLOYMENT_MODE must be one of {DEPLOYMENT_MODES}, got {mode!r}")

    # LOCAL_ vars win so `supabase functions serve` can't shadow them
    return Settings(
        solana_rpc_url=_get(env, "SOLANA_RPC_URL") or MAINNET_RPC_URL,
        solana_addr=_get(env, "SOLANA_ADDR"),
        asset_selector=_get(env, "USDC_MINT"),
        port=_get_int(_get(env, "PORT"), 3000),
        deployment_mode=mode,
        function_name=_get(env, "SUPABASE_FUNCTION_NAME") or DEFAULT_FUNCTION_NAME,
        supabase_url=_get(env, "LOCAL_SUPABASE_URL") or _get(env, "SUPABASE_URL"),
        supabase_service_key=(
            _get(env, "LOCAL_SUPABASE_SERVICE_ROLE_KEY") or _get(env, "SUPABASE_SERVICE_ROLE_KEY")
        ),
        rpc_timeout=_get_float(_get(env, "RPC_TIMEOUT"), 20.0),
        log_level=_get(env, "LOG_LEVEL", "INFO").upper(),
    )
