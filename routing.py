from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


DEFAULT_FUNCTION_NAME = "solana-transaction-handler"

PREFLIGHT = "preflight"
WEBHOOK = "webhook"
TRANSACTION = "transaction"
MISSING_SIGNATURE = "missing_signature"
HEALTH = "health"
NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Route:
    name: str
    signature: Optional[str] = None


def base_paths(function_name: str) -> List[str]:
    # deployed: /functions/v1/<fn>/..., `supabase functions serve`: /<fn>/...,
    # plain server: /api/...
    return [f"/functions/v1/{function_name}", f"/{function_name}", "/api"]


def strip_prefix(path: str, function_name: str = DEFAULT_FUNCTION_NAME) -> str:
    for base in base_paths(function_name):
        if path == base or path.startswith(base + "/"):
            return path[len(base):] or "/"
    return path


def resolve(method: str, path: str, function_name: str = DEFAULT_FUNCTION_NAME) -> Route:
    method = method.upper()
    if method == "OPTIONS":
        return Route(PREFLIGHT)

    relative = strip_prefix(path, function_name)
    segments = [s for s in relative.split("/") if s]
    head = segments[0] if segments else ""

    if method == "POST" and head == "webhook" and len(segments) == 1:
        return Route(WEBHOOK)
    if method == "GET" and head in ("transaction", "tx"):
        if len(segments) == 2:
            return Route(TRANSACTION, signature=segments[1])
        if len(segments) == 1:
            return Route(MISSING_SIGNATURE)
    if method == "GET" and head == "health" and len(segments) == 1:
        return Route(HEALTH)
    return Route(NOT_FOUND)


def available_routes_message(function_name: str = DEFAULT_FUNCTION_NAME) -> str:
    return (
        f"Not Found. Available routes: POST /{function_name}/webhook, "
        f"GET /{function_name}/transaction/:signature"
    )
